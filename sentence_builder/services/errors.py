"""
Error taxonomy for the generation engine.

Model-level operations raise these synchronously; the HTTP layer maps
each ``code`` to a response envelope.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class SentenceBuilderError(Exception):
    """Base class for all engine errors."""

    code = "SENTENCE_BUILDER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidArgumentError(SentenceBuilderError, ValueError):
    """Bad model order, N value or generation parameter."""

    code = "INVALID_ARGUMENT"


class NotTrainedError(SentenceBuilderError):
    """Generation or suggestion requested on an empty transition table."""

    code = "NOT_TRAINED"


class UnknownStartTokenError(SentenceBuilderError, LookupError):
    """Start word is not part of the learned vocabulary."""

    code = "UNKNOWN_START_TOKEN"

    def __init__(self, token: str):
        super().__init__(
            f"Start word '{token}' not found. Please choose a word from your imported text.",
            details={"token": token},
        )
        self.token = token


class BootstrapFailureError(SentenceBuilderError):
    """No synthetic training text could be rebuilt from persisted aggregates."""

    code = "BOOTSTRAP_FAILURE"


class UnsupportedFormatError(SentenceBuilderError):
    """File type cannot be imported."""

    code = "UNSUPPORTED_FORMAT"
