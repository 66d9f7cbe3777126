"""
Text import pipeline.

Splits imported text into sentences, persists word, pair and n-gram counts
to the aggregate store and keeps the in-memory models in step.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from ..config import Settings, settings as default_settings
from ..utils.logger import log_info, log_warning
from .errors import (
    BootstrapFailureError,
    InvalidArgumentError,
    SentenceBuilderError,
    UnsupportedFormatError,
)
from .orchestrator import GenerationOrchestrator
from .storage import AggregateStore, FileStatus, ImportedFileRecord
from .tokenizer import clean_text, count_words, join_tokens, normalize_tokens, sentence_token_spans

DOCUMENT_EXTENSIONS = (".pdf", ".doc", ".docx")


def is_supported_file_format(
    filename: Optional[str], extensions: Optional[Iterable[str]] = None
) -> bool:
    if not filename:
        return False
    allowed = tuple(ext.lower() for ext in (extensions or default_settings.SUPPORTED_EXTENSIONS))
    return filename.lower().endswith(allowed)


def extract_text(path: Union[str, Path]) -> str:
    """
    Read importable text from a file.

    Only plain text is extracted. PDF and Word documents are recognised but
    need converting to .txt first.

    Raises:
        UnsupportedFormatError: document or unknown file type
        FileNotFoundError: path does not exist
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".txt":
        return path.read_text(encoding="utf-8")

    if suffix in DOCUMENT_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Text extraction from {suffix} files is not available. Convert the file to .txt first.",
            details={"extension": suffix},
        )

    raise UnsupportedFormatError(
        f"Unsupported file format: {suffix or path.name}",
        details={"extension": suffix},
    )


@dataclass
class ImportSummary:
    sentences: int
    words: int
    ngram_n: Optional[int] = None
    file_id: Optional[str] = None


class TextIngestor:
    def __init__(
        self,
        store: AggregateStore,
        orchestrator: GenerationOrchestrator,
        settings: Settings = default_settings,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.settings = settings

    def ingest(self, text: str, ngram_n: Optional[int] = None) -> ImportSummary:
        """
        Import one document.

        Every token is counted once, flagged as a sentence start or end by
        position. N-gram counts are stored when ``ngram_n`` is given or
        settings.PROCESS_NGRAMS is on.

        Raises:
            InvalidArgumentError: blank text or ngram_n outside 1-5
        """
        cleaned = clean_text(text)
        if not cleaned:
            raise InvalidArgumentError("Imported text is empty")

        if ngram_n is None and self.settings.PROCESS_NGRAMS:
            ngram_n = self.settings.IMPORT_NGRAM_N
        if ngram_n is not None and not (
            self.settings.MIN_NGRAM_N <= ngram_n <= self.settings.MAX_NGRAM_N
        ):
            raise InvalidArgumentError(
                f"N must be between {self.settings.MIN_NGRAM_N} and {self.settings.MAX_NGRAM_N}",
                details={"n": ngram_n},
            )

        # pull in earlier imports before the in-memory models see new text
        try:
            self.orchestrator.ensure_loaded()
        except BootstrapFailureError:
            log_info("[Import] Store is empty, starting fresh models")

        spans = sentence_token_spans(cleaned)
        for span in spans:
            last = len(span) - 1
            for i, token in enumerate(span):
                self.store.increment_word_count(token, is_start=i == 0, is_end=i == last)
                if i < last:
                    self.store.increment_word_pair_count(token, span[i + 1])

        if ngram_n is not None:
            self._store_ngrams(cleaned, ngram_n)

        self.store.recalculate_probabilities()
        self.orchestrator.notify_import()

        self.orchestrator.train(2, cleaned)
        if ngram_n is not None:
            # replayed from the store on next use so earlier imports are included
            self.orchestrator.drop_ngram_model(ngram_n)

        summary = ImportSummary(sentences=len(spans), words=count_words(cleaned), ngram_n=ngram_n)
        log_info(
            "[Import] Text imported",
            sentences=summary.sentences,
            words=summary.words,
            ngram_n=summary.ngram_n,
        )
        return summary

    def ingest_file(self, path: Union[str, Path], ngram_n: Optional[int] = None) -> ImportSummary:
        """
        Import a file and record the attempt in the import history.

        Files with an unsupported extension are rejected before anything is
        recorded. Any later failure is recorded as FAILED with its message
        and then re-raised.
        """
        path = Path(path)
        if not is_supported_file_format(path.name, self.settings.SUPPORTED_EXTENSIONS):
            log_warning("[Import] Rejected file", file=path.name)
            raise UnsupportedFormatError(
                f"Unsupported file format: {path.suffix or path.name}",
                details={"extension": path.suffix.lower()},
            )

        record = ImportedFileRecord(filename=path.name, file_path=str(path))
        try:
            summary = self.ingest(extract_text(path), ngram_n=ngram_n)
        except (SentenceBuilderError, OSError) as e:
            record.status = FileStatus.FAILED
            record.error_message = e.message if isinstance(e, SentenceBuilderError) else str(e)
            self.store.save_imported_file(record)
            log_warning("[Import] File import failed", file=path.name, error=record.error_message)
            raise

        record.status = FileStatus.COMPLETED
        record.word_count = summary.words
        summary.file_id = self.store.save_imported_file(record).file_id
        return summary

    def _store_ngrams(self, text: str, n: int):
        tokens = normalize_tokens(text)
        for i in range(len(tokens) - n):
            self.store.increment_ngram_count(n, join_tokens(tokens[i : i + n]), tokens[i + n])
