"""
Text tokenization and normalization.

Turns raw imported text into word/punctuation tokens and sentence spans.
None or blank input always degrades to an empty result.
"""
from __future__ import annotations

import re
from typing import List, Optional

WORD_PATTERN = re.compile(r"\b[\w']+\b|[.!?,;:]")
SENTENCE_END_PATTERN = re.compile(r"[.!?]\s*")
PUNCTUATION_PATTERN = re.compile(r"[.!?,;:]+")
WHITESPACE_PATTERN = re.compile(r"\s+")
NON_WORD_PATTERN = re.compile(r"[^\w']")
CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

SENTENCE_END_CHARS = (".", "!", "?")


def tokenize_words(text: Optional[str]) -> List[str]:
    """
    Split text into word and punctuation tokens.

    Words are maximal runs of word characters and apostrophes; each of
    ``. ! ? , ; :`` becomes its own token. Case is preserved.
    """
    if not text or not text.strip():
        return []
    return [m.group() for m in WORD_PATTERN.finditer(text) if m.group().strip()]


def tokenize_sentences(text: Optional[str]) -> List[str]:
    """Split text on sentence-ending punctuation, dropping empty fragments."""
    if not text or not text.strip():
        return []
    sentences = []
    for fragment in SENTENCE_END_PATTERN.split(text):
        fragment = fragment.strip()
        if fragment:
            sentences.append(fragment)
    return sentences


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs to one space and lowercase."""
    if text is None:
        return ""
    return WHITESPACE_PATTERN.sub(" ", text).lower().strip()


def normalize_tokens(text: Optional[str]) -> List[str]:
    """Tokenize and lowercase; the form the models train on."""
    return [token.lower() for token in tokenize_words(text)]


def sentence_token_spans(text: Optional[str]) -> List[List[str]]:
    """
    Group normalized tokens into sentences.

    Unlike tokenize_sentences, the terminating ``.``/``!``/``?`` token stays
    at the end of its span so sentence ends survive into the statistics.
    """
    spans: List[List[str]] = []
    current: List[str] = []
    for token in normalize_tokens(text):
        current.append(token)
        if is_sentence_end(token):
            spans.append(current)
            current = []
    if current:
        spans.append(current)
    return spans


def is_punctuation(token: Optional[str]) -> bool:
    if not token:
        return False
    return PUNCTUATION_PATTERN.fullmatch(token) is not None


def is_sentence_end(token: Optional[str]) -> bool:
    """True if the token's final character is ``.``, ``!`` or ``?``."""
    if not token:
        return False
    return token.endswith(SENTENCE_END_CHARS)


def remove_punctuation(word: Optional[str]) -> str:
    if word is None:
        return ""
    return NON_WORD_PATTERN.sub("", word)


def is_valid_word(word: Optional[str]) -> bool:
    """A real word, not bare punctuation or whitespace."""
    if not word or not word.strip():
        return False
    return bool(remove_punctuation(word))


def clean_text(text: Optional[str]) -> str:
    """Replace control characters with spaces and collapse whitespace."""
    if text is None:
        return ""
    text = CONTROL_PATTERN.sub(" ", text)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def count_words(text: Optional[str]) -> int:
    """Number of valid (non-punctuation) word tokens."""
    return sum(1 for token in tokenize_words(text) if is_valid_word(token))


def join_tokens(tokens: List[str]) -> str:
    """Context key / output form: tokens joined by a single space."""
    return " ".join(tokens)
