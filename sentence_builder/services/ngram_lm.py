"""
N-gram model for text generation and autocomplete.

The context is the previous N words; the model predicts the word that
follows. This implementation supports:
- Variable order (1-5)
- Frequency-weighted sampling of successors
- Sentence-start seeds recorded after every sentence-ending token
- Frequency-ranked next-word suggestions

There is no backoff inside a single model; falling back to a shorter
context is handled by AutocompleteResolver across models.
"""
from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .errors import InvalidArgumentError, NotTrainedError
from .sampler import WeightedSampler
from .tokenizer import is_sentence_end, join_tokens, normalize_tokens

MIN_ORDER = 1
MAX_ORDER = 5


@dataclass
class NgramStats:
    """Statistics for n-gram analysis."""
    n: int = 0
    unique_contexts: int = 0
    total_transitions: int = 0
    starter_count: int = 0
    vocab_size: int = 0


class NgramModel:
    """
    Order-N transition model.

    Keys are N space-joined tokens; values count each observed successor.
    """

    def __init__(self, n: int = 3, sampler: Optional[WeightedSampler] = None):
        """
        Initialize n-gram model.

        Args:
            n: Context length in tokens (1-5)
            sampler: Weighted sampler, seed it for reproducible output

        Raises:
            InvalidArgumentError: n outside 1-5
        """
        if n < MIN_ORDER:
            raise InvalidArgumentError(f"N must be >= {MIN_ORDER}", details={"n": n})
        if n > MAX_ORDER:
            raise InvalidArgumentError(f"N must be <= {MAX_ORDER}", details={"n": n})

        self.n = n
        self.sampler = sampler or WeightedSampler()

        # ngrams[context] = Counter of next words
        self.ngrams: Dict[str, Counter] = {}

        # Valid generation seeds (single tokens when n == 1)
        self.starters: List[str] = []

        self.vocab: Set[str] = set()
        self._lock = threading.RLock()

    def train(self, text: str) -> "NgramModel":
        """
        Train the model on one span of text.

        Needs at least n+1 tokens; shorter input is ignored. Repeated calls
        accumulate counts.
        """
        tokens = normalize_tokens(text)
        if len(tokens) < self.n + 1:
            return self

        with self._lock:
            self.vocab.update(tokens)
            self.starters.append(join_tokens(tokens[: self.n]))

            for i in range(len(tokens) - self.n):
                context = join_tokens(tokens[i : i + self.n])
                self.ngrams.setdefault(context, Counter())[tokens[i + self.n]] += 1

                # mid-document sentence starts are valid seeds too
                if i > 0 and is_sentence_end(tokens[i - 1]):
                    self.starters.append(context)

        return self

    def train_corpus(self, corpus: List[str]) -> "NgramModel":
        for text in corpus:
            self.train(text)
        return self

    def generate(self, start_context: Optional[str] = None, max_words: int = 20) -> str:
        """
        Generate text from the model.

        Args:
            start_context: Seed words, kept verbatim as the output prefix
            max_words: Maximum number of tokens in the output

        Returns:
            Generated text string
        """
        if max_words <= 0:
            raise InvalidArgumentError(
                "max_words must be positive", details={"max_words": max_words}
            )

        with self._lock:
            if not self.ngrams:
                raise NotTrainedError(f"N-gram model (n={self.n}) has not been trained")

            words = normalize_tokens(start_context) if start_context else []
            if not words:
                seed = self.sampler.select_uniform(self.starters or list(self.ngrams))
                words = seed.split(" ")
            words = words[:max_words]

            while self.n <= len(words) < max_words:
                successors = self.ngrams.get(join_tokens(words[-self.n :]))
                if not successors:
                    break

                next_word = self.sampler.select_from_counts(successors)
                words.append(next_word)
                if is_sentence_end(next_word):
                    break

            return join_tokens(words)

    def suggestions(self, context: str, max_suggestions: int = 5) -> List[str]:
        """
        Rank the successors of the last n context words by frequency.

        With fewer than n words the whole context is used as the key.
        """
        tokens = normalize_tokens(context)
        if not tokens or max_suggestions <= 0:
            return []

        with self._lock:
            if not self.ngrams:
                raise NotTrainedError(f"N-gram model (n={self.n}) has not been trained")

            key = join_tokens(tokens[-self.n :] if len(tokens) >= self.n else tokens)
            counter = self.ngrams.get(key)
            if not counter:
                return []

            ranked = sorted(counter.items(), key=lambda x: x[1], reverse=True)
            return [word for word, _ in ranked[:max_suggestions]]

    def is_trained(self) -> bool:
        with self._lock:
            return bool(self.ngrams)

    def state_count(self) -> int:
        with self._lock:
            return len(self.ngrams)

    def vocabulary(self) -> Set[str]:
        with self._lock:
            return set(self.vocab)

    def clear(self):
        """Drop all training data."""
        with self._lock:
            self.ngrams.clear()
            self.starters.clear()
            self.vocab.clear()

    def get_stats(self) -> NgramStats:
        """Get statistics about the model."""
        with self._lock:
            return NgramStats(
                n=self.n,
                unique_contexts=len(self.ngrams),
                total_transitions=sum(sum(c.values()) for c in self.ngrams.values()),
                starter_count=len(self.starters),
                vocab_size=len(self.vocab),
            )

    def describe(self) -> str:
        stats = self.get_stats()
        return (
            f"N-gram Statistics (N={stats.n}):\n"
            f"  Unique N-grams: {stats.unique_contexts}\n"
            f"  Total transitions: {stats.total_transitions}\n"
            f"  Sentence starters: {stats.starter_count}"
        )
