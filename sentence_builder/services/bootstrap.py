"""
Rebuild training text from persisted aggregate counts.

The store keeps only (word -> successor -> count) and n-gram counts, never
the imported text itself. To retrain the in-memory models at process start
we walk those counts and emit synthetic sentences.

This is a lossy approximation of the imported text: walks reproduce the
pairwise transition frequencies reasonably well but not the source
sentences, and rare transitions may not be visited at all.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from .errors import BootstrapFailureError
from .sampler import WeightedSampler
from .storage import AggregateStore
from .tokenizer import is_sentence_end, join_tokens

logger = logging.getLogger(__name__)


class CorpusBootstrapper:
    """
    Synthetic corpus builder over an AggregateStore.

    Each walk is one line of the returned corpus, so callers can train
    line by line and keep every walk's first word as a generation seed.
    """

    def __init__(
        self,
        store: AggregateStore,
        sampler: Optional[WeightedSampler] = None,
        starter_limit: int = 100,
        max_steps: int = 30,
        walks_per_starter: int = 10,
    ):
        """
        Args:
            store: Aggregate statistics source
            sampler: Weighted sampler for the random walks
            starter_limit: Number of top sentence starters to walk from
            max_steps: Maximum transitions per walk
            walks_per_starter: Cap on walks from one starter; below the cap a
                starter gets one walk per recorded sentence start
        """
        self.store = store
        self.sampler = sampler or WeightedSampler()
        self.starter_limit = starter_limit
        self.max_steps = max_steps
        self.walks_per_starter = walks_per_starter

    def walk_from(self, start_word: str) -> List[str]:
        """Weighted random walk over pair counts, ending on a sentence end or the step limit."""
        words = [start_word]
        current = start_word

        for _ in range(self.max_steps):
            successors = self.store.successors_of(current)
            if not successors:
                break

            next_word = self.sampler.select({s.text: float(s.count) for s in successors})
            words.append(next_word)
            current = next_word

            if is_sentence_end(next_word):
                break

        return words

    def _walk_count(self, starter: str) -> int:
        word = self.store.find_word_by_text(starter)
        starts = word.sentence_start_count if word is not None else 1
        return max(1, min(starts, self.walks_per_starter))

    def build_pairwise_corpus(self) -> str:
        """
        Walks per starter, newline separated.

        A starter is walked once per recorded sentence start, capped at
        ``walks_per_starter``, so frequent openings stay frequent in the
        rebuilt models.

        Raises:
            BootstrapFailureError: no starters, or no starter had any successor
        """
        starters = self.store.find_sentence_starters(self.starter_limit)
        if not starters:
            raise BootstrapFailureError(
                "No training data found in database. Please import a text file first."
            )

        walks = []
        skipped = 0
        for starter in starters:
            for _ in range(self._walk_count(starter)):
                walk = self.walk_from(starter)
                if len(walk) < 2:
                    # isolated word, nothing to learn from it
                    skipped += 1
                    break
                walks.append(join_tokens(walk))

        if not walks:
            raise BootstrapFailureError(
                "Failed to build training text from stored word pairs.",
                details={"starters": len(starters)},
            )

        logger.info(
            f"[Bootstrap] Built {len(walks)} walks from {len(starters)} starters ({skipped} skipped)"
        )
        return "\n".join(walks)

    def build_ngram_corpus(self, n: int, limit: int = 10000, repeat_cap: int = 100) -> str:
        """
        Replay persisted n-gram transitions as training lines.

        Each ``context successor`` line is repeated min(count, repeat_cap)
        times so relative frequencies survive (up to the cap).

        Raises:
            BootstrapFailureError: nothing stored for this order
        """
        lines = []
        for record in self.store.find_ngrams_by_order(n, limit):
            line = f"{record.context} {record.successor}"
            lines.extend([line] * min(record.count, repeat_cap))

        if not lines:
            raise BootstrapFailureError(
                f"No stored n-grams for n={n}. Import text with n-gram processing enabled.",
                details={"n": n},
            )

        logger.info(f"[Bootstrap] Replayed {len(lines)} n-gram lines (n={n})")
        return "\n".join(lines)
