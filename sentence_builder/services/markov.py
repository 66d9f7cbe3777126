"""
Markov chain text generator (CPU-only).
Supports first-order and second-order chains with frequency-weighted sampling.
Training: additive over repeated calls; persistence: JSON-friendly snapshot.

Second-order chains also keep a first-order table. When a two-word context
is unseen, generation falls back to that table keyed by the most recent
word only.
"""
from __future__ import annotations

import json
import threading
from collections import Counter
from typing import Dict, List, Optional, Set

from .errors import InvalidArgumentError, NotTrainedError
from .sampler import WeightedSampler
from .tokenizer import is_sentence_end, join_tokens, normalize_tokens

SUPPORTED_ORDERS = (1, 2)


class MarkovModel:
    def __init__(self, order: int = 1, sampler: Optional[WeightedSampler] = None):
        if order not in SUPPORTED_ORDERS:
            raise InvalidArgumentError(
                f"Markov order must be 1 or 2, got {order}", details={"order": order}
            )
        self.order = order
        self.sampler = sampler or WeightedSampler()
        # context key -> successor counts (insertion order = first seen)
        self.transitions: Dict[str, Counter] = {}
        # order-1 table used when a second-order context misses
        self.fallback: Dict[str, Counter] = {}
        self.starters: List[str] = []
        self.vocab: Set[str] = set()
        self._lock = threading.RLock()

    def train(self, text: str):
        """Accumulate transitions from one span of text. Short input is ignored."""
        tokens = normalize_tokens(text)
        if len(tokens) < self.order + 1:
            return

        with self._lock:
            self.starters.append(join_tokens(tokens[: self.order]))
            self.vocab.update(tokens)
            self._count_windows(self.transitions, tokens, self.order)
            if self.order == 2:
                self._count_windows(self.fallback, tokens, 1)

    def train_corpus(self, lines: List[str]) -> "MarkovModel":
        """Train on each line separately so every line start is a seed."""
        for line in lines:
            self.train(line)
        return self

    def generate(self, start_token: Optional[str] = None, max_words: int = 20) -> str:
        """
        Generate text by walking the chain.

        Stops when the context has no successors, when max_words tokens have
        been produced, or right after a sentence-ending token.
        """
        if max_words <= 0:
            raise InvalidArgumentError(
                "max_words must be positive", details={"max_words": max_words}
            )

        with self._lock:
            if not self.transitions:
                raise NotTrainedError(f"{self._name()} model has not been trained")

            words = normalize_tokens(start_token) if start_token else []
            if not words:
                if not self.starters:
                    return ""
                words = self.sampler.select_uniform(self.starters).split(" ")
            words = words[:max_words]

            if self.order == 2 and len(words) == 1 and len(words) < max_words:
                # need a second word before two-word contexts exist
                seconds = self.fallback.get(words[0])
                if seconds:
                    words.append(self.sampler.select_from_counts(seconds))
                    if is_sentence_end(words[-1]):
                        return join_tokens(words)

            while len(words) < max_words:
                successors = self._lookup(words)
                if not successors:
                    break

                next_token = self.sampler.select_from_counts(successors)
                words.append(next_token)
                if is_sentence_end(next_token):
                    break

            return join_tokens(words)

    def suggestions(self, context: str, max_suggestions: int = 5) -> List[str]:
        """
        Most frequent successors of the last one or two words of context.

        Ties keep first-seen order.
        """
        tokens = normalize_tokens(context)
        if not tokens or max_suggestions <= 0:
            return []

        with self._lock:
            if not self.transitions:
                raise NotTrainedError(f"{self._name()} model has not been trained")

            if self.order == 2 and len(tokens) >= 2:
                counts = self.transitions.get(join_tokens(tokens[-2:]))
            elif self.order == 2:
                counts = self.fallback.get(tokens[-1])
            else:
                counts = self.transitions.get(tokens[-1])

            if not counts:
                return []
            ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
            return [word for word, _ in ranked[:max_suggestions]]

    def is_trained(self) -> bool:
        with self._lock:
            return bool(self.transitions)

    def state_count(self) -> int:
        with self._lock:
            return len(self.transitions)

    def vocabulary(self) -> Set[str]:
        with self._lock:
            return set(self.vocab)

    def clear(self):
        with self._lock:
            self.transitions.clear()
            self.fallback.clear()
            self.starters.clear()
            self.vocab.clear()

    def get_stats(self) -> Dict:
        """Get chain statistics."""
        with self._lock:
            return {
                "order": self.order,
                "unique_contexts": len(self.transitions),
                "total_transitions": sum(sum(c.values()) for c in self.transitions.values()),
                "starter_count": len(self.starters),
                "vocab_size": len(self.vocab),
            }

    def to_json(self) -> str:
        with self._lock:
            data = {
                "order": self.order,
                "transitions": {k: dict(v) for k, v in self.transitions.items()},
                "fallback": {k: dict(v) for k, v in self.fallback.items()},
                "starters": list(self.starters),
            }
        return json.dumps(data)

    @classmethod
    def from_json(cls, s: str, sampler: Optional[WeightedSampler] = None) -> "MarkovModel":
        raw = json.loads(s)
        model = cls(raw.get("order", 1), sampler=sampler)
        for table_name in ("transitions", "fallback"):
            table = getattr(model, table_name)
            for key, dist in raw.get(table_name, {}).items():
                counts = Counter({w: int(c) for w, c in dist.items() if int(c) > 0})
                if counts:
                    table[key] = counts
                    model.vocab.update(key.split(" "))
                    model.vocab.update(counts)
        model.starters = list(raw.get("starters", []))
        return model

    # --- helpers ---
    def _count_windows(self, table: Dict[str, Counter], tokens: List[str], k: int):
        for i in range(len(tokens) - k):
            key = join_tokens(tokens[i : i + k])
            table.setdefault(key, Counter())[tokens[i + k]] += 1

    def _lookup(self, words: List[str]) -> Optional[Counter]:
        if self.order == 1:
            return self.transitions.get(words[-1])

        successors = None
        if len(words) >= 2:
            successors = self.transitions.get(join_tokens(words[-2:]))
        if not successors:
            successors = self.fallback.get(words[-1])
        return successors

    def _name(self) -> str:
        return "first-order" if self.order == 1 else "second-order"

