"""
Weighted random selection used by generation and corpus bootstrapping.
Seedable so callers can get reproducible draws in tests.
"""
from __future__ import annotations

import random
from typing import Dict, Generic, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")


class WeightedSampler(Generic[T]):
    """
    Roulette-wheel sampler over insertion-ordered weight maps.

    Usage:
        sampler = WeightedSampler(seed=42)
        word = sampler.select({"fox": 3, "dog": 1})
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        """
        Args:
            seed: Seed for a private random.Random (ignored if rng given)
            rng: Injected random source
        """
        self.rng = rng if rng is not None else random.Random(seed)

    def select(self, weights: Mapping[T, float]) -> Optional[T]:
        """
        Pick one item with probability proportional to its weight.

        Items are scanned in the mapping's iteration order, so a fixed seed
        and fixed insertion order reproduce the same choice. A non-positive
        total falls back to a uniform pick over the keys.

        Returns:
            Selected item, or None for an empty mapping
        """
        if not weights:
            return None

        total = sum(weights.values())
        if total <= 0:
            return self.rng.choice(list(weights.keys()))

        r = self.rng.random() * total
        cum = 0.0
        last = None
        for item, weight in weights.items():
            cum += weight
            last = item
            if r <= cum:
                return item
        # float rounding
        return last

    def select_from_counts(self, counts: Mapping[T, int]) -> Optional[T]:
        """Select from integer frequency counts (e.g. a Counter)."""
        return self.select({item: float(count) for item, count in counts.items()})

    def select_uniform(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return items[self.rng.randrange(len(items))]

    def select_multiple(self, weights: Mapping[T, float], count: int) -> List[T]:
        """Draw up to ``count`` distinct items without replacement."""
        if not weights or count <= 0:
            return []

        remaining: Dict[T, float] = dict(weights)
        selected: List[T] = []
        while remaining and len(selected) < count:
            item = self.select(remaining)
            selected.append(item)
            del remaining[item]
        return selected

    @staticmethod
    def frequencies_to_probabilities(counts: Mapping[T, int]) -> Dict[T, float]:
        """Normalize counts so they sum to 1. Empty or zero total gives {}."""
        total = sum(counts.values()) if counts else 0
        if total <= 0:
            return {}
        return {item: count / total for item, count in counts.items()}
