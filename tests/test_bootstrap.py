"""
Tests for rebuilding training text from stored aggregates.
"""
import pytest

from sentence_builder.services.bootstrap import CorpusBootstrapper
from sentence_builder.services.errors import BootstrapFailureError
from sentence_builder.services.sampler import WeightedSampler
from sentence_builder.services.storage import InMemoryStore


def _chain(store, *words):
    for first, second in zip(words, words[1:]):
        store.increment_word_pair_count(first, second)


class TestPairwiseCorpus:
    """Test suite for pair-count random walks."""

    def test_isolated_starter_is_skipped(self):
        """Test a starter without successors is skipped while others still walk."""
        store = InMemoryStore()
        store.increment_word_count("lonely", is_start=True)
        store.increment_word_count("the", is_start=True)
        _chain(store, "the", "cat", "sat", ".")

        corpus = CorpusBootstrapper(store, WeightedSampler(seed=1)).build_pairwise_corpus()

        assert corpus == "the cat sat ."

    def test_no_starters(self):
        """Test an empty store fails loudly."""
        with pytest.raises(BootstrapFailureError):
            CorpusBootstrapper(InMemoryStore()).build_pairwise_corpus()

    def test_only_isolated_starters(self):
        """Test an empty synthetic corpus is a failure."""
        store = InMemoryStore()
        store.increment_word_count("alone", is_start=True)

        with pytest.raises(BootstrapFailureError):
            CorpusBootstrapper(store).build_pairwise_corpus()

    def test_walks_follow_start_counts(self, populated_store):
        """Test each starter is walked once per recorded sentence start."""
        bootstrapper = CorpusBootstrapper(populated_store, WeightedSampler(seed=2))
        lines = bootstrapper.build_pairwise_corpus().splitlines()

        assert [line.split()[0] for line in lines] == ["the", "the", "the", "a"]

    def test_walks_per_starter_cap(self, populated_store):
        """Test frequent starters are walked at most walks_per_starter times."""
        bootstrapper = CorpusBootstrapper(populated_store, WeightedSampler(seed=2), walks_per_starter=2)
        lines = bootstrapper.build_pairwise_corpus().splitlines()

        assert [line.split()[0] for line in lines] == ["the", "the", "a"]

    def test_starter_limit(self, populated_store):
        """Test only the top starters are walked."""
        bootstrapper = CorpusBootstrapper(populated_store, WeightedSampler(seed=2), starter_limit=1)
        lines = bootstrapper.build_pairwise_corpus().splitlines()

        assert {line.split()[0] for line in lines} == {"the"}
        assert len(lines) == 3


class TestWalk:
    """Test suite for single walks."""

    def test_stops_at_sentence_end(self):
        """Test a walk ends on the first terminator."""
        store = InMemoryStore()
        _chain(store, "a", "b", ".", "c")

        assert CorpusBootstrapper(store).walk_from("a") == ["a", "b", "."]

    def test_step_limit(self):
        """Test cycles are cut off after max_steps transitions."""
        store = InMemoryStore()
        _chain(store, "a", "b", "a")

        walk = CorpusBootstrapper(store, max_steps=5).walk_from("a")

        assert walk == ["a", "b", "a", "b", "a", "b"]


class TestNgramCorpus:
    """Test suite for n-gram replay."""

    def test_repeats_capped(self):
        """Test each transition repeats min(count, cap) times."""
        store = InMemoryStore()
        for _ in range(3):
            store.increment_ngram_count(2, "the cat", "sat")
        store.increment_ngram_count(2, "a dog", "ran")

        corpus = CorpusBootstrapper(store).build_ngram_corpus(2, limit=10, repeat_cap=2)

        assert corpus.splitlines() == ["the cat sat", "the cat sat", "a dog ran"]

    def test_other_orders_ignored(self):
        """Test nothing stored for the order is a failure."""
        store = InMemoryStore()
        store.increment_ngram_count(3, "the cat sat", ".")

        with pytest.raises(BootstrapFailureError):
            CorpusBootstrapper(store).build_ngram_corpus(2)
