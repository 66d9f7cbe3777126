"""
Tests for first- and second-order Markov chains.
"""
from collections import Counter

import pytest

from sentence_builder.services.errors import InvalidArgumentError, NotTrainedError
from sentence_builder.services.markov import MarkovModel
from sentence_builder.services.sampler import WeightedSampler

FOX = "the quick brown fox jumps over the lazy dog."


class TestTraining:
    """Test suite for Markov training."""

    def test_invalid_order(self):
        """Test only orders 1 and 2 are accepted."""
        with pytest.raises(InvalidArgumentError):
            MarkovModel(order=3)

    def test_short_text_leaves_model_untrained(self):
        """Test text shorter than order+1 tokens is ignored."""
        model = MarkovModel(order=2)
        model.train("hello there")

        assert not model.is_trained()
        assert model.state_count() == 0

    def test_first_order_counts(self):
        """Test transitions are counted per preceding token."""
        model = MarkovModel(order=1)
        model.train(FOX)

        assert model.transitions["the"] == Counter({"quick": 1, "lazy": 1})
        assert model.transitions["dog"] == Counter({".": 1})
        assert model.starters == ["the"]

    def test_training_is_additive(self):
        """Test repeated training accumulates counts."""
        model = MarkovModel(order=1)
        model.train("a b c")
        model.train("a b c")

        assert model.transitions["a"]["b"] == 2

    def test_second_order_keeps_fallback_table(self):
        """Test order 2 also records single-word transitions."""
        model = MarkovModel(order=2)
        model.train("the big dog")

        assert model.transitions["the big"] == Counter({"dog": 1})
        assert model.fallback["big"] == Counter({"dog": 1})
        assert model.starters == ["the big"]

    def test_clear(self):
        """Test clear returns the model to untrained."""
        model = MarkovModel(1).train_corpus([FOX])
        model.clear()

        assert not model.is_trained()
        assert model.vocabulary() == set()


class TestGeneration:
    """Test suite for Markov generation."""

    def test_untrained_raises(self):
        """Test generating from an empty table fails."""
        with pytest.raises(NotTrainedError):
            MarkovModel().generate("the")

    def test_non_positive_max_words(self):
        """Test max_words must be positive."""
        model = MarkovModel(1).train_corpus([FOX])

        with pytest.raises(InvalidArgumentError):
            model.generate("the", max_words=0)

    @pytest.mark.parametrize("seed", range(10))
    def test_bounded_output_from_start_word(self, seed):
        """Test output starts with the seed, respects max_words and stops at a sentence end."""
        model = MarkovModel(order=1, sampler=WeightedSampler(seed=seed))
        model.train(FOX)

        tokens = model.generate("the", max_words=5).split()

        assert tokens[0] == "the"
        assert len(tokens) <= 5
        for token in tokens[:-1]:
            assert not token.endswith(".")

    def test_stops_after_sentence_end(self):
        """Test generation ends right after a terminator even if successors exist."""
        model = MarkovModel(order=1)
        model.train("go home . stay here")

        assert model.generate("go", max_words=20) == "go home ."

    def test_random_starter_when_no_start_token(self):
        """Test a starter is drawn when no start token is given."""
        model = MarkovModel(order=1, sampler=WeightedSampler(seed=1))
        model.train("a b c")

        assert model.generate(max_words=10) == "a b c"

    def test_second_order_fallback_uses_last_word(self):
        """Test an unseen two-word context falls back to the last word only."""
        model = MarkovModel(order=2)
        model.train("the big dog")
        model.train("a big cat")

        assert model._lookup(["zebra", "big"]) == Counter({"dog": 1, "cat": 1})

    def test_second_order_single_seed_word(self):
        """Test a one-word seed draws its second word from the fallback table."""
        model = MarkovModel(order=2, sampler=WeightedSampler(seed=4))
        model.train("the big dog")
        model.train("a big cat")

        assert model.generate("big", max_words=5) in ("big dog", "big cat")

    def test_same_seed_same_output(self, sample_corpus):
        """Test seeded samplers reproduce the same text."""
        first = MarkovModel(order=1, sampler=WeightedSampler(seed=9))
        second = MarkovModel(order=1, sampler=WeightedSampler(seed=9))
        first.train_corpus(sample_corpus)
        second.train_corpus(sample_corpus)

        assert first.generate(max_words=15) == second.generate(max_words=15)


class TestSuggestions:
    """Test suite for next-word suggestions."""

    @pytest.fixture
    def bigram_model(self):
        model = MarkovModel(order=2)
        model.train_corpus([
            "i like green tea",
            "i like green apples",
            "i like green tea",
            "i like green tea",
        ])
        return model

    def test_ranked_by_frequency(self, bigram_model):
        """Test the more frequent successor of a bigram comes first."""
        assert bigram_model.suggestions("like green", 2) == ["tea", "apples"]

    def test_single_word_context_uses_fallback(self, bigram_model):
        """Test order 2 with one context word ranks fallback successors."""
        assert bigram_model.suggestions("green", 5) == ["tea", "apples"]

    def test_limit(self, bigram_model):
        """Test max_suggestions truncates the list."""
        assert bigram_model.suggestions("like green", 1) == ["tea"]

    def test_unknown_context(self, bigram_model):
        """Test an unseen context has no suggestions."""
        assert bigram_model.suggestions("purple cow", 5) == []

    def test_blank_context(self, bigram_model):
        """Test blank context returns nothing."""
        assert bigram_model.suggestions("   ", 5) == []

    def test_untrained_raises(self):
        """Test suggestions on an empty model fail."""
        with pytest.raises(NotTrainedError):
            MarkovModel(order=1).suggestions("the", 5)


class TestPersistence:
    """Test suite for stats and JSON snapshots."""

    def test_get_stats(self):
        """Test stats reflect the trained tables."""
        model = MarkovModel(1).train_corpus([FOX])
        stats = model.get_stats()

        assert stats["order"] == 1
        assert stats["unique_contexts"] == model.state_count()
        assert stats["total_transitions"] == 9
        assert stats["starter_count"] == 1

    def test_json_snapshot_restores_tables(self):
        """Test a restored model has the same tables and starters."""
        model = MarkovModel(order=2)
        model.train("the big dog")

        restored = MarkovModel.from_json(model.to_json())

        assert restored.order == 2
        assert restored.transitions == model.transitions
        assert restored.fallback == model.fallback
        assert restored.starters == model.starters
