"""
Shared pytest fixtures for generation engine tests.
"""
from typing import List

import pytest

from sentence_builder.config import Settings
from sentence_builder.services.orchestrator import GenerationOrchestrator
from sentence_builder.services.sampler import WeightedSampler
from sentence_builder.services.storage import InMemoryStore
from sentence_builder.services.tokenizer import sentence_token_spans


SAMPLE_TEXT = (
    "The cat sat on the mat. The dog sat on the rug. "
    "A bird sang in the tree. The cat chased the bird."
)


@pytest.fixture
def sample_corpus() -> List[str]:
    """Sample sentences for the transition models."""
    return [
        "The universe is full of amazing wonders.",
        "I love exploring new planets and stars.",
        "Would you like to play a game together?",
        "The stars are beautiful tonight.",
        "I love the stars and the moon.",
        "Friends always support each other!",
    ]


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def sampler() -> WeightedSampler:
    """Seeded sampler for reproducible draws."""
    return WeightedSampler(seed=42)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(STORAGE_BACKEND="memory", PROCESS_NGRAMS=True, IMPORT_NGRAM_N=3, RANDOM_SEED=42)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def populated_store(sample_text) -> InMemoryStore:
    """In-memory store holding word and pair counts for SAMPLE_TEXT."""
    store = InMemoryStore()
    for span in sentence_token_spans(sample_text):
        last = len(span) - 1
        for i, token in enumerate(span):
            store.increment_word_count(token, is_start=i == 0, is_end=i == last)
            if i < last:
                store.increment_word_pair_count(token, span[i + 1])
    store.recalculate_probabilities()
    return store


@pytest.fixture
def orchestrator(store, sampler, test_settings) -> GenerationOrchestrator:
    return GenerationOrchestrator(store, sampler=sampler, settings=test_settings)
