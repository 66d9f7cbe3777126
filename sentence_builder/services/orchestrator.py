"""
Generation orchestrator: owns the in-memory models, reloads them from the
aggregate store on first use and dispatches generate/suggest requests by
model order.

Orders 1 and 2 are Markov chains; orders 3-5 are N-gram models created on
demand. The store handle is injected so tests can pass an InMemoryStore.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Optional, Set, Union

from ..config import Settings, get_algorithm_tag, settings as default_settings
from .bootstrap import CorpusBootstrapper
from .errors import BootstrapFailureError, InvalidArgumentError, NotTrainedError, UnknownStartTokenError
from .markov import MarkovModel
from .ngram_lm import MAX_ORDER, MIN_ORDER, NgramModel
from .sampler import WeightedSampler
from .storage import AggregateStore
from .tokenizer import join_tokens, normalize_tokens, sentence_token_spans

logger = logging.getLogger(__name__)

Model = Union[MarkovModel, NgramModel]
Link = Callable[[str, int], List[str]]


@dataclass
class GenerationResult:
    text: str
    algorithm: str
    start_token: Optional[str]
    word_count: int
    duration_ms: float

    @property
    def duration_seconds(self) -> float:
        return self.duration_ms / 1000.0

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["duration_seconds"] = self.duration_seconds
        return data


class AutocompleteResolver:
    """
    Next-word suggestions with fallback across models.

    Chain for order N: the in-memory N-gram model, then stored N-gram
    counts, then second-order, then stored word pairs, then first-order.
    The first link that returns anything answers; an untrained or missing
    link counts as a miss. Stored links rank by persisted counts, so
    suggestions keep the imported frequencies after a restart.
    """

    def __init__(
        self,
        markov: Dict[int, MarkovModel],
        ngrams: Dict[int, NgramModel],
        store: Optional[AggregateStore] = None,
    ):
        self.markov = markov
        self.ngrams = ngrams
        self.store = store

    def _chain(self, order: int) -> List[Link]:
        chain: List[Link] = []
        if order > 2:
            if order in self.ngrams:
                chain.append(self.ngrams[order].suggestions)
            if self.store is not None:
                chain.append(lambda context, k: self._stored_ngrams(order, context, k))
        if order >= 2:
            chain.append(self._second_order)
        if self.store is not None:
            chain.append(self._stored_pairs)
        chain.append(self.markov[1].suggestions)
        return chain

    def _second_order(self, context: str, max_suggestions: int) -> List[str]:
        # a single word only reaches the order-1 fallback table
        if len(normalize_tokens(context)) < 2:
            return []
        return self.markov[2].suggestions(context, max_suggestions)

    def _stored_ngrams(self, n: int, context: str, max_suggestions: int) -> List[str]:
        tokens = normalize_tokens(context)
        if len(tokens) < n:
            return []
        found = self.store.find_ngrams_by_text(n, join_tokens(tokens[-n:]))
        return [s.text for s in found[:max_suggestions]]

    def _stored_pairs(self, context: str, max_suggestions: int) -> List[str]:
        tokens = normalize_tokens(context)
        if not tokens:
            return []
        return [s.text for s in self.store.successors_of(tokens[-1])[:max_suggestions]]

    def resolve(self, context: str, order: int = 3, max_suggestions: int = 5) -> List[str]:
        if not context or not context.strip() or max_suggestions <= 0:
            return []

        for link in self._chain(order):
            try:
                found = link(context, max_suggestions)
            except NotTrainedError:
                continue
            if found:
                # dict.fromkeys keeps rank order while dropping repeats
                return list(dict.fromkeys(found))[:max_suggestions]
        return []


class GenerationOrchestrator:
    """Entry point used by the HTTP routers and the import pipeline."""

    def __init__(
        self,
        store: AggregateStore,
        sampler: Optional[WeightedSampler] = None,
        settings: Settings = default_settings,
    ):
        self.store = store
        self.settings = settings
        self.sampler = sampler or WeightedSampler(seed=settings.RANDOM_SEED)
        self.bootstrapper = CorpusBootstrapper(
            store,
            sampler=self.sampler,
            starter_limit=settings.BOOTSTRAP_STARTER_LIMIT,
            max_steps=settings.BOOTSTRAP_MAX_STEPS,
            walks_per_starter=settings.BOOTSTRAP_WALKS_PER_STARTER,
        )

        self.markov: Dict[int, MarkovModel] = {
            1: MarkovModel(1, sampler=self.sampler),
            2: MarkovModel(2, sampler=self.sampler),
        }
        self.ngrams: Dict[int, NgramModel] = {}
        self.resolver = AutocompleteResolver(self.markov, self.ngrams, store)

        self._loaded = False
        self._load_lock = threading.Lock()
        # failed reloads are not retried by suggest until the store changes
        self._load_failed = False
        self._ngram_failed: Set[int] = set()

    # ---------- loading ----------

    @property
    def loaded(self) -> bool:
        return self._loaded

    def ensure_loaded(self, force: bool = False):
        """
        Rebuild the Markov models from persisted word pairs, once.

        Only untrained models are filled unless ``force`` is set, in which
        case both are rebuilt and cached N-gram models are dropped.

        Raises:
            BootstrapFailureError: store holds nothing usable; the loaded flag stays unset
        """
        if self._loaded and not force:
            return

        with self._load_lock:
            if self._loaded and not force:
                return

            logger.info(f"[Orchestrator] Loading models from store (force={force})")
            try:
                corpus = self.bootstrapper.build_pairwise_corpus()
            except BootstrapFailureError:
                self._load_failed = True
                raise
            lines = corpus.splitlines()

            if force:
                for model in self.markov.values():
                    model.clear()
                self.ngrams.clear()

            for model in self.markov.values():
                if not model.is_trained():
                    model.train_corpus(lines)

            self._loaded = True
            self._load_failed = False
            logger.info(
                f"[Orchestrator] Loaded {len(lines)} synthetic lines "
                f"(first-order states={self.markov[1].state_count()}, "
                f"second-order states={self.markov[2].state_count()})"
            )

    def _ngram_model(self, n: int, bootstrap: bool = True) -> NgramModel:
        """Get or create the N-gram model for ``n``, replaying stored n-grams when empty."""
        model = self.ngrams.get(n)
        if model is None:
            model = self.ngrams.setdefault(n, NgramModel(n, sampler=self.sampler))

        if bootstrap and not model.is_trained():
            with self._load_lock:
                if not model.is_trained():
                    try:
                        corpus = self.bootstrapper.build_ngram_corpus(
                            n,
                            limit=self.settings.NGRAM_LOAD_LIMIT,
                            repeat_cap=self.settings.NGRAM_REPEAT_CAP,
                        )
                    except BootstrapFailureError:
                        self._ngram_failed.add(n)
                        raise
                    self._ngram_failed.discard(n)
                    model.train_corpus(corpus.splitlines())
        return model

    def _validate_order(self, order: int):
        if order < MIN_ORDER or order > MAX_ORDER:
            raise InvalidArgumentError(
                f"Order must be between {MIN_ORDER} and {MAX_ORDER}", details={"order": order}
            )

    def _model_for(self, order: int, bootstrap: bool = True) -> Model:
        self._validate_order(order)
        if order in self.markov:
            return self.markov[order]
        return self._ngram_model(order, bootstrap=bootstrap)

    # ---------- training ----------

    def train(self, order: int, text: str) -> Model:
        """
        Train the model for ``order`` directly on text.

        Markov chains are fed one sentence at a time so every sentence
        start becomes a seed; training order 2 also trains order 1.
        """
        self._validate_order(order)

        if order in self.markov:
            lines = [join_tokens(span) for span in sentence_token_spans(text)]
            if order == 2:
                self.markov[1].train_corpus(lines)
            self.markov[order].train_corpus(lines)
            return self.markov[order]

        model = self._ngram_model(order, bootstrap=False)
        model.train(text)
        return model

    # ---------- generation ----------

    def generate(
        self,
        order: int,
        start_token: Optional[str] = None,
        max_words: Optional[int] = None,
    ) -> GenerationResult:
        """
        Generate text with the model for ``order``.

        Raises:
            InvalidArgumentError: order outside 1-5, or max_words out of range
            UnknownStartTokenError: start token never seen in imported text
            NotTrainedError: model is still empty after loading
            BootstrapFailureError: nothing stored to load from
        """
        if max_words is None:
            max_words = self.settings.DEFAULT_MAX_WORDS
        if max_words <= 0 or max_words > self.settings.MAX_WORDS_LIMIT:
            raise InvalidArgumentError(
                f"max_words must be between 1 and {self.settings.MAX_WORDS_LIMIT}",
                details={"max_words": max_words},
            )
        self._validate_order(order)

        if order in self.markov and not self.markov[order].is_trained():
            self.ensure_loaded()
        model = self._model_for(order)

        start = start_token.strip() if start_token and start_token.strip() else None
        if start is not None and not normalize_tokens(start):
            # nothing usable left after normalization, draw a starter instead
            start = None
        if start is not None:
            self._check_start_token(start, model)

        began = time.perf_counter()
        text = model.generate(start, max_words)
        duration_ms = (time.perf_counter() - began) * 1000.0

        return GenerationResult(
            text=text,
            algorithm=get_algorithm_tag(order),
            start_token=start,
            word_count=len(text.split()),
            duration_ms=duration_ms,
        )

    def _check_start_token(self, start: str, model: Model):
        vocab = model.vocabulary()
        for token in normalize_tokens(start):
            if token not in vocab and not self.store.has_word(token):
                raise UnknownStartTokenError(token)

    # ---------- autocomplete ----------

    def suggest(self, order: int, context: str, max_suggestions: Optional[int] = None) -> List[str]:
        """
        Ranked next-word suggestions for ``context``.

        Only the models on the fallback chain for ``order`` are reloaded.
        A failed reload is logged once and not retried until the next
        import or reset; the affected link simply misses.
        """
        if max_suggestions is None:
            max_suggestions = self.settings.DEFAULT_MAX_SUGGESTIONS
        self._validate_order(order)

        needed = [self.markov[o] for o in (1, 2) if o <= order]
        if not self._load_failed and not all(m.is_trained() for m in needed):
            try:
                self.ensure_loaded()
            except BootstrapFailureError as e:
                logger.warning(f"[Orchestrator] Markov reload skipped: {e.message}")

        if order > 2 and order not in self._ngram_failed:
            try:
                self._ngram_model(order)
            except BootstrapFailureError as e:
                logger.warning(f"[Orchestrator] N-gram reload skipped: {e.message}")

        return self.resolver.resolve(context, order, max_suggestions)

    # ---------- state ----------

    def is_trained(self, order: int) -> bool:
        self._validate_order(order)
        model = self.markov.get(order) or self.ngrams.get(order)
        return model is not None and model.is_trained()

    def state_count(self, order: int) -> int:
        self._validate_order(order)
        model = self.markov.get(order) or self.ngrams.get(order)
        return model.state_count() if model is not None else 0

    def drop_ngram_model(self, n: int):
        """Forget a cached N-gram model so the next use replays the store."""
        with self._load_lock:
            self.ngrams.pop(n, None)
            self._ngram_failed.discard(n)

    def notify_import(self):
        """The store gained data: allow reloads that previously failed."""
        with self._load_lock:
            self._load_failed = False
            self._ngram_failed.clear()

    def reset(self, order: Optional[int] = None):
        """
        Clear in-memory model state. Persisted aggregates are untouched, so
        the next generation request reloads from the store.
        """
        with self._load_lock:
            if order is None:
                for model in self.markov.values():
                    model.clear()
                self.ngrams.clear()
            else:
                self._validate_order(order)
                if order in self.markov:
                    self.markov[order].clear()
                else:
                    self.ngrams.pop(order, None)
            self._loaded = False
            self._load_failed = False
            self._ngram_failed.clear()
        logger.info(f"[Orchestrator] Reset {'all models' if order is None else get_algorithm_tag(order)}")

    def status(self) -> Dict:
        """Per-model statistics for the status endpoints."""
        models = {get_algorithm_tag(order): m.get_stats() for order, m in self.markov.items()}
        for n, model in sorted(self.ngrams.items()):
            models[get_algorithm_tag(n)] = asdict(model.get_stats())
        return {
            "loaded": self._loaded,
            "models": models,
            "stored_words": self.store.word_count(),
        }
