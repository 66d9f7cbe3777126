"""
Aggregate statistics storage.

Only counts are persisted: words (with sentence start/end tallies), word
pairs and n-gram transitions. The raw imported text is never stored, which
is why CorpusBootstrapper has to rebuild training text from these counts.

Backends:
- InMemoryStore: dict-backed, used for tests and single-process runs
- MongoStore: pymongo collections ``words``, ``word_pairs``, ``ngrams``, ``imported_files``
"""
from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument, UpdateOne

from .tokenizer import normalize_text


@dataclass
class WordRecord:
    word_id: Any
    text: str
    total_count: int = 0
    sentence_start_count: int = 0
    sentence_end_count: int = 0


@dataclass
class Successor:
    """One persisted transition seen from a given word or context."""
    text: str
    count: int
    probability: float = 0.0


@dataclass
class NgramRecord:
    n: int
    context: str
    successor: str
    count: int
    probability: float = 0.0


@dataclass
class WordPairRecord:
    """A stored word pair, for browsing."""
    first: str
    second: str
    count: int
    probability: float = 0.0


class FileStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class ImportedFileRecord:
    """One entry of the import history."""
    filename: str
    file_path: str
    word_count: int = 0
    status: FileStatus = FileStatus.PENDING
    error_message: Optional[str] = None
    imported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    file_id: Optional[str] = None


class AggregateStore(ABC):
    """Interface the engine consumes; implementations own their I/O."""

    @abstractmethod
    def find_word_by_text(self, text: str) -> Optional[WordRecord]:
        ...

    @abstractmethod
    def increment_word_count(self, text: str, is_start: bool = False, is_end: bool = False):
        ...

    @abstractmethod
    def find_word_pairs_by_first_word(self, word_id: Any) -> List[Successor]:
        """Successors of a word, highest count first."""

    @abstractmethod
    def increment_word_pair_count(self, first: str, second: str):
        ...

    @abstractmethod
    def find_sentence_starters(self, limit: int) -> List[str]:
        """Words that began sentences, most frequent starters first."""

    @abstractmethod
    def find_ngrams_by_text(self, n: int, context: str) -> List[Successor]:
        ...

    @abstractmethod
    def find_ngrams_by_order(self, n: int, limit: int) -> List[NgramRecord]:
        """Top n-gram transitions of one order, highest count first."""

    @abstractmethod
    def increment_ngram_count(self, n: int, context: str, successor: str):
        ...

    @abstractmethod
    def recalculate_probabilities(self):
        ...

    @abstractmethod
    def word_count(self) -> int:
        ...

    @abstractmethod
    def list_words(self, offset: int = 0, limit: int = 100, search: Optional[str] = None) -> List[WordRecord]:
        """Words by total count, highest first; ``search`` filters by prefix."""

    @abstractmethod
    def list_word_pairs(
        self, offset: int = 0, limit: int = 100, search: Optional[str] = None
    ) -> List[WordPairRecord]:
        """Pairs by count, highest first; ``search`` filters by first-word prefix."""

    @abstractmethod
    def save_imported_file(self, record: ImportedFileRecord) -> ImportedFileRecord:
        """Persist an import history entry and return it with its file_id set."""

    @abstractmethod
    def list_imported_files(self) -> List[ImportedFileRecord]:
        """Import history, newest first."""

    @abstractmethod
    def delete_imported_file(self, file_id: str) -> bool:
        """Remove a history entry. Aggregate counts are not touched."""

    @abstractmethod
    def clear(self):
        ...

    def close(self):
        pass

    def successors_of(self, text: str) -> List[Successor]:
        """Convenience: pair successors looked up by word text."""
        word = self.find_word_by_text(text)
        if word is None:
            return []
        return self.find_word_pairs_by_first_word(word.word_id)

    def has_word(self, text: str) -> bool:
        return self.find_word_by_text(text) is not None


class InMemoryStore(AggregateStore):
    """Process-local store. Iteration follows insertion order so runs are reproducible."""

    def __init__(self):
        self._lock = threading.Lock()
        self._words: Dict[str, WordRecord] = {}
        self._pairs: Dict[int, Counter] = {}
        self._pair_probs: Dict[Tuple[int, str], float] = {}
        self._ngrams: Dict[int, Dict[str, Counter]] = {}
        self._ngram_probs: Dict[Tuple[int, str, str], float] = {}
        self._files: Dict[str, ImportedFileRecord] = {}
        self._next_id = 1
        self._next_file_id = 1

    def _get_or_create(self, text: str) -> WordRecord:
        word = self._words.get(text)
        if word is None:
            word = WordRecord(word_id=self._next_id, text=text)
            self._next_id += 1
            self._words[text] = word
        return word

    def find_word_by_text(self, text: str) -> Optional[WordRecord]:
        with self._lock:
            return self._words.get(normalize_text(text))

    def increment_word_count(self, text: str, is_start: bool = False, is_end: bool = False):
        with self._lock:
            word = self._get_or_create(normalize_text(text))
            word.total_count += 1
            if is_start:
                word.sentence_start_count += 1
            if is_end:
                word.sentence_end_count += 1

    def find_word_pairs_by_first_word(self, word_id: Any) -> List[Successor]:
        with self._lock:
            counts = self._pairs.get(word_id)
            if not counts:
                return []
            ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
            return [
                Successor(text, count, self._pair_probs.get((word_id, text), 0.0))
                for text, count in ranked
            ]

    def increment_word_pair_count(self, first: str, second: str):
        with self._lock:
            first_word = self._get_or_create(normalize_text(first))
            second_text = self._get_or_create(normalize_text(second)).text
            self._pairs.setdefault(first_word.word_id, Counter())[second_text] += 1

    def find_sentence_starters(self, limit: int) -> List[str]:
        with self._lock:
            starters = [w for w in self._words.values() if w.sentence_start_count > 0]
            starters.sort(key=lambda w: w.sentence_start_count, reverse=True)
            return [w.text for w in starters[:limit]]

    def find_ngrams_by_text(self, n: int, context: str) -> List[Successor]:
        with self._lock:
            key = normalize_text(context)
            counts = self._ngrams.get(n, {}).get(key)
            if not counts:
                return []
            ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
            return [
                Successor(text, count, self._ngram_probs.get((n, key, text), 0.0))
                for text, count in ranked
            ]

    def find_ngrams_by_order(self, n: int, limit: int) -> List[NgramRecord]:
        with self._lock:
            records = [
                NgramRecord(n, context, successor, count, self._ngram_probs.get((n, context, successor), 0.0))
                for context, counts in self._ngrams.get(n, {}).items()
                for successor, count in counts.items()
            ]
            records.sort(key=lambda r: r.count, reverse=True)
            return records[:limit]

    def increment_ngram_count(self, n: int, context: str, successor: str):
        with self._lock:
            table = self._ngrams.setdefault(n, {})
            table.setdefault(normalize_text(context), Counter())[normalize_text(successor)] += 1

    def recalculate_probabilities(self):
        with self._lock:
            self._pair_probs = {
                (word_id, text): count / total
                for word_id, counts in self._pairs.items()
                for total in [sum(counts.values())]
                for text, count in counts.items()
            }
            self._ngram_probs = {
                (n, context, text): count / total
                for n, table in self._ngrams.items()
                for context, counts in table.items()
                for total in [sum(counts.values())]
                for text, count in counts.items()
            }

    def word_count(self) -> int:
        with self._lock:
            return len(self._words)

    def list_words(self, offset: int = 0, limit: int = 100, search: Optional[str] = None) -> List[WordRecord]:
        prefix = normalize_text(search)
        with self._lock:
            words = [w for w in self._words.values() if w.text.startswith(prefix)]
        words.sort(key=lambda w: w.total_count, reverse=True)
        return words[offset : offset + limit]

    def list_word_pairs(
        self, offset: int = 0, limit: int = 100, search: Optional[str] = None
    ) -> List[WordPairRecord]:
        prefix = normalize_text(search)
        with self._lock:
            text_of = {w.word_id: w.text for w in self._words.values()}
            pairs = [
                WordPairRecord(text_of[word_id], second, count, self._pair_probs.get((word_id, second), 0.0))
                for word_id, counts in self._pairs.items()
                if text_of[word_id].startswith(prefix)
                for second, count in counts.items()
            ]
        pairs.sort(key=lambda p: p.count, reverse=True)
        return pairs[offset : offset + limit]

    def save_imported_file(self, record: ImportedFileRecord) -> ImportedFileRecord:
        with self._lock:
            record.file_id = str(self._next_file_id)
            self._next_file_id += 1
            self._files[record.file_id] = record
            return record

    def list_imported_files(self) -> List[ImportedFileRecord]:
        with self._lock:
            # insertion order is import order
            return list(reversed(list(self._files.values())))

    def delete_imported_file(self, file_id: str) -> bool:
        with self._lock:
            return self._files.pop(str(file_id), None) is not None

    def clear(self):
        with self._lock:
            self._words.clear()
            self._pairs.clear()
            self._pair_probs.clear()
            self._ngrams.clear()
            self._ngram_probs.clear()
            self._files.clear()
            self._next_id = 1
            self._next_file_id = 1


class MongoStore(AggregateStore):
    """
    MongoDB-backed store.

    Collections:
        words:          {text, total_count, sentence_start_count, sentence_end_count}
        word_pairs:     {first_id, second_id, first_text, second_text, count, probability}
        ngrams:         {n, context, successor, count, probability}
        imported_files: {filename, file_path, word_count, status, error_message, imported_at}
    """

    def __init__(self, client: MongoClient, db_name: str):
        self.client = client
        self.db = client.get_database(db_name)
        self.words = self.db.words
        self.word_pairs = self.db.word_pairs
        self.ngrams = self.db.ngrams
        self.imported_files = self.db.imported_files

    def ensure_indexes(self):
        self.words.create_index("text", unique=True)
        self.words.create_index([("sentence_start_count", DESCENDING)])
        self.word_pairs.create_index([("first_id", ASCENDING), ("second_id", ASCENDING)], unique=True)
        self.ngrams.create_index(
            [("n", ASCENDING), ("context", ASCENDING), ("successor", ASCENDING)], unique=True
        )
        self.imported_files.create_index([("imported_at", DESCENDING)])

    @staticmethod
    def _to_word(doc: Dict) -> WordRecord:
        return WordRecord(
            word_id=doc["_id"],
            text=doc["text"],
            total_count=doc.get("total_count", 0),
            sentence_start_count=doc.get("sentence_start_count", 0),
            sentence_end_count=doc.get("sentence_end_count", 0),
        )

    def _upsert_word(self, text: str) -> Dict:
        return self.words.find_one_and_update(
            {"text": text},
            {"$setOnInsert": {"total_count": 0, "sentence_start_count": 0, "sentence_end_count": 0}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    def find_word_by_text(self, text: str) -> Optional[WordRecord]:
        doc = self.words.find_one({"text": normalize_text(text)})
        return self._to_word(doc) if doc else None

    def increment_word_count(self, text: str, is_start: bool = False, is_end: bool = False):
        self.words.update_one(
            {"text": normalize_text(text)},
            {"$inc": {
                "total_count": 1,
                "sentence_start_count": int(is_start),
                "sentence_end_count": int(is_end),
            }},
            upsert=True,
        )

    def find_word_pairs_by_first_word(self, word_id: Any) -> List[Successor]:
        cursor = self.word_pairs.find({"first_id": word_id}).sort(
            [("count", DESCENDING), ("_id", ASCENDING)]
        )
        return [
            Successor(doc["second_text"], doc["count"], doc.get("probability", 0.0))
            for doc in cursor
        ]

    def increment_word_pair_count(self, first: str, second: str):
        first_doc = self._upsert_word(normalize_text(first))
        second_doc = self._upsert_word(normalize_text(second))
        self.word_pairs.update_one(
            {"first_id": first_doc["_id"], "second_id": second_doc["_id"]},
            {"$inc": {"count": 1}, "$set": {"first_text": first_doc["text"], "second_text": second_doc["text"]}},
            upsert=True,
        )

    def find_sentence_starters(self, limit: int) -> List[str]:
        cursor = (
            self.words.find({"sentence_start_count": {"$gt": 0}})
            .sort([("sentence_start_count", DESCENDING), ("_id", ASCENDING)])
            .limit(limit)
        )
        return [doc["text"] for doc in cursor]

    def find_ngrams_by_text(self, n: int, context: str) -> List[Successor]:
        cursor = self.ngrams.find({"n": n, "context": normalize_text(context)}).sort(
            [("count", DESCENDING), ("_id", ASCENDING)]
        )
        return [
            Successor(doc["successor"], doc["count"], doc.get("probability", 0.0))
            for doc in cursor
        ]

    def find_ngrams_by_order(self, n: int, limit: int) -> List[NgramRecord]:
        cursor = (
            self.ngrams.find({"n": n})
            .sort([("count", DESCENDING), ("_id", ASCENDING)])
            .limit(limit)
        )
        return [
            NgramRecord(n, doc["context"], doc["successor"], doc["count"], doc.get("probability", 0.0))
            for doc in cursor
        ]

    def increment_ngram_count(self, n: int, context: str, successor: str):
        self.ngrams.update_one(
            {"n": n, "context": normalize_text(context), "successor": normalize_text(successor)},
            {"$inc": {"count": 1}},
            upsert=True,
        )

    def recalculate_probabilities(self):
        self._recalculate(self.word_pairs, "$first_id", lambda doc: doc["first_id"])
        self._recalculate(
            self.ngrams,
            {"n": "$n", "context": "$context"},
            lambda doc: {"n": doc["n"], "context": doc["context"]},
        )

    def _recalculate(self, collection, group_key, key_of):
        totals = {
            str(row["_id"]): row["total"]
            for row in collection.aggregate([{"$group": {"_id": group_key, "total": {"$sum": "$count"}}}])
        }
        ops = []
        for doc in collection.find({}, {"count": 1, "first_id": 1, "n": 1, "context": 1}):
            total = totals.get(str(key_of(doc)))
            if total:
                ops.append(UpdateOne({"_id": doc["_id"]}, {"$set": {"probability": doc["count"] / total}}))
        if ops:
            collection.bulk_write(ops)

    def word_count(self) -> int:
        return self.words.count_documents({})

    @staticmethod
    def _prefix_filter(key: str, search: Optional[str]) -> Dict:
        prefix = normalize_text(search)
        return {key: {"$regex": f"^{re.escape(prefix)}"}} if prefix else {}

    def list_words(self, offset: int = 0, limit: int = 100, search: Optional[str] = None) -> List[WordRecord]:
        cursor = (
            self.words.find(self._prefix_filter("text", search))
            .sort([("total_count", DESCENDING), ("_id", ASCENDING)])
            .skip(offset)
            .limit(limit)
        )
        return [self._to_word(doc) for doc in cursor]

    def list_word_pairs(
        self, offset: int = 0, limit: int = 100, search: Optional[str] = None
    ) -> List[WordPairRecord]:
        cursor = (
            self.word_pairs.find(self._prefix_filter("first_text", search))
            .sort([("count", DESCENDING), ("_id", ASCENDING)])
            .skip(offset)
            .limit(limit)
        )
        return [
            WordPairRecord(doc.get("first_text", ""), doc["second_text"], doc["count"], doc.get("probability", 0.0))
            for doc in cursor
        ]

    def save_imported_file(self, record: ImportedFileRecord) -> ImportedFileRecord:
        result = self.imported_files.insert_one({
            "filename": record.filename,
            "file_path": record.file_path,
            "word_count": record.word_count,
            "status": record.status.value,
            "error_message": record.error_message,
            "imported_at": record.imported_at,
        })
        record.file_id = str(result.inserted_id)
        return record

    def list_imported_files(self) -> List[ImportedFileRecord]:
        cursor = self.imported_files.find({}).sort([("imported_at", DESCENDING), ("_id", DESCENDING)])
        return [
            ImportedFileRecord(
                filename=doc["filename"],
                file_path=doc["file_path"],
                word_count=doc.get("word_count", 0),
                status=FileStatus(doc.get("status", FileStatus.PENDING.value)),
                error_message=doc.get("error_message"),
                imported_at=doc["imported_at"],
                file_id=str(doc["_id"]),
            )
            for doc in cursor
        ]

    def delete_imported_file(self, file_id: str) -> bool:
        try:
            oid = ObjectId(file_id)
        except (InvalidId, TypeError):
            return False
        return self.imported_files.delete_one({"_id": oid}).deleted_count > 0

    def clear(self):
        self.words.delete_many({})
        self.word_pairs.delete_many({})
        self.ngrams.delete_many({})
        self.imported_files.delete_many({})

    def close(self):
        self.client.close()


def create_store(settings) -> AggregateStore:
    """Build the storage backend named by settings.STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "mongo":
        store = MongoStore(MongoClient(settings.MONGODB_URI), settings.MONGODB_DB)
        store.ensure_indexes()
        return store
    return InMemoryStore()
