"""
JSON-file document store.

Each collection is one JSON array on disk, written atomically (temp file then
move). A collection can declare unique indexes, checked on every insert and
update, and text fields used by ``$text`` queries. Filters use a small subset
of the Mongo query language: equality, ``$in``, ``$ne``, ``$gte``, ``$lte`` and
a top-level ``{"$text": {"$search": "..."}}``.

All collections of a ``Database`` share one re-entrant lock. Services hold it
for the whole of a read-check-write unit.
"""

import os
import re
import json
import shutil
import tempfile
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from moviereview.config import settings


class DuplicateKeyError(Exception):
    """Raised when a write would violate a unique index."""

    def __init__(self, collection: str, fields: Tuple[str, ...]):
        super().__init__(f"Duplicate key in '{collection}' on {', '.join(fields)}")
        self.collection = collection
        self.fields = fields


# ────────────────────────────────
# Query matching
# ────────────────────────────────
def _match_value(actual: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
        for op, expected in condition.items():
            if op == "$in":
                values = actual if isinstance(actual, list) else [actual]
                if not any(v in expected for v in values):
                    return False
            elif op == "$ne":
                if actual == expected:
                    return False
            elif op == "$gte":
                if actual is None or actual < expected:
                    return False
            elif op == "$lte":
                if actual is None or actual > expected:
                    return False
            else:
                raise ValueError(f"Unsupported query operator: {op}")
        return True

    # Array fields match a scalar if they contain it
    if isinstance(actual, list) and not isinstance(condition, list):
        return condition in actual
    return actual == condition


_WORD = re.compile(r"\w+")


def _match_text(doc: Dict, search: str, fields: Sequence[str]) -> bool:
    # Whole-word match on any term, like a Mongo text index without stemming
    terms = _WORD.findall(search.lower())
    if not terms:
        return True
    words = set(_WORD.findall(" ".join(str(doc.get(f) or "") for f in fields).lower()))
    return any(term in words for term in terms)


class Collection:
    def __init__(
        self,
        path: str,
        lock: threading.RLock,
        unique: Iterable[Tuple[str, ...]] = (),
        text_fields: Sequence[str] = (),
    ):
        self.path = path
        self.name = os.path.splitext(os.path.basename(path))[0]
        self.lock = lock
        self.unique = [tuple(fields) for fields in unique]
        self.text_fields = tuple(text_fields)

    # ---------------- persistence ----------------
    def _load(self) -> List[Dict]:
        if not os.path.exists(self.path):
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read().strip()
                if not content:
                    return []
                return json.loads(content)
        except json.JSONDecodeError:
            logger.warning(f"[Store] Corrupted collection file {self.path}. Resetting...")
            self._save([])
            return []

    def _save(self, docs: List[Dict]) -> None:
        """Safely write documents to disk (atomic write)."""
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=directory)
        os.close(tmp_fd)

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(docs, f, indent=2)
            shutil.move(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    # ---------------- matching ----------------
    def _matcher(self, query: Optional[Dict]) -> Callable[[Dict], bool]:
        query = dict(query or {})
        text = query.pop("$text", None)

        def matches(doc: Dict) -> bool:
            if text is not None and not _match_text(doc, text.get("$search", ""), self.text_fields):
                return False
            return all(_match_value(doc.get(field), cond) for field, cond in query.items())

        return matches

    def _check_unique(self, docs: List[Dict], candidate: Dict, ignore_index: Optional[int] = None) -> None:
        for fields in self.unique:
            key = tuple(candidate.get(f) for f in fields)
            for i, doc in enumerate(docs):
                if i == ignore_index:
                    continue
                if tuple(doc.get(f) for f in fields) == key:
                    raise DuplicateKeyError(self.name, fields)

    # ---------------- reads ----------------
    def find(
        self,
        query: Optional[Dict] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict]:
        with self.lock:
            docs = self._load()
        matches = self._matcher(query)
        results = [d for d in docs if matches(d)]

        # Apply keys last-to-first so the first key dominates (sort is stable)
        for field, direction in reversed(sort or []):
            results.sort(key=lambda d: (d.get(field) is None, d.get(field)), reverse=direction < 0)

        if skip:
            results = results[skip:]
        if limit is not None:
            results = results[:limit]
        return results

    def find_one(self, query: Dict) -> Optional[Dict]:
        matches = self._matcher(query)
        with self.lock:
            docs = self._load()
        return next((d for d in docs if matches(d)), None)

    def count(self, query: Optional[Dict] = None) -> int:
        matches = self._matcher(query)
        with self.lock:
            docs = self._load()
        return sum(1 for d in docs if matches(d))

    # ---------------- writes ----------------
    def insert_one(self, doc: Dict) -> Dict:
        with self.lock:
            docs = self._load()
            self._check_unique(docs, doc)
            docs.append(doc)
            self._save(docs)
        return doc

    def update_one(self, query: Dict, changes: Dict) -> Optional[Dict]:
        """Apply ``changes`` ($set semantics) to the first match and return it."""
        matches = self._matcher(query)
        with self.lock:
            docs = self._load()
            for i, doc in enumerate(docs):
                if matches(doc):
                    updated = {**doc, **changes}
                    self._check_unique(docs, updated, ignore_index=i)
                    docs[i] = updated
                    self._save(docs)
                    return updated
        return None

    def delete_one(self, query: Dict) -> bool:
        matches = self._matcher(query)
        with self.lock:
            docs = self._load()
            for i, doc in enumerate(docs):
                if matches(doc):
                    del docs[i]
                    self._save(docs)
                    return True
        return False


class Database:
    """Handle to the three collections the service persists."""

    def __init__(self, data_dir: str):
        os.makedirs(data_dir, exist_ok=True)
        self.data_dir = data_dir
        self.lock = threading.RLock()

        self.movies = Collection(
            os.path.join(data_dir, "movies.json"),
            self.lock,
            text_fields=("title", "synopsis"),
        )
        self.reviews = Collection(
            os.path.join(data_dir, "reviews.json"),
            self.lock,
            unique=[("user_id", "movie_id")],
        )
        self.users = Collection(
            os.path.join(data_dir, "users.json"),
            self.lock,
            unique=[("username",), ("email",)],
        )


_database: Optional[Database] = None


def get_db() -> Database:
    """FastAPI dependency returning the process-wide store handle."""
    global _database
    if _database is None:
        logger.info(f"[Store] Opening document store at {os.path.abspath(settings.DATA_DIR)}")
        _database = Database(settings.DATA_DIR)
    return _database
