# laundry/storage.py
from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, TypeVar

from loguru import logger

from .errors import StorageError

Record = Dict[str, Any]
T = TypeVar("T")


class CollectionStorage(ABC):
    """Durable medium for one JSON array of records."""

    @abstractmethod
    def load(self) -> List[Record]:
        raise NotImplementedError

    @abstractmethod
    def save(self, records: List[Record]) -> None:
        """Replace the whole persisted collection. Raises StorageError."""
        raise NotImplementedError


class JsonFileStorage(CollectionStorage):
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> List[Record]:
        if not self.path.exists():
            return []
        try:
            v = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self.path.name}") from e
        if not isinstance(v, list):
            raise StorageError(f"{self.path.name} does not hold a JSON array")
        return [x for x in v if isinstance(x, dict)]

    def save(self, records: List[Record]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(records, fh, indent=2, ensure_ascii=False)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed writing {}: {}", self.path, e)
            raise StorageError(f"Could not write {self.path.name}") from e
        logger.debug("{} written, count: {}", self.path.name, len(records))


class MemoryStorage(CollectionStorage):
    def __init__(self, records: List[Record] | None = None) -> None:
        self._records: List[Record] = copy.deepcopy(records or [])

    def load(self) -> List[Record]:
        return copy.deepcopy(self._records)

    def save(self, records: List[Record]) -> None:
        self._records = copy.deepcopy(records)


class Collection:
    """
    In-memory snapshot of one collection with serialized writers.

    A mutation works on a copy, persists it, and only then becomes the
    visible snapshot, so a failed write leaves readers on the old state.
    """

    def __init__(self, storage: CollectionStorage) -> None:
        self._storage = storage
        self._lock = threading.RLock()
        self._items: List[Record] = storage.load()

    def snapshot(self) -> List[Record]:
        return copy.deepcopy(self._items)

    def mutate(self, fn: Callable[[List[Record]], T]) -> T:
        with self._lock:
            draft = copy.deepcopy(self._items)
            result = fn(draft)
            self._storage.save(draft)
            self._items = draft
            return copy.deepcopy(result)
