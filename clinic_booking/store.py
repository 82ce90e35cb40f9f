"""Record store: named collections of plain-dict records.

Every component reaches persisted data through a ``RecordStore``. Reads never raise: a
missing or corrupt collection is logged and treated as empty. Writes replace the whole
collection at once. There is no locking, so two writers racing on the same collection
lose updates (last writer wins).
"""
from __future__ import annotations

import copy
import json
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from clinic_booking.errors import NotFoundError, StoreError
from clinic_booking.logging_config import get_logger

logger = get_logger(__name__)

Record = dict[str, Any]

USERS = "users"
BOOKINGS = "bookings"
CITIES = "cities"
SLOTS = "slots"


class RecordStore(ABC):
    """Load/save whole collections; ``find``/``update``/``append`` are built on top."""

    @abstractmethod
    def _read(self, name: str) -> list[Record] | None:
        """Return the raw collection, ``None`` when it was never written."""

    @abstractmethod
    def _write(self, name: str, records: list[Record]) -> None:
        ...

    def load(self, name: str) -> list[Record]:
        try:
            records = self._read(name)
        except Exception as exc:  # corrupt or unreadable collections degrade to empty
            logger.warning("collection_read_failed", collection=name, error=str(exc))
            return []
        if records is None:
            return []
        if not isinstance(records, list):
            logger.warning("collection_malformed", collection=name)
            return []
        if not all(isinstance(r, dict) for r in records):
            logger.warning("collection_malformed", collection=name, reason="non-record items")
            return []
        return records

    def save(self, name: str, records: Iterable[Record]) -> None:
        try:
            self._write(name, list(records))
        except Exception as exc:
            raise StoreError(f"Could not save collection '{name}': {exc}") from exc

    def find(self, name: str, predicate: Callable[[Record], bool]) -> list[Record]:
        return [r for r in self.load(name) if predicate(r)]

    def get(self, name: str, record_id: str) -> Record | None:
        return next((r for r in self.load(name) if r.get("id") == record_id), None)

    def append(self, name: str, record: Record) -> Record:
        records = self.load(name)
        records.append(record)
        self.save(name, records)
        return record

    def update(self, name: str, record_id: str, fields: Record) -> Record:
        """Merge ``fields`` into the record with ``record_id`` and persist the collection."""
        records = self.load(name)
        for index, record in enumerate(records):
            if record.get("id") == record_id:
                records[index] = {**record, **fields}
                self.save(name, records)
                return records[index]
        raise NotFoundError(f"Record '{record_id}' not found in {name}")


class InMemoryRecordStore(RecordStore):
    """Process-local store; records are deep-copied in and out."""

    def __init__(self) -> None:
        self._collections: dict[str, list[Record]] = {}

    def _read(self, name: str) -> list[Record] | None:
        records = self._collections.get(name)
        return copy.deepcopy(records) if records is not None else None

    def _write(self, name: str, records: list[Record]) -> None:
        self._collections[name] = copy.deepcopy(records)


class JsonFileRecordStore(RecordStore):
    """One JSON file per collection inside ``data_dir``."""

    def __init__(self, data_dir: str) -> None:
        self.data_dir = data_dir
        os.makedirs(data_dir, exist_ok=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.data_dir, f"{name}.json")

    def _read(self, name: str) -> list[Record] | None:
        path = self._path(name)
        if not os.path.exists(path):
            return None
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)

    def _write(self, name: str, records: list[Record]) -> None:
        # write-then-rename so readers never observe a half-written file
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


def build_store(data_dir: str | None) -> RecordStore:
    """Pick the JSON backend when a data directory is configured, memory otherwise."""
    if data_dir:
        return JsonFileRecordStore(data_dir)
    return InMemoryRecordStore()
