"""Persistence port for the vessel collection.

The store treats storage as a single durable slot, keyed by a fixed
name, that holds the entire collection as one JSON document. It reads
the slot once at start-up and rewrites it wholesale after every
mutation: no diffing, no transaction log, no schema versioning.

Adapters:
  InMemorySlot  : process-local, for tests and throwaway sessions
  JsonFileSlot  : a JSON file on disk (one object, slot key -> collection)
  SqlSlot       : a row in the ``storage_slots`` table via SQLAlchemy

All adapters raise PersistenceError on failure; the store converts it
into a failure result.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from berthboard.config import settings
from berthboard.models.storage_slot import StorageSlot

logger = logging.getLogger(__name__)

Records = list[dict[str, Any]]


class PersistenceError(Exception):
    """Raised when a slot cannot be read or written."""


class VesselSlot(Protocol):
    key: str

    def load(self) -> Records: ...

    def save_all(self, records: Records) -> None: ...


def _decode(raw: str | None, key: str) -> Records:
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Slot '{key}' holds invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise PersistenceError(f"Slot '{key}' does not hold a list")
    return data


class InMemorySlot:
    """Keeps the serialized document in memory (still JSON round-tripped)."""

    def __init__(self, key: str = "vesselSchedulingData", initial: Records | None = None):
        self.key = key
        self._raw: str | None = json.dumps(initial) if initial is not None else None
        self.save_count = 0

    def load(self) -> Records:
        return _decode(self._raw, self.key)

    def save_all(self, records: Records) -> None:
        try:
            self._raw = json.dumps(records)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to serialize slot '{self.key}': {e}") from e
        self.save_count += 1


class JsonFileSlot:
    """One JSON file holding ``{slot_key: [records...]}``; other keys are preserved."""

    def __init__(self, path: str | Path, key: str = "vesselSchedulingData"):
        self.path = Path(path)
        self.key = key

    def _read_document(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(document, dict):
            raise PersistenceError(f"{self.path} does not hold a JSON object")
        return document

    def load(self) -> Records:
        records = self._read_document().get(self.key, [])
        if not isinstance(records, list):
            raise PersistenceError(f"Slot '{self.key}' in {self.path} does not hold a list")
        return records

    def save_all(self, records: Records) -> None:
        document = self._read_document()
        document[self.key] = records
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write {self.path}: {e}") from e


class SqlSlot:
    """Slot stored as a single ``storage_slots`` row.

    Uses its own short-lived session per call; the caller's request
    session is never involved, so a failed save cannot leak a half-open
    transaction into the API layer.
    """

    def __init__(self, session_factory: Callable[[], Session], key: str = "vesselSchedulingData"):
        self._session_factory = session_factory
        self.key = key

    def load(self) -> Records:
        db = self._session_factory()
        try:
            row = db.get(StorageSlot, self.key)
            return _decode(row.value if row else None, self.key)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load slot '{self.key}': {e}") from e
        finally:
            db.close()

    def save_all(self, records: Records) -> None:
        db = self._session_factory()
        try:
            payload = json.dumps(records)
            row = db.get(StorageSlot, self.key)
            if row is None:
                db.add(StorageSlot(key=self.key, value=payload))
            else:
                row.value = payload
            db.commit()
        except (SQLAlchemyError, TypeError, ValueError) as e:
            db.rollback()
            raise PersistenceError(f"Failed to save slot '{self.key}': {e}") from e
        finally:
            db.close()


def build_slot(backend: str | None = None) -> VesselSlot:
    """Construct the slot selected by settings.STORAGE_BACKEND."""
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == "memory":
        return InMemorySlot(settings.STORAGE_KEY)
    if backend == "json":
        return JsonFileSlot(settings.JSON_STORE_PATH, settings.STORAGE_KEY)
    if backend == "sql":
        from berthboard.database import SessionLocal, init_db
        init_db()
        return SqlSlot(SessionLocal, settings.STORAGE_KEY)
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}' (expected sql, json or memory)")
