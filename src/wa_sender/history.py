from __future__ import annotations

import json
import logging

from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session, sessionmaker

from .config import HISTORY_KEY
from .db import StoreEntry
from .models import MessageRecord

logger = logging.getLogger(__name__)


class KeyValueStore:
    """String values by key, persisted in the kv_store table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get_item(self, key: str) -> str | None:
        db = self._session_factory()
        try:
            entry = db.get(StoreEntry, key)
            return entry.value if entry is not None else None
        finally:
            db.close()

    def set_item(self, key: str, value: str) -> None:
        db = self._session_factory()
        try:
            db.merge(StoreEntry(key=key, value=value))
            db.commit()
        finally:
            db.close()

    def remove_item(self, key: str) -> None:
        db = self._session_factory()
        try:
            db.query(StoreEntry).filter(StoreEntry.key == key).delete()
            db.commit()
        finally:
            db.close()


class MessageHistory:
    """
    The local message history: one JSON list under a single store key.

    Records are kept most recent first. Writes are upserts keyed by the
    record id, so an id never appears twice.
    """

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY):
        self._store = store
        self._key = key

    def list(self) -> list[MessageRecord]:
        raw = self._store.get_item(self._key)
        if raw is None:
            return []
        try:
            items = json.loads(raw)
            return [MessageRecord.model_validate(item) for item in items]
        except (json.JSONDecodeError, TypeError, SchemaError):
            logger.warning("Ignoring unreadable message history under %r", self._key, exc_info=True)
            return []

    def upsert(self, record: MessageRecord) -> None:
        records = self.list()
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                break
        else:
            records.insert(0, record)
        self._save(records)

    def clear(self) -> None:
        self._store.remove_item(self._key)

    def _save(self, records: list[MessageRecord]) -> None:
        payload = [r.model_dump(mode="json", exclude_none=True) for r in records]
        self._store.set_item(self._key, json.dumps(payload))
