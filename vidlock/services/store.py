"""
Keyed Record Store
Durable id -> record mapping with shallow-merge upserts.

Two backends share one contract:
- JsonFileStore: a single JSON document per collection ({"<collection>": [...]}),
  read whole / merge / write whole.
- SqlStore: one SQLAlchemy row per record with a per-key upsert.

Atomicity: every mutation is serialized by an in-process asyncio.Lock, so two
concurrent upserts for the same id inside one process cannot lose an update.
Nothing coordinates separate processes sharing the same file; run one process
per data directory or use the SQL backend.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from vidlock.core.errors import StoreError

logger = logging.getLogger(__name__)


def merge_record(existing: Optional[Dict[str, Any]], record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow overlay: patch fields win, unspecified fields are retained."""
    merged = dict(existing or {})
    merged.update(patch)
    merged["id"] = record_id
    return merged


def _recency_key(record: Dict[str, Any]) -> str:
    return str(record.get("createdAt") or "")


class KeyedStore(ABC):
    """Contract for a keyed record collection."""

    collection: str

    @abstractmethod
    async def upsert(self, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Merge patch into the record for record_id (creating it) and return the result."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Return one record or None."""

    @abstractmethod
    async def list(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Return records newest first by createdAt, truncated to limit."""

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False when it did not exist."""

    async def close(self):
        """Release backend resources."""


class JsonFileStore(KeyedStore):
    """Collection persisted as one JSON document."""

    def __init__(self, path: Path, collection: str):
        self.path = Path(path)
        self.collection = collection
        self._lock = asyncio.Lock()

    @classmethod
    def open(cls, path, collection: str) -> "JsonFileStore":
        store = cls(Path(path), collection)
        store.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"[Store] JSON store '{collection}' at {store.path}")
        return store

    def _read_sync(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error(f"[Store] Could not parse {self.path}: {e}")
            raise StoreError(f"Stored {self.collection} data at {self.path.name} is unreadable") from e
        records = data.get(self.collection) if isinstance(data, dict) else None
        return list(records or [])

    def _write_sync(self, records: List[Dict[str, Any]]):
        # Write to a sibling temp file then swap it in, so readers never see a torn document
        fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({self.collection: records}, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    async def _read(self) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, records: List[Dict[str, Any]]):
        await asyncio.to_thread(self._write_sync, records)

    async def upsert(self, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            records = await self._read()
            for idx, record in enumerate(records):
                if record.get("id") == record_id:
                    merged = merge_record(record, record_id, patch)
                    records[idx] = merged
                    break
            else:
                merged = merge_record(None, record_id, patch)
                records.append(merged)
            await self._write(records)
            return merged

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        for record in await self._read():
            if record.get("id") == record_id:
                return record
        return None

    async def list(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        # Reversed first so records sharing a timestamp list latest-written first
        records = sorted(reversed(await self._read()), key=_recency_key, reverse=True)
        return records[:limit] if limit is not None else records

    async def delete(self, record_id: str) -> bool:
        async with self._lock:
            records = await self._read()
            kept = [r for r in records if r.get("id") != record_id]
            if len(kept) == len(records):
                return False
            await self._write(kept)
            return True


class SqlStore(KeyedStore):
    """Collection persisted as rows of the `records` table."""

    def __init__(self, engine, collection: str, owns_engine: bool = True):
        from vidlock.core.database import make_session_factory

        self.engine = engine
        self.collection = collection
        self._owns_engine = owns_engine
        self._session_factory = make_session_factory(engine)
        self._lock = asyncio.Lock()

    @classmethod
    def open(cls, database_url: str, collection: str, engine=None) -> "SqlStore":
        from vidlock.core.database import create_store_engine, init_db

        owns_engine = engine is None
        engine = engine or create_store_engine(database_url)
        init_db(engine)
        logger.info(f"[Store] SQL store '{collection}' on {engine.url.drivername}")
        return cls(engine, collection, owns_engine=owns_engine)

    def _upsert_sync(self, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        from vidlock.models import StoredRecord

        db = self._session_factory()
        try:
            row = db.get(StoredRecord, (self.collection, record_id))
            merged = merge_record(row.data if row else None, record_id, patch)
            if row is None:
                row = StoredRecord(collection=self.collection, id=record_id)
                db.add(row)
            row.data = merged
            row.created_at = _recency_key(merged)
            db.commit()
            return merged
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _get_sync(self, record_id: str) -> Optional[Dict[str, Any]]:
        from vidlock.models import StoredRecord

        db = self._session_factory()
        try:
            row = db.get(StoredRecord, (self.collection, record_id))
            return dict(row.data) if row else None
        finally:
            db.close()

    def _list_sync(self, limit: Optional[int]) -> List[Dict[str, Any]]:
        from vidlock.models import StoredRecord

        db = self._session_factory()
        try:
            query = db.query(StoredRecord).filter(StoredRecord.collection == self.collection)
            query = query.order_by(StoredRecord.created_at.desc())
            if limit is not None:
                query = query.limit(limit)
            return [dict(row.data) for row in query.all()]
        finally:
            db.close()

    def _delete_sync(self, record_id: str) -> bool:
        from vidlock.models import StoredRecord

        db = self._session_factory()
        try:
            row = db.get(StoredRecord, (self.collection, record_id))
            if row is None:
                return False
            db.delete(row)
            db.commit()
            return True
        finally:
            db.close()

    async def upsert(self, record_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            return await asyncio.to_thread(self._upsert_sync, record_id, patch)

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._get_sync, record_id)

    async def list(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list_sync, limit)

    async def delete(self, record_id: str) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._delete_sync, record_id)

    async def close(self):
        if self._owns_engine:
            self.engine.dispose()


def open_store(settings, collection: str, engine=None) -> KeyedStore:
    """Open the configured backend for a collection."""
    if settings.STORE_BACKEND == "sql":
        return SqlStore.open(settings.DATABASE_URL, collection, engine=engine)
    return JsonFileStore.open(settings.data_path / f"{_FILE_NAMES.get(collection, collection)}.json", collection)


# history.json keeps the name the UI's history view has always read
_FILE_NAMES = {"jobs": "history"}
