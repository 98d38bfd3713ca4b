"""
Job Store
Owns job records: one record per provider job id, merged on every write.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from vidlock.core.errors import NotFound
from vidlock.services.store import KeyedStore

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JobStore:
    """Job history backed by a KeyedStore."""

    def __init__(self, store: KeyedStore, history_limit: int = 50):
        self.store = store
        self.history_limit = history_limit

    async def upsert(self, job_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        record = await self.store.upsert(job_id, patch)
        logger.debug(f"[Store] Upserted job {job_id}: {sorted(patch.keys())}")
        return record

    async def get(self, job_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(job_id)

    async def require(self, job_id: str) -> Dict[str, Any]:
        record = await self.get(job_id)
        if record is None:
            raise NotFound("Not found")
        return record

    async def list(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest first, never more than the history cap."""
        cap = self.history_limit
        if limit is not None and limit > 0:
            cap = min(limit, cap)
        return await self.store.list(cap)

    async def close(self):
        await self.store.close()
