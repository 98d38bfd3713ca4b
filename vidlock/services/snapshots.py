"""
Snapshot Presets
Saved prompt + parameter presets. Create, read and delete only.
"""

import uuid
from typing import Any, Dict, List

from vidlock.core.errors import NotFound
from vidlock.services.job_store import utc_now_iso
from vidlock.services.store import KeyedStore


class SnapshotRegistry:
    def __init__(self, store: KeyedStore):
        self.store = store

    async def create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        snapshot_id = f"snap_{uuid.uuid4().hex[:12]}"
        return await self.store.upsert(snapshot_id, {**values, "createdAt": utc_now_iso()})

    async def get(self, snapshot_id: str) -> Dict[str, Any]:
        record = await self.store.get(snapshot_id)
        if record is None:
            raise NotFound("Snapshot not found")
        return record

    async def list(self) -> List[Dict[str, Any]]:
        return await self.store.list()

    async def delete(self, snapshot_id: str):
        if not await self.store.delete(snapshot_id):
            raise NotFound("Snapshot not found")

    async def close(self):
        await self.store.close()
