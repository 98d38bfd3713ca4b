"""
Character Registry
Named profiles holding an optional lock image and an optional prompt bible.

Lock images live on disk at a path derived from the character id; metadata
lives in the "characters" collection. At most one lock image per character.
"""

import asyncio
import io
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from PIL import Image, UnidentifiedImageError

from vidlock.core.errors import ImageProcessingError, InvalidRequest, NotFound
from vidlock.services.job_store import utc_now_iso
from vidlock.services.store import KeyedStore

logger = logging.getLogger(__name__)


GLOBAL_LOCK_ID = "_global"  # cannot collide: sanitized ids never start with "_"
MAX_ID_LENGTH = 64
_UNSAFE = re.compile(r"[^a-z0-9-]+")


def character_id_for(name: Optional[str]) -> str:
    """
    Derive the storage-safe id for a character name.

    Lowercase, runs of anything outside [a-z0-9-] collapse to one "-",
    leading/trailing "-" stripped, truncated to 64 characters.
    """
    slug = _UNSAFE.sub("-", (name or "").strip().lower()).strip("-")[:MAX_ID_LENGTH].strip("-")
    if not slug:
        raise InvalidRequest("Character name must contain at least one letter or digit")
    return slug


def lock_path_for(locks_dir: Path, character_id: str) -> Path:
    """Where the lock image for a character id is stored."""
    if character_id != GLOBAL_LOCK_ID and character_id_for(character_id) != character_id:
        raise InvalidRequest(f"Invalid character id: {character_id!r}")
    return Path(locks_dir) / f"{character_id}.png"


def _to_png(data: bytes) -> bytes:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGB")
            buf = io.BytesIO()
            img.save(buf, format="PNG")
            return buf.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Could not read lock image: {e}") from e


def _write_atomic(path: Path, data: bytes):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def _read_optional(path: Path) -> Optional[bytes]:
    # The file may be replaced or removed by a concurrent request at any time
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def _unlink_quietly(path: Path) -> bool:
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


class CharacterRegistry:
    """Character metadata plus their lock images."""

    def __init__(self, store: KeyedStore, locks_dir: Path):
        self.store = store
        self.locks_dir = Path(locks_dir)
        self.locks_dir.mkdir(parents=True, exist_ok=True)

    async def register(self, name: str, bible: Optional[str] = None) -> Dict[str, Any]:
        """Create a character, or update its bible if it already exists."""
        character_id = character_id_for(name)
        now = utc_now_iso()
        existing = await self.store.get(character_id)
        patch: Dict[str, Any] = {"updatedAt": now}
        if existing is None:
            patch.update({"name": name.strip(), "bible": "", "hasLock": False, "createdAt": now})
        if bible is not None:
            patch["bible"] = bible.strip()
        record = await self.store.upsert(character_id, patch)
        logger.info(f"[Characters] Registered '{character_id}'")
        return record

    async def get(self, character_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(character_id)

    async def require(self, character_id: str) -> Dict[str, Any]:
        record = await self.get(character_id)
        if record is None:
            raise NotFound("Character not found")
        return record

    async def list(self) -> List[Dict[str, Any]]:
        return await self.store.list()

    async def set_bible(self, character_id: str, bible: str) -> Dict[str, Any]:
        await self.require(character_id)
        return await self.store.upsert(character_id, {"bible": (bible or "").strip(), "updatedAt": utc_now_iso()})

    async def delete(self, character_id: str):
        """Remove metadata and lock image. Missing lock files are ignored."""
        await self.require(character_id)
        await asyncio.to_thread(_unlink_quietly, lock_path_for(self.locks_dir, character_id))
        await self.store.delete(character_id)
        logger.info(f"[Characters] Deleted '{character_id}'")

    async def save_lock(self, name_or_id: str, data: bytes) -> Dict[str, Any]:
        """Store (or replace) the lock image, registering the character if needed."""
        character_id = character_id_for(name_or_id)
        png = await asyncio.to_thread(_to_png, data)
        if await self.get(character_id) is None:
            await self.register(name_or_id)
        await asyncio.to_thread(_write_atomic, lock_path_for(self.locks_dir, character_id), png)
        logger.info(f"[Characters] Saved lock image for '{character_id}' ({len(png)} bytes)")
        return await self.store.upsert(character_id, {"hasLock": True, "updatedAt": utc_now_iso()})

    async def load_lock(self, character_id: Optional[str]) -> Optional[bytes]:
        """Lock image bytes for a character (or the global lock when None)."""
        target = character_id or GLOBAL_LOCK_ID
        return await asyncio.to_thread(_read_optional, lock_path_for(self.locks_dir, target))

    async def delete_lock(self, character_id: str) -> bool:
        await self.require(character_id)
        removed = await asyncio.to_thread(_unlink_quietly, lock_path_for(self.locks_dir, character_id))
        await self.store.upsert(character_id, {"hasLock": False, "updatedAt": utc_now_iso()})
        return removed

    async def save_global_lock(self, data: bytes):
        png = await asyncio.to_thread(_to_png, data)
        await asyncio.to_thread(_write_atomic, lock_path_for(self.locks_dir, GLOBAL_LOCK_ID), png)
        logger.info(f"[Characters] Saved global lock image ({len(png)} bytes)")

    async def delete_global_lock(self) -> bool:
        return await asyncio.to_thread(_unlink_quietly, lock_path_for(self.locks_dir, GLOBAL_LOCK_ID))

    async def close(self):
        await self.store.close()
