"""
Snapshots API Routes
Named presets of prompt + generation parameters.
"""

from typing import List
from fastapi import APIRouter, Depends, status

from vidlock.api.deps import get_snapshots
from vidlock.schemas.snapshot import SnapshotCreate, SnapshotResponse
from vidlock.services.snapshots import SnapshotRegistry

router = APIRouter()


@router.post("", response_model=SnapshotResponse, status_code=status.HTTP_201_CREATED)
async def create_snapshot(
    request: SnapshotCreate,
    snapshots: SnapshotRegistry = Depends(get_snapshots),
):
    return await snapshots.create(request.model_dump())


@router.get("", response_model=List[SnapshotResponse])
async def list_snapshots(snapshots: SnapshotRegistry = Depends(get_snapshots)):
    return await snapshots.list()


@router.get("/{snapshot_id}", response_model=SnapshotResponse)
async def get_snapshot(
    snapshot_id: str,
    snapshots: SnapshotRegistry = Depends(get_snapshots),
):
    return await snapshots.get(snapshot_id)


@router.delete("/{snapshot_id}")
async def delete_snapshot(
    snapshot_id: str,
    snapshots: SnapshotRegistry = Depends(get_snapshots),
):
    await snapshots.delete(snapshot_id)
    return {"deleted": snapshot_id}
