"""
Snapshot Schemas
Saved prompt + parameter presets.
"""

from typing import Optional
from pydantic import BaseModel, Field


class SnapshotCreate(BaseModel):
    """Schema for saving a preset."""
    name: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    seconds: Optional[str] = None
    size: Optional[str] = None
    fit: Optional[str] = None
    model: Optional[str] = None
    character: Optional[str] = Field(None, description="Character whose lock/bible the preset uses")


class SnapshotResponse(SnapshotCreate):
    id: str
    createdAt: Optional[str] = None
