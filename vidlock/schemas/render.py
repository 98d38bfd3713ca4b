"""
Render Schemas
Normalized render parameters and the submit response.
"""

from typing import Optional
from pydantic import BaseModel, Field


class RenderParams(BaseModel):
    """Render request after normalization."""
    prompt: str
    seconds: str
    size: str
    fit: str = "cover"
    model: str
    use_lock: bool = False
    character: Optional[str] = None


class RenderResponse(BaseModel):
    """Schema for a successful submission."""
    id: str = Field(..., description="Provider job id")
    status: str = "queued"
    model: Optional[str] = Field(None, description="Model actually used")
    note: Optional[str] = Field(None, description="Why a fallback was applied, if any")
    usedLock: bool = False
    usedReference: bool = False
