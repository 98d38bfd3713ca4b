"""
Job Schemas
Pydantic models for job records and polled status views.
"""

from typing import Any, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class JobRecord(BaseModel):
    """A locally stored job record. Unknown fields are kept as-is."""
    
    model_config = ConfigDict(extra="allow")
    
    id: str
    prompt: Optional[str] = None
    seconds: Optional[str] = None
    size: Optional[str] = None
    fit: Optional[str] = None
    model: Optional[str] = None
    requestedModel: Optional[str] = None
    status: Optional[str] = None
    progress: Optional[Any] = None
    character: Optional[str] = None
    usedLock: bool = False
    usedReference: bool = False
    note: Optional[str] = None
    assetUrl: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    completedAt: Optional[str] = None


class JobStatusView(BaseModel):
    """
    Status returned to pollers.
    
    Carries the provider payload through (extra fields allowed) with
    `status` possibly rewritten to "ready" by the 100% readiness check.
    """
    
    model_config = ConfigDict(extra="allow")
    
    id: str
    status: str = Field("unknown", description="Provider status as reported, or \"ready\" after a content probe")
    progress: Optional[Union[int, float, str]] = None
    done: bool = Field(False, description="Status is terminal (success or failure)")
    succeeded: bool = Field(False, description="Status is a terminal success token")
    synthetic_ready: bool = Field(False, description="Status was rewritten to ready after a content probe")
    asset_url: Optional[str] = None
    updatedAt: Optional[str] = None
    completedAt: Optional[str] = None
