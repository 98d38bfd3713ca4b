"""
Character Schemas
Pydantic models for character lock API requests and responses.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CharacterCreate(BaseModel):
    """Schema for character registration."""
    name: str = Field(..., min_length=1, description="Display name; the id is derived from it")
    bible: Optional[str] = Field(None, description="Style/identity text appended to prompts")


class CharacterBibleUpdate(BaseModel):
    bible: str = ""


class CharacterResponse(BaseModel):
    """Schema for character response."""
    
    model_config = ConfigDict(extra="allow")
    
    id: str
    name: str
    bible: str = ""
    hasLock: bool = False
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
