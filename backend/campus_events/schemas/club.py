"""
Pydantic schemas for club-related request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field


class ClubCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    vice_president_id: Optional[int] = None
    faculty_coordinator_id: Optional[int] = None


class ClubResponse(BaseModel):
    id: int
    name: str
    type: str
    description: Optional[str]
    status: str
    president_id: int
    vice_president_id: Optional[int]
    faculty_coordinator_id: Optional[int]
    created_at: datetime

    model_config = {"from_attributes": True}


class ClubUpdate(BaseModel):
    """Partial update; officer fields set to null remove that officer."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[Literal["active", "inactive"]] = None
    president_id: Optional[int] = None
    vice_president_id: Optional[int] = None
    faculty_coordinator_id: Optional[int] = None
