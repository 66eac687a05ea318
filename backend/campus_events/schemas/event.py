"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from campus_events.models.registration import RegistrationCategory


class QuotaCreate(BaseModel):
    category: RegistrationCategory
    max_slots: int = Field(..., gt=0, le=100000)


class QuotaResponse(BaseModel):
    category: str
    max_slots: int
    filled: int

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=2000)
    venue: str = Field(..., min_length=1, max_length=255)
    start_time: datetime
    registration_deadline: Optional[datetime] = None
    max_participants: Optional[int] = Field(None, gt=0, le=100000)
    waitlist_enabled: bool = False
    club_id: int
    quotas: list[QuotaCreate] = Field(default_factory=list)

    @field_validator("start_time", "registration_deadline")
    @classmethod
    def require_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            raise ValueError("datetime must include a timezone offset")
        return value


class EventResponse(BaseModel):
    id: int
    name: str
    type: str
    description: Optional[str]
    venue: str
    start_time: datetime
    registration_deadline: Optional[datetime]
    max_participants: Optional[int]
    current_participants: int
    waitlist_enabled: bool
    status: str
    club_id: int
    created_by: int
    reviewed_by: Optional[int]
    reviewed_at: Optional[datetime]
    review_notes: Optional[str]
    approval_override: bool
    quotas: list[QuotaResponse] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class ReviewRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)
    override: bool = False


class CancelRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)


class StatusChangeResponse(BaseModel):
    id: int
    event_id: int
    from_status: str
    to_status: str
    actor_id: Optional[int]
    notes: Optional[str]
    override: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SweepResponse(BaseModel):
    completed: int
