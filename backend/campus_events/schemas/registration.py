"""
Pydantic schemas for registration request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from campus_events.models.registration import RegistrationCategory


class RegistrationDetails(BaseModel):
    additional_info: Optional[str] = Field(None, max_length=1000)
    dietary_restrictions: Optional[str] = Field(None, max_length=255)
    emergency_contact: Optional[str] = Field(None, max_length=255)


class RegistrationCreate(BaseModel):
    category: RegistrationCategory = RegistrationCategory.PARTICIPANT
    details: RegistrationDetails = Field(default_factory=RegistrationDetails)


class RegistrationResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    category: str
    details: dict
    status: str
    registered_at: datetime
    promoted_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    model_config = {"from_attributes": True}


class RegistrationOutcomeResponse(BaseModel):
    result: str  # admitted, waitlisted
    registration: RegistrationResponse
    waitlist_position: Optional[int] = None
