from campus_events.schemas.user import UserCreate, UserResponse, UserLogin, Token
from campus_events.schemas.club import ClubCreate, ClubResponse
from campus_events.schemas.event import (
    EventCreate, EventResponse, EventListResponse, QuotaCreate, ReviewRequest, StatusChangeResponse,
)
from campus_events.schemas.registration import (
    RegistrationCreate, RegistrationResponse, RegistrationOutcomeResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "ClubCreate", "ClubResponse",
    "EventCreate", "EventResponse", "EventListResponse", "QuotaCreate", "ReviewRequest",
    "StatusChangeResponse",
    "RegistrationCreate", "RegistrationResponse", "RegistrationOutcomeResponse",
]
