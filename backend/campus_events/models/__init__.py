from campus_events.models.user import User, UserRole
from campus_events.models.club import Club
from campus_events.models.event import Event, EventQuota, EventStatus, EventStatusChange
from campus_events.models.registration import Registration, RegistrationCategory, RegistrationStatus

__all__ = [
    "User", "UserRole",
    "Club",
    "Event", "EventQuota", "EventStatus", "EventStatusChange",
    "Registration", "RegistrationCategory", "RegistrationStatus",
]
