"""
Authorization predicates.

Every role or ownership decision in the API goes through one of these
functions; routes and services never compare role strings themselves.
"""

from typing import Optional

from campus_events.core.exceptions import UnauthorizedError
from campus_events.models.club import Club
from campus_events.models.event import Event, EventStatus
from campus_events.models.user import User


def is_club_officer(actor: User, club: Optional[Club]) -> bool:
    return club is not None and actor.id in club.officer_ids


def can_create_event(actor: User, club: Optional[Club]) -> bool:
    """Officers of an active club may propose events for it."""
    return actor.is_active and club is not None and club.is_active and is_club_officer(actor, club)


def can_approve(actor: User) -> bool:
    return actor.is_active and actor.is_admin


def can_manage_club(actor: User, club: Club) -> bool:
    """The president changes the club and its officers; administrators may too."""
    return can_approve(actor) or (actor.is_active and actor.id == club.president_id)


def can_manage_event(actor: User, event: Event) -> bool:
    """Creator, officers of the owning club, and administrators."""
    if can_approve(actor):
        return True
    return actor.id == event.created_by or is_club_officer(actor, event.club)


def is_event_organizer(actor: User, event: Event) -> bool:
    return actor.id == event.created_by or is_club_officer(actor, event.club)


def can_view_event(actor: Optional[User], event: Event) -> bool:
    """Drafts are visible to their managers only."""
    if event.status != EventStatus.DRAFT.value:
        return True
    return actor is not None and can_manage_event(actor, event)


def can_register(actor: User, event: Event) -> bool:
    """
    Coarse gate on who may attempt a registration at all.
    Capacity, deadline, lifecycle and organizer policy belong to the
    admission evaluator.
    """
    return actor.is_active and can_view_event(actor, event)


def require(allowed: bool, message: str = "Not authorized to perform this action") -> None:
    if not allowed:
        raise UnauthorizedError(message)
