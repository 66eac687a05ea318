"""
Registration endpoints backed by the registration coordinator.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.db.session import get_db
from campus_events.models.registration import RegistrationStatus
from campus_events.models.user import User
from campus_events.schemas.registration import (
    RegistrationCreate,
    RegistrationOutcomeResponse,
    RegistrationResponse,
)
from campus_events.services import registration_service
from campus_events.services.registration_service import RegistrationResult
from campus_events.services.event_service import get_event
from campus_events.services.cache_service import invalidate_event_cache
from campus_events.core.exceptions import RegistrationRejected
from campus_events.core.permissions import can_manage_event, require
from campus_events.core.security import get_current_user
from campus_events.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Registrations"])


@router.post(
    "/events/{event_id}/registrations",
    response_model=RegistrationOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_for_event(
    event_id: int,
    registration_data: Optional[RegistrationCreate] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Register for an approved event, first come first served.

    201 with result `admitted` or `waitlisted`. Rejections are 409 with a
    `reason` of already_registered, event_not_approved, event_in_past,
    deadline_passed, event_full or organizer_not_allowed.
    """
    registration_data = registration_data or RegistrationCreate()
    outcome = await registration_service.attempt_register(
        db,
        event_id,
        user.id,
        registration_data.category,
        registration_data.details.model_dump(),
    )
    if outcome.result == RegistrationResult.REJECTED:
        raise RegistrationRejected(outcome.reason.value, outcome.message)

    await invalidate_event_cache()
    position = await registration_service.waitlist_position(db, outcome.registration)
    return RegistrationOutcomeResponse(
        result=outcome.result.value,
        registration=RegistrationResponse.model_validate(outcome.registration),
        waitlist_position=position,
    )


@router.delete("/events/{event_id}/registrations/me", response_model=RegistrationResponse)
async def cancel_my_registration(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw from an event. Repeating the call returns the cancelled registration."""
    registration = await registration_service.cancel_registration(db, event_id, user.id)
    await invalidate_event_cache()
    return registration


@router.get("/events/{event_id}/registrations", response_model=list[RegistrationResponse])
async def list_event_registrations(
    event_id: int,
    status_filter: Optional[RegistrationStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Registration ledger in FCFS order. Event organizers and administrators only."""
    event = await get_event(db, event_id, refresh_lifecycle=False)
    require(can_manage_event(user, event), "Not authorized to view this event's registrations")
    return await registration_service.list_registrations(db, event_id, status_filter)


@router.get("/registrations/me", response_model=list[RegistrationResponse])
async def list_my_registrations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await registration_service.get_user_registrations(db, user.id)
