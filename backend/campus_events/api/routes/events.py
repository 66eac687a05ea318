"""
Event endpoints: proposing, browsing and moving events through approval.
The approved-event listing is cached in Redis.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.db.session import get_db
from campus_events.models.user import User
from campus_events.schemas.event import (
    CancelRequest,
    EventCreate,
    EventResponse,
    EventListResponse,
    ReviewRequest,
    StatusChangeResponse,
)
from campus_events.services import lifecycle_service
from campus_events.services.event_service import create_event, get_event, list_events
from campus_events.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from campus_events.core.exceptions import NotFoundError
from campus_events.core.permissions import can_manage_event, can_view_event, require
from campus_events.core.security import get_current_user, get_optional_user
from campus_events.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


async def _visible_event(db: AsyncSession, event_id: int, user: Optional[User]):
    event = await get_event(db, event_id)
    if not can_view_event(user, event):
        raise NotFoundError(f"Event {event_id} not found")
    return event


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Propose an event for a club you are an officer of. It starts as a draft."""
    return await create_event(db, event_data, user)


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    club_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    List approved events with pagination.
    Cached in Redis; invalidated on lifecycle transitions and registrations.
    """
    cached = await get_cached_events(page, page_size, upcoming_only, club_id)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse(**cached)

    events, total = await list_events(db, page, page_size, upcoming_only, club_id=club_id)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump() for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_events(page, page_size, upcoming_only, response_data, club_id)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single event. Not cached (live participant counts)."""
    return await _visible_event(db, event_id, user)


@router.post("/{event_id}/submit", response_model=EventResponse)
async def submit_event(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Send a draft to the administrators for approval."""
    event = await _visible_event(db, event_id, user)
    await lifecycle_service.submit_for_approval(db, event, user)
    return event


@router.post("/{event_id}/approve", response_model=EventResponse)
async def approve_event(
    event_id: int,
    review: Optional[ReviewRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending event. `override` lets an administrator approve a draft directly."""
    event = await get_event(db, event_id)
    review = review or ReviewRequest()
    await lifecycle_service.approve(db, event, user, review.notes, review.override)
    await invalidate_event_cache()
    return event


@router.post("/{event_id}/reject", response_model=EventResponse)
async def reject_event(
    event_id: int,
    review: Optional[ReviewRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await get_event(db, event_id)
    review = review or ReviewRequest()
    await lifecycle_service.reject(db, event, user, review.notes)
    return event


@router.post("/{event_id}/cancel", response_model=EventResponse)
async def cancel_event(
    event_id: int,
    request: Optional[CancelRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel an approved event before it starts. Registrants are notified via the cancellation hook."""
    event = await get_event(db, event_id)
    request = request or CancelRequest()
    await lifecycle_service.cancel(db, event, user, request.notes)
    await invalidate_event_cache()
    return event


@router.get("/{event_id}/history", response_model=list[StatusChangeResponse])
async def event_history(
    event_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await get_event(db, event_id)
    require(can_manage_event(user, event), "Not authorized to view this event's history")
    return await lifecycle_service.get_status_history(db, event_id)
