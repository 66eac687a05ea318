"""
Event service: proposing events and reading the catalogue.
Status changes live in lifecycle_service; seat accounting in registration_service.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import NotFoundError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.core.permissions import can_create_event, require
from campus_events.models.club import Club
from campus_events.models.event import Event, EventQuota, EventStatus
from campus_events.models.user import User
from campus_events.schemas.event import EventCreate
from campus_events.services import lifecycle_service

logger = get_logger(__name__)


def _validate_quotas(event_data: EventCreate) -> None:
    categories = [q.category for q in event_data.quotas]
    if len(categories) != len(set(categories)):
        raise ValidationError("Each registration category may have only one quota")
    if event_data.max_participants is not None:
        for quota in event_data.quotas:
            if quota.max_slots > event_data.max_participants:
                raise ValidationError(
                    f"Quota for '{quota.category}' exceeds the event's maximum participants"
                )


async def create_event(db: AsyncSession, event_data: EventCreate, creator: User) -> Event:
    """Create a draft event for a club the creator is an officer of."""
    club = await db.get(Club, event_data.club_id)
    if club is None:
        raise NotFoundError(f"Club {event_data.club_id} not found")
    require(can_create_event(creator, club), "Only officers of an active club can create its events")

    if event_data.start_time <= datetime.now(timezone.utc):
        raise ValidationError("Event date must be in the future")
    if (
        event_data.registration_deadline is not None
        and event_data.registration_deadline >= event_data.start_time
    ):
        raise ValidationError("Registration deadline must be before the event date")
    _validate_quotas(event_data)

    event = Event(
        name=event_data.name,
        type=event_data.type,
        description=event_data.description,
        venue=event_data.venue,
        start_time=event_data.start_time,
        registration_deadline=event_data.registration_deadline,
        max_participants=event_data.max_participants,
        current_participants=0,
        waitlist_enabled=event_data.waitlist_enabled,
        status=EventStatus.DRAFT.value,
        club_id=club.id,
        created_by=creator.id,
        quotas=[
            EventQuota(category=q.category.value, max_slots=q.max_slots, filled=0)
            for q in event_data.quotas
        ],
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info(
        "event_created",
        event_id=event.id,
        name=event.name,
        club_id=club.id,
        max_participants=event.max_participants,
    )
    return event


async def get_event(db: AsyncSession, event_id: int, refresh_lifecycle: bool = True) -> Event:
    """
    Get a single event by ID, always re-read from the database.
    Approved events whose start time has passed are completed on the way.
    """
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()

    if not event:
        raise NotFoundError(f"Event {event_id} not found")
    if refresh_lifecycle:
        await lifecycle_service.complete_if_past(db, event)
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    status: Optional[EventStatus] = EventStatus.APPROVED,
    club_id: Optional[int] = None,
) -> tuple[list[Event], int]:
    """
    List events with pagination.
    Uses the ix_events_status_start index for the default approved+upcoming query.
    """
    query = select(Event)

    if status is not None:
        query = query.where(Event.status == status.value)
    if upcoming_only:
        query = query.where(Event.start_time >= datetime.now(timezone.utc))
    if club_id is not None:
        query = query.where(Event.club_id == club_id)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.start_time.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def list_pending_events(db: AsyncSession) -> list[Event]:
    """Approval queue for administrators, oldest submission first."""
    result = await db.execute(
        select(Event)
        .where(Event.status == EventStatus.PENDING_APPROVAL.value)
        .order_by(Event.updated_at.asc(), Event.id.asc())
    )
    return list(result.scalars().all())
