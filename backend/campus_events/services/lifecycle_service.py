"""
Event approval state machine.

    draft -> pending_approval -> approved -> completed
                              \-> rejected \-> cancelled

This module is the only writer of `events.status` and the review audit
fields. Each transition is a conditional UPDATE on the expected current
status, so two administrators acting at once cannot both succeed, and
each one appends an `event_status_changes` row.

Administrators may approve a draft directly (`override=True`); such
approvals are flagged on the event and in the audit row, and logged under
their own event name.

Hooks registered with `register_transition_hook` run after the transition
is flushed, inside the same transaction.
"""

from collections import defaultdict
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.exceptions import ConflictError, InvalidStateError, ValidationError
from campus_events.core.logging import get_logger
from campus_events.core.metrics import record_transition
from campus_events.core.permissions import can_approve, is_event_organizer, require
from campus_events.db.base import utcnow
from campus_events.models.event import Event, EventStatus, EventStatusChange
from campus_events.models.user import User

logger = get_logger(__name__)

TRANSITIONS = frozenset({
    (EventStatus.DRAFT, EventStatus.PENDING_APPROVAL),
    (EventStatus.PENDING_APPROVAL, EventStatus.APPROVED),
    (EventStatus.PENDING_APPROVAL, EventStatus.REJECTED),
    (EventStatus.APPROVED, EventStatus.COMPLETED),
    (EventStatus.APPROVED, EventStatus.CANCELLED),
})

OVERRIDE_TRANSITIONS = frozenset({
    (EventStatus.DRAFT, EventStatus.APPROVED),
})

REVIEW_STATUSES = frozenset({EventStatus.APPROVED, EventStatus.REJECTED})

TransitionHook = Callable[[AsyncSession, Event, EventStatusChange], Awaitable[None]]

_hooks: dict[EventStatus, list[TransitionHook]] = defaultdict(list)


def register_transition_hook(to_status: EventStatus, hook: TransitionHook) -> None:
    """Run `hook(db, event, change)` after every transition into `to_status`."""
    if hook not in _hooks[to_status]:
        _hooks[to_status].append(hook)


def unregister_transition_hook(to_status: EventStatus, hook: TransitionHook) -> None:
    if hook in _hooks[to_status]:
        _hooks[to_status].remove(hook)


def is_allowed(from_status: EventStatus, to_status: EventStatus, override: bool = False) -> bool:
    if (from_status, to_status) in TRANSITIONS:
        return True
    return override and (from_status, to_status) in OVERRIDE_TRANSITIONS


async def _transition(
    db: AsyncSession,
    event: Event,
    to_status: EventStatus,
    actor_id: Optional[int],
    notes: Optional[str] = None,
    override: bool = False,
    now: Optional[datetime] = None,
) -> EventStatusChange:
    now = now or utcnow()
    from_status = EventStatus(event.status)

    if not is_allowed(from_status, to_status, override):
        raise InvalidStateError(
            f"Cannot move event from '{from_status.value}' to '{to_status.value}'"
        )

    values = {"status": to_status.value, "version": Event.version + 1}
    if to_status in REVIEW_STATUSES:
        values.update(
            reviewed_by=actor_id,
            reviewed_at=now,
            review_notes=notes,
            approval_override=override and from_status == EventStatus.DRAFT,
        )

    result = await db.execute(
        update(Event)
        .where(Event.id == event.id, Event.status == from_status.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("event_transition_conflict", event_id=event.id, expected=from_status.value)
        raise ConflictError("Event status was changed by another request, reload and retry")

    change = EventStatusChange(
        event_id=event.id,
        from_status=from_status.value,
        to_status=to_status.value,
        actor_id=actor_id,
        notes=notes,
        override=bool(values.get("approval_override", False)),
        created_at=now,
    )
    db.add(change)
    await db.flush()
    await db.refresh(event)

    if change.override:
        logger.warning(
            "event_approval_override",
            event_id=event.id,
            actor_id=actor_id,
            from_status=from_status.value,
        )
    else:
        logger.info(
            "event_transition",
            event_id=event.id,
            actor_id=actor_id,
            from_status=from_status.value,
            to_status=to_status.value,
        )
    record_transition(to_status.value, change.override)

    for hook in list(_hooks[to_status]):
        await hook(db, event, change)
    return change


def _validate_for_submission(event: Event, now: datetime) -> None:
    missing = [f for f in ("name", "type", "venue", "start_time", "club_id") if not getattr(event, f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if event.start_time <= now:
        raise ValidationError("Event date must be in the future")
    if event.registration_deadline is not None and event.registration_deadline >= event.start_time:
        raise ValidationError("Registration deadline must be before the event date")
    if event.club is None or not event.club.is_active:
        raise InvalidStateError("Events can only be submitted for active clubs")


async def submit_for_approval(db: AsyncSession, event: Event, actor: User, now: Optional[datetime] = None):
    """draft -> pending_approval, by the creator or an officer of the owning club."""
    require(is_event_organizer(actor, event), "Only the event's organizers can submit it")
    now = now or utcnow()
    _validate_for_submission(event, now)
    return await _transition(db, event, EventStatus.PENDING_APPROVAL, actor.id, now=now)


async def approve(
    db: AsyncSession,
    event: Event,
    actor: User,
    notes: Optional[str] = None,
    override: bool = False,
    now: Optional[datetime] = None,
):
    """pending_approval -> approved; with `override`, also draft -> approved."""
    require(can_approve(actor), "Only administrators can approve events")
    now = now or utcnow()
    if event.start_time <= now:
        raise InvalidStateError("Event has already started")
    if override and event.status == EventStatus.DRAFT.value:
        _validate_for_submission(event, now)
    return await _transition(db, event, EventStatus.APPROVED, actor.id, notes, override, now)


async def reject(
    db: AsyncSession,
    event: Event,
    actor: User,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
):
    require(can_approve(actor), "Only administrators can reject events")
    if not notes:
        logger.info("event_rejected_without_notes", event_id=event.id, actor_id=actor.id)
    return await _transition(db, event, EventStatus.REJECTED, actor.id, notes, now=now)


async def cancel(
    db: AsyncSession,
    event: Event,
    actor: User,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
):
    """approved -> cancelled, any time before the event starts."""
    require(can_approve(actor), "Only administrators can cancel events")
    now = now or utcnow()
    if event.status == EventStatus.APPROVED.value and event.start_time <= now:
        raise InvalidStateError("Event has already started")
    return await _transition(db, event, EventStatus.CANCELLED, actor.id, notes, now=now)


async def complete_if_past(db: AsyncSession, event: Event, now: Optional[datetime] = None) -> bool:
    """Lazily mark an approved event completed once it has started."""
    now = now or utcnow()
    if event.status != EventStatus.APPROVED.value or event.start_time >= now:
        return False
    try:
        await _transition(db, event, EventStatus.COMPLETED, None, now=now)
    except ConflictError:
        # Another request completed or cancelled it first
        await db.refresh(event)
        return False
    return True


async def complete_past_events(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Sweep: approved events whose start time has passed become completed."""
    now = now or utcnow()
    result = await db.execute(
        select(Event)
        .where(Event.status == EventStatus.APPROVED.value, Event.start_time < now)
        .order_by(Event.start_time.asc())
    )
    completed = 0
    for event in result.scalars().all():
        if await complete_if_past(db, event, now):
            completed += 1
    if completed:
        logger.info("completion_sweep", completed=completed)
    return completed


async def get_status_history(db: AsyncSession, event_id: int) -> list[EventStatusChange]:
    result = await db.execute(
        select(EventStatusChange)
        .where(EventStatusChange.event_id == event_id)
        .order_by(EventStatusChange.created_at.asc(), EventStatusChange.id.asc())
    )
    return list(result.scalars().all())
