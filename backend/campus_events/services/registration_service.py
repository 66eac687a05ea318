"""
Registration coordinator: turns admission decisions into ledger rows
without ever overbooking.

CONCURRENCY STRATEGY: Conditional UPDATE under a per-event lock
===============================================================

Problem:
  Two students try to take the last seat at once. Both read
  current_participants = max - 1, both insert a registration.
  Result: max + 1 registered rows.

Solution:
  1. Hold the per-event registration lock (see lock_factory). It removes
     contention but is not what guarantees correctness.
  2. Read a fresh event snapshot and the requester's active registration,
     then run the admission evaluator.
  3. On Admit, claim the seat with a single conditional statement:

       UPDATE events SET current_participants = current_participants + 1
       WHERE id = :id AND status = 'approved' AND start_time >= :now
         AND (registration_deadline IS NULL OR registration_deadline >= :now)
         AND (max_participants IS NULL OR current_participants < max_participants)

     and the same for the category quota, if any. The row count tells us
     whether we won. Capacity, deadline and status are thereby re-checked
     at commit time, not only at decision time.
  4. Insert the registration row and commit: the counter and the row land
     together or not at all.
  5. A lost claim re-runs the evaluator with capacity treated as
     exhausted, which yields Waitlist or Reject(event_full). Lost races are
     never reported as errors.

  A uniqueness violation on insert (the same user racing themselves) rolls
  the whole transaction back and becomes Reject(already_registered).

  Cancellation and promotion change an existing row's status the same way:
  UPDATE ... WHERE status = <status we read>. Seats are released or claimed
  only when this request's status change took effect, so two cancels of one
  row, or two promoters picking the same waitlisted row, move the counter once.

The functions here commit their own transaction and expect a session with
no uncommitted writes.
"""

import enum
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_events.core.config import get_settings
from campus_events.core.exceptions import ConflictError, NotFoundError
from campus_events.core.logging import get_logger
from campus_events.core.metrics import (
    record_registration,
    registration_latency,
    registration_races,
    waitlist_promotions,
)
from campus_events.core.permissions import can_register, is_event_organizer, require
from campus_events.db.base import utcnow
from campus_events.models.event import Event, EventQuota, EventStatus, EventStatusChange
from campus_events.models.registration import Registration, RegistrationCategory, RegistrationStatus
from campus_events.models.user import User
from campus_events.services import lifecycle_service
from campus_events.services.admission import (
    EVENT_WIDE_REASONS,
    REASON_MESSAGES,
    AdmissionPolicy,
    Decision,
    EventSnapshot,
    QuotaSnapshot,
    RejectReason,
    evaluate,
)
from campus_events.services.interfaces.registration_lock import RegistrationLock
from campus_events.services.lock_factory import get_registration_lock

logger = get_logger(__name__)

_CANCEL_ATTEMPTS = 3


class RegistrationResult(str, enum.Enum):
    ADMITTED = "admitted"
    WAITLISTED = "waitlisted"
    REJECTED = "rejected"


@dataclass
class RegistrationOutcome:
    result: RegistrationResult
    registration: Optional[Registration] = None
    reason: Optional[RejectReason] = None

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.reason) if self.reason else None


def _rejected(reason: RejectReason) -> RegistrationOutcome:
    return RegistrationOutcome(RegistrationResult.REJECTED, reason=reason)


def _policy() -> AdmissionPolicy:
    return AdmissionPolicy(allow_organizer_registration=get_settings().ALLOW_ORGANIZER_REGISTRATION)


def _quota_snapshot(quota: Optional[EventQuota]) -> Optional[QuotaSnapshot]:
    if quota is None:
        return None
    return QuotaSnapshot(category=quota.category, max_slots=quota.max_slots, filled=quota.filled)


async def _load_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    return event


async def find_active_registration(
    db: AsyncSession, event_id: int, user_id: int
) -> Optional[Registration]:
    result = await db.execute(
        select(Registration)
        .where(
            Registration.event_id == event_id,
            Registration.user_id == user_id,
            Registration.status != RegistrationStatus.CANCELLED.value,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _latest_registration(db: AsyncSession, event_id: int, user_id: int) -> Optional[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.event_id == event_id, Registration.user_id == user_id)
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_registrations(
    db: AsyncSession,
    event_id: int,
    status: Optional[RegistrationStatus] = None,
) -> list[Registration]:
    """Ledger for one event in FCFS order: registration time, then insertion sequence."""
    query = select(Registration).where(Registration.event_id == event_id)
    if status is not None:
        query = query.where(Registration.status == status.value)
    result = await db.execute(
        query
        .order_by(Registration.registered_at.asc(), Registration.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_user_registrations(db: AsyncSession, user_id: int) -> list[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.user_id == user_id)
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())


async def waitlist_position(db: AsyncSession, registration: Registration) -> Optional[int]:
    """1-based position among waitlisted rows of the same event."""
    if registration.status != RegistrationStatus.WAITLISTED.value:
        return None
    ahead = await db.scalar(
        select(func.count(Registration.id)).where(
            Registration.event_id == registration.event_id,
            Registration.status == RegistrationStatus.WAITLISTED.value,
            or_(
                Registration.registered_at < registration.registered_at,
                (Registration.registered_at == registration.registered_at)
                & (Registration.id < registration.id),
            ),
        )
    )
    return int(ahead or 0) + 1


async def _claim_seat(db: AsyncSession, event: Event, category: str, now: datetime) -> bool:
    """
    Atomically take one seat (and one quota slot) if the event still admits.

    Returns False when another attempt got there first or the event closed
    in the meantime; in that case nothing has changed in this transaction.
    """
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event.id,
            Event.status == EventStatus.APPROVED.value,
            Event.start_time >= now,
            or_(Event.registration_deadline.is_(None), Event.registration_deadline >= now),
            or_(
                Event.max_participants.is_(None),
                Event.current_participants < Event.max_participants,
            ),
        )
        .values(current_participants=Event.current_participants + 1, version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False

    quota = event.quota_for(category)
    if quota is None:
        return True

    result = await db.execute(
        update(EventQuota)
        .where(EventQuota.id == quota.id, EventQuota.filled < EventQuota.max_slots)
        .values(filled=EventQuota.filled + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return True

    # Same transaction, so undoing the event increment is invisible to others
    await db.execute(
        update(Event)
        .where(Event.id == event.id)
        .values(current_participants=Event.current_participants - 1, version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    return False


async def _release_seat(db: AsyncSession, event: Event, category: str) -> None:
    await db.execute(
        update(Event)
        .where(Event.id == event.id, Event.current_participants > 0)
        .values(current_participants=Event.current_participants - 1, version=Event.version + 1)
        .execution_options(synchronize_session=False)
    )
    quota = event.quota_for(category)
    if quota is not None:
        await db.execute(
            update(EventQuota)
            .where(EventQuota.id == quota.id, EventQuota.filled > 0)
            .values(filled=EventQuota.filled - 1)
            .execution_options(synchronize_session=False)
        )


async def _change_status(
    db: AsyncSession,
    registration: Registration,
    expected: RegistrationStatus,
    **values,
) -> bool:
    """
    Move one registration out of `expected`. Returns False when another
    request changed its status first; nothing is written in that case.
    """
    result = await db.execute(
        update(Registration)
        .where(Registration.id == registration.id, Registration.status == expected.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _insert(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    category: str,
    details: dict,
    status: RegistrationStatus,
    now: datetime,
) -> Optional[Registration]:
    """Insert and commit; None when the unique active-registration index fires."""
    registration = Registration(
        event_id=event_id,
        user_id=user_id,
        category=category,
        details=details,
        status=status.value,
        registered_at=now,
    )
    db.add(registration)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info("registration_duplicate", event_id=event_id, user_id=user_id)
        return None
    await db.commit()
    return registration


async def attempt_register(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    category: RegistrationCategory = RegistrationCategory.PARTICIPANT,
    details: Optional[dict] = None,
    now: Optional[datetime] = None,
    lock: Optional[RegistrationLock] = None,
) -> RegistrationOutcome:
    """
    Register `user_id` for `event_id`.

    Returns Admitted, Waitlisted or Rejected(reason). Raises NotFoundError
    for an unknown event or user and UnauthorizedError when the user may not
    register at all.
    """
    lock = lock or get_registration_lock()
    started = time.perf_counter()

    async with lock.hold(event_id):
        outcome = await _attempt_register_locked(
            db, event_id, user_id, RegistrationCategory(category).value, details or {}, now or utcnow()
        )

    registration_latency.observe(time.perf_counter() - started)
    record_registration(outcome.result.value, outcome.reason.value if outcome.reason else None)
    return outcome


async def _attempt_register_locked(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    category: str,
    details: dict,
    now: datetime,
) -> RegistrationOutcome:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    event = await _load_event(db, event_id)
    require(can_register(user, event), "Not allowed to register for this event")

    organizer = is_event_organizer(user, event)
    existing = await find_active_registration(db, event_id, user_id)
    decision = evaluate(
        EventSnapshot.from_event(event),
        now,
        already_registered=existing is not None,
        is_organizer=organizer,
        quota=_quota_snapshot(event.quota_for(category)),
        policy=_policy(),
    )

    if decision.decision == Decision.ADMIT:
        if await _claim_seat(db, event, category, now):
            registration = await _insert(
                db, event_id, user_id, category, details, RegistrationStatus.REGISTERED, now
            )
            if registration is None:
                return _rejected(RejectReason.ALREADY_REGISTERED)
            logger.info(
                "registration_admitted",
                registration_id=registration.id,
                event_id=event_id,
                user_id=user_id,
                category=category,
            )
            return RegistrationOutcome(RegistrationResult.ADMITTED, registration)

        # Lost the seat between decision and commit
        registration_races.inc()
        event = await _load_event(db, event_id)
        decision = evaluate(
            EventSnapshot.from_event(event),
            now,
            is_organizer=organizer,
            quota=_quota_snapshot(event.quota_for(category)),
            policy=_policy(),
            capacity_exhausted=True,
        )
        logger.info(
            "registration_race_lost",
            event_id=event_id,
            user_id=user_id,
            reevaluated=decision.decision.value,
        )

    if decision.decision == Decision.WAITLIST:
        registration = await _insert(
            db, event_id, user_id, category, details, RegistrationStatus.WAITLISTED, now
        )
        if registration is None:
            return _rejected(RejectReason.ALREADY_REGISTERED)
        logger.info(
            "registration_waitlisted",
            registration_id=registration.id,
            event_id=event_id,
            user_id=user_id,
            category=category,
        )
        return RegistrationOutcome(RegistrationResult.WAITLISTED, registration)

    logger.info(
        "registration_rejected",
        event_id=event_id,
        user_id=user_id,
        reason=decision.reason.value,
    )
    return _rejected(decision.reason)


async def _promote_waitlisted(db: AsyncSession, event_id: int, now: datetime) -> list[Registration]:
    """
    Offer freed seats to waitlisted rows in FCFS order.

    A candidate is promoted only if its own admission checks still pass.
    Event-wide failures (closed, started, past deadline) end the scan; a full
    quota only skips candidates of that category.
    """
    promoted = []
    for candidate in await list_registrations(db, event_id, RegistrationStatus.WAITLISTED):
        event = await _load_event(db, event_id)
        snapshot = EventSnapshot.from_event(event)
        decision = evaluate(
            snapshot,
            now,
            quota=_quota_snapshot(event.quota_for(candidate.category)),
            # Organizer policy was applied when the row was waitlisted
            policy=AdmissionPolicy(allow_organizer_registration=True),
        )
        if decision.decision != Decision.ADMIT:
            if decision.reason in EVENT_WIDE_REASONS or not snapshot.has_capacity:
                break
            # Only this candidate's quota is full
            continue

        if not await _claim_seat(db, event, candidate.category, now):
            break
        if not await _change_status(
            db,
            candidate,
            RegistrationStatus.WAITLISTED,
            status=RegistrationStatus.REGISTERED.value,
            promoted_at=now,
        ):
            # Promoted or withdrawn by a concurrent request; give the seat back
            await _release_seat(db, event, candidate.category)
            logger.info(
                "registration_promotion_conflict",
                registration_id=candidate.id,
                event_id=event_id,
            )
            continue
        await db.refresh(candidate)
        promoted.append(candidate)
        waitlist_promotions.inc()
        logger.info(
            "registration_promoted",
            registration_id=candidate.id,
            event_id=event_id,
            user_id=candidate.user_id,
            category=candidate.category,
        )
    return promoted


async def cancel_registration(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    now: Optional[datetime] = None,
    lock: Optional[RegistrationLock] = None,
) -> Registration:
    """
    Withdraw the user's registration. Idempotent: a registration that is
    already cancelled is returned unchanged.

    Freeing a registered seat promotes the earliest eligible waitlisted
    registration in the same transaction.
    """
    lock = lock or get_registration_lock()
    async with lock.hold(event_id):
        now = now or utcnow()
        event = await _load_event(db, event_id)

        # A row moves waitlisted -> registered -> cancelled at most, so each
        # lost status change is followed by a fresh read that settles it
        for _ in range(_CANCEL_ATTEMPTS):
            registration = await find_active_registration(db, event_id, user_id)
            if registration is None:
                latest = await _latest_registration(db, event_id, user_id)
                if latest is None:
                    raise NotFoundError("No registration found for this event")
                return latest

            previous = RegistrationStatus(registration.status)
            if await _change_status(
                db,
                registration,
                previous,
                status=RegistrationStatus.CANCELLED.value,
                cancelled_at=now,
            ):
                break
            logger.info(
                "registration_cancel_conflict",
                registration_id=registration.id,
                event_id=event_id,
                expected=previous.value,
            )
        else:
            raise ConflictError("Registration changed while cancelling, please try again")

        was_registered = previous == RegistrationStatus.REGISTERED
        promoted = []
        if was_registered:
            await _release_seat(db, event, registration.category)
            promoted = await _promote_waitlisted(db, event_id, now)

        await db.refresh(registration)
        await db.commit()

    logger.info(
        "registration_cancelled",
        registration_id=registration.id,
        event_id=event_id,
        user_id=user_id,
        freed_seat=was_registered,
        promoted=[r.id for r in promoted],
    )
    return registration


async def _notify_registrants_of_cancellation(
    db: AsyncSession, event: Event, change: EventStatusChange
) -> None:
    """Default cancellation hook: collect who has to be told."""
    result = await db.execute(
        select(Registration.user_id).where(
            Registration.event_id == event.id,
            Registration.status != RegistrationStatus.CANCELLED.value,
        )
    )
    user_ids = [row[0] for row in result.all()]
    logger.info(
        "event_cancelled_notify_registrants",
        event_id=event.id,
        registrants=len(user_ids),
        user_ids=user_ids,
        notes=change.notes,
    )


lifecycle_service.register_transition_hook(EventStatus.CANCELLED, _notify_registrants_of_cancellation)
