"""
Admission evaluator: decides whether a user may register for an event now.

Pure functions over immutable snapshots, no I/O. The registration
coordinator calls `evaluate` before writing and again after losing a
conditional update, so the same rules apply at decision time and at
commit time.

Check order (first failing check wins):
  1. requester already holds an active registration
  2. event lifecycle status is `approved`
  3. event has not started
  4. registration deadline has not passed
  5. organizer self-registration policy
  6. capacity, then category quota -> Waitlist if enabled, else EventFull
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from campus_events.models.event import Event, EventStatus


class Decision(str, enum.Enum):
    ADMIT = "admit"
    WAITLIST = "waitlist"
    REJECT = "reject"


class RejectReason(str, enum.Enum):
    ALREADY_REGISTERED = "already_registered"
    EVENT_NOT_APPROVED = "event_not_approved"
    EVENT_IN_PAST = "event_in_past"
    DEADLINE_PASSED = "deadline_passed"
    EVENT_FULL = "event_full"
    ORGANIZER_NOT_ALLOWED = "organizer_not_allowed"


REASON_MESSAGES = {
    RejectReason.ALREADY_REGISTERED: "You are already registered for this event",
    RejectReason.EVENT_NOT_APPROVED: "Event is not open for registration",
    RejectReason.EVENT_IN_PAST: "Cannot register for past events",
    RejectReason.DEADLINE_PASSED: "Registration deadline has passed",
    RejectReason.EVENT_FULL: "Event is full",
    RejectReason.ORGANIZER_NOT_ALLOWED: "Event organizers cannot register for their own event",
}

# Reasons that hold for every requester, not just the one being evaluated
EVENT_WIDE_REASONS = frozenset({
    RejectReason.EVENT_NOT_APPROVED,
    RejectReason.EVENT_IN_PAST,
    RejectReason.DEADLINE_PASSED,
})


@dataclass(frozen=True)
class QuotaSnapshot:
    category: str
    max_slots: int
    filled: int

    @property
    def has_room(self) -> bool:
        return self.filled < self.max_slots


@dataclass(frozen=True)
class EventSnapshot:
    status: str
    start_time: datetime
    registration_deadline: Optional[datetime]
    max_participants: Optional[int]
    current_participants: int
    waitlist_enabled: bool = False

    @classmethod
    def from_event(cls, event: Event) -> "EventSnapshot":
        return cls(
            status=event.status,
            start_time=event.start_time,
            registration_deadline=event.registration_deadline,
            max_participants=event.max_participants,
            current_participants=event.current_participants,
            waitlist_enabled=bool(event.waitlist_enabled),
        )

    @property
    def has_capacity(self) -> bool:
        if self.max_participants is None:
            return True
        return self.current_participants < self.max_participants


@dataclass(frozen=True)
class AdmissionPolicy:
    allow_organizer_registration: bool = False


@dataclass(frozen=True)
class AdmissionDecision:
    decision: Decision
    reason: Optional[RejectReason] = None

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.reason) if self.reason else None


ADMIT = AdmissionDecision(Decision.ADMIT)
WAITLIST = AdmissionDecision(Decision.WAITLIST)


def reject(reason: RejectReason) -> AdmissionDecision:
    return AdmissionDecision(Decision.REJECT, reason)


def check_registration_window(event: EventSnapshot, now: datetime) -> Optional[RejectReason]:
    """Lifecycle, start time and deadline checks; None when registration is open."""
    if event.status == EventStatus.COMPLETED.value:
        return RejectReason.EVENT_IN_PAST
    if event.status != EventStatus.APPROVED.value:
        return RejectReason.EVENT_NOT_APPROVED
    if event.start_time < now:
        return RejectReason.EVENT_IN_PAST
    if event.registration_deadline is not None and event.registration_deadline < now:
        return RejectReason.DEADLINE_PASSED
    return None


def evaluate(
    event: EventSnapshot,
    now: datetime,
    *,
    already_registered: bool = False,
    is_organizer: bool = False,
    quota: Optional[QuotaSnapshot] = None,
    policy: AdmissionPolicy = AdmissionPolicy(),
    capacity_exhausted: bool = False,
) -> AdmissionDecision:
    """
    Decide Admit / Waitlist / Reject(reason) for one requester.

    Args:
        event: event state as read from the store
        now: evaluation instant (aware datetime)
        already_registered: requester holds a registered or waitlisted row
        is_organizer: requester created the event or is an officer of its club
        quota: quota for the requested category, if the event defines one
        policy: caller-supplied policy switches
        capacity_exhausted: force the capacity check to fail, used when the
            conditional seat update was lost to a concurrent attempt
    """
    if already_registered:
        return reject(RejectReason.ALREADY_REGISTERED)

    window = check_registration_window(event, now)
    if window is not None:
        return reject(window)

    if is_organizer and not policy.allow_organizer_registration:
        return reject(RejectReason.ORGANIZER_NOT_ALLOWED)

    full = capacity_exhausted or not event.has_capacity
    if not full and quota is not None:
        full = not quota.has_room

    if not full:
        return ADMIT
    if event.waitlist_enabled:
        return WAITLIST
    return reject(RejectReason.EVENT_FULL)
