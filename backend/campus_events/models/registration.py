"""
Registration ledger: one row per registration attempt that was admitted or
waitlisted.

Key design decisions:
- Partial unique index on (event_id, user_id) over non-cancelled rows: a
  user holds at most one active registration per event, yet may register
  again after cancelling.
- Rows are never deleted; cancellation flips the status and keeps the row.
- `registered_at` plus the autoincrement id define FCFS order.
"""

import enum

from sqlalchemy import JSON, CheckConstraint, Column, ForeignKey, Index, Integer, String, text

from campus_events.db.base import Base, TimestampMixin, UTCDateTime


class RegistrationStatus(str, enum.Enum):
    REGISTERED = "registered"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"


class RegistrationCategory(str, enum.Enum):
    PARTICIPANT = "participant"
    VOLUNTEER = "volunteer"


_ACTIVE_ROWS = text("status <> 'cancelled'")


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category = Column(String(20), nullable=False, default=RegistrationCategory.PARTICIPANT.value)
    details = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=RegistrationStatus.REGISTERED.value)
    registered_at = Column(UTCDateTime(), nullable=False)
    promoted_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index(
            "uq_registration_active_user_event",
            "event_id",
            "user_id",
            unique=True,
            postgresql_where=_ACTIVE_ROWS,
            sqlite_where=_ACTIVE_ROWS,
        ),
        Index("ix_registrations_event_fcfs", "event_id", "status", "registered_at", "id"),
        CheckConstraint(
            "status IN ('registered', 'waitlisted', 'cancelled')",
            name="check_registration_status",
        ),
        CheckConstraint(
            "category IN ('participant', 'volunteer')",
            name="check_registration_category",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status != RegistrationStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, user={self.user_id}, event={self.event_id}, status={self.status})>"
