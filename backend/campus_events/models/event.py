"""
Event model with participant accounting.

Key design decisions:
- `current_participants` is a cached count of `registered` rows. Only the
  registration coordinator mutates it, through conditional UPDATEs.
- CHECK constraints keep the cache within [0, max_participants] so a bug in
  application code still cannot overbook.
- `status` is written exclusively by the lifecycle service, which also
  records every change in `event_status_changes`.
- Quotas are named sub-capacities (e.g. volunteers) inside the overall
  capacity; each has its own `filled` counter guarded the same way.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from campus_events.db.base import Base, TimestampMixin, UTCDateTime


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    description = Column(String(2000), nullable=True)
    venue = Column(String(255), nullable=False)
    start_time = Column(UTCDateTime(), nullable=False)
    registration_deadline = Column(UTCDateTime(), nullable=True)
    max_participants = Column(Integer, nullable=True)  # NULL = unlimited
    current_participants = Column(Integer, nullable=False, default=0)
    waitlist_enabled = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)

    club_id = Column(Integer, ForeignKey("clubs.id"), nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Review audit fields, written by the lifecycle service only
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(UTCDateTime(), nullable=True)
    review_notes = Column(String(1000), nullable=True)
    approval_override = Column(Boolean, nullable=False, default=False)

    version = Column(Integer, nullable=False, default=1)

    club = relationship("Club", lazy="selectin")
    quotas = relationship(
        "EventQuota",
        back_populates="event",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="EventQuota.category",
    )

    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="check_participants_non_negative"),
        CheckConstraint(
            "max_participants IS NULL OR max_participants > 0",
            name="check_max_participants_positive",
        ),
        CheckConstraint(
            "max_participants IS NULL OR current_participants <= max_participants",
            name="check_participants_lte_max",
        ),
        CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', 'rejected', 'completed', 'cancelled')",
            name="check_event_status",
        ),
        Index("ix_events_status_start", "status", "start_time"),
    )

    def quota_for(self, category: str):
        for quota in self.quotas:
            if quota.category == category:
                return quota
        return None

    def __repr__(self) -> str:
        cap = self.max_participants if self.max_participants is not None else "inf"
        return f"<Event(id={self.id}, name={self.name}, status={self.status}, {self.current_participants}/{cap})>"


class EventQuota(Base):
    __tablename__ = "event_quotas"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(20), nullable=False)
    max_slots = Column(Integer, nullable=False)
    filled = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="quotas")

    __table_args__ = (
        UniqueConstraint("event_id", "category", name="uq_event_quota_category"),
        CheckConstraint("max_slots > 0", name="check_quota_max_positive"),
        CheckConstraint("filled >= 0 AND filled <= max_slots", name="check_quota_filled_range"),
    )


class EventStatusChange(Base):
    """Append-only audit trail of lifecycle transitions."""

    __tablename__ = "event_status_changes"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(20), nullable=False)
    to_status = Column(String(20), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # NULL for the sweep
    notes = Column(String(1000), nullable=True)
    override = Column(Boolean, nullable=False, default=False)
    created_at = Column(UTCDateTime(), nullable=False)
