"""Initial schema: users, clubs, events with quotas and audit trail, registrations.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("reg_no", sa.String(50), nullable=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'student'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("token_jti", sa.String(64), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("reg_no", name="uq_users_reg_no"),
        sa.CheckConstraint("role IN ('student', 'faculty', 'admin')", name="check_user_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Clubs table
    op.create_table(
        "clubs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("president_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("vice_president_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("faculty_coordinator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_clubs_name"),
        sa.CheckConstraint("status IN ('active', 'inactive')", name="check_club_status"),
    )
    op.create_index("ix_clubs_id", "clubs", ["id"])

    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("venue", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_participants", sa.Integer(), nullable=True),
        sa.Column("current_participants", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("waitlist_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("club_id", sa.Integer(), sa.ForeignKey("clubs.id"), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewed_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_notes", sa.String(1000), nullable=True),
        sa.Column("approval_override", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("current_participants >= 0", name="check_participants_non_negative"),
        sa.CheckConstraint(
            "max_participants IS NULL OR max_participants > 0",
            name="check_max_participants_positive",
        ),
        sa.CheckConstraint(
            "max_participants IS NULL OR current_participants <= max_participants",
            name="check_participants_lte_max",
        ),
        sa.CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', 'rejected', 'completed', 'cancelled')",
            name="check_event_status",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_club_id", "events", ["club_id"])
    # The public catalogue is always "approved, starting after now, by start time"
    op.create_index("ix_events_status_start", "events", ["status", "start_time"])

    # Category quotas inside an event's capacity
    op.create_table(
        "event_quotas",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("max_slots", sa.Integer(), nullable=False),
        sa.Column("filled", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.UniqueConstraint("event_id", "category", name="uq_event_quota_category"),
        sa.CheckConstraint("max_slots > 0", name="check_quota_max_positive"),
        sa.CheckConstraint("filled >= 0 AND filled <= max_slots", name="check_quota_filled_range"),
    )
    op.create_index("ix_event_quotas_event_id", "event_quotas", ["event_id"])

    # Lifecycle audit trail
    op.create_table(
        "event_status_changes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("from_status", sa.String(20), nullable=False),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("override", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_event_status_changes_event_id", "event_status_changes", ["event_id"])

    # Registrations table
    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("category", sa.String(20), nullable=False, server_default=sa.text("'participant'")),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'registered'")),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("promoted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('registered', 'waitlisted', 'cancelled')",
            name="check_registration_status",
        ),
        sa.CheckConstraint(
            "category IN ('participant', 'volunteer')",
            name="check_registration_category",
        ),
    )
    op.create_index("ix_registrations_id", "registrations", ["id"])
    op.create_index("ix_registrations_event_id", "registrations", ["event_id"])
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    # One active registration per user and event; cancelled rows don't count,
    # so a student can register again after withdrawing.
    op.create_index(
        "uq_registration_active_user_event",
        "registrations",
        ["event_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )
    # Waitlist promotion scans (event, status) in FCFS order
    op.create_index(
        "ix_registrations_event_fcfs",
        "registrations",
        ["event_id", "status", "registered_at", "id"],
    )


def downgrade() -> None:
    op.drop_table("registrations")
    op.drop_table("event_status_changes")
    op.drop_table("event_quotas")
    op.drop_table("events")
    op.drop_table("clubs")
    op.drop_table("users")
