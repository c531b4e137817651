"""Initial schema: members, studio classes, schedules and class bookings.

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

ACTIVE_BOOKING = sa.text("status IN ('confirmed', 'waitlisted')")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Read-only catalog and directory tables (written by the admin screens)
    op.create_table(
        "members",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_members_email", "members", ["email"], unique=True)

    op.create_table(
        "studio_classes",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default=sa.text("60")),
        *_timestamps(),
        sa.CheckConstraint("capacity IS NULL OR capacity > 0", name="check_class_capacity_positive"),
    )

    op.create_table(
        "class_schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("class_id", sa.String(64), sa.ForeignKey("studio_classes.id"), nullable=False),
        sa.Column("starts_on", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_class_schedules_class_time", "class_schedules", ["class_id", "start_time"])

    # Bookings owned by the admission core
    op.create_table(
        "class_bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("class_id", sa.String(64), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time", sa.Time(), nullable=False),
        sa.Column("location", sa.String(20), nullable=False, server_default=sa.text("'studio'")),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('confirmed', 'waitlisted', 'cancelled')",
            name="check_class_booking_status",
        ),
        sa.CheckConstraint(
            "(status = 'waitlisted' AND waitlist_position IS NOT NULL AND waitlist_position > 0)"
            " OR (status <> 'waitlisted' AND waitlist_position IS NULL)",
            name="check_waitlist_position_only_when_waitlisted",
        ),
    )
    op.create_index("ix_class_bookings_user_id", "class_bookings", ["user_id"])
    # Every admission count and waitlist scan filters on one session and a status.
    op.create_index(
        "ix_class_bookings_session_status",
        "class_bookings",
        ["class_id", "booking_date", "booking_time", "status"],
    )
    # One active booking per member per session; cancelled history rows may repeat.
    op.create_index(
        "uq_class_bookings_active_member_session",
        "class_bookings",
        ["user_id", "class_id", "booking_date", "booking_time"],
        unique=True,
        postgresql_where=ACTIVE_BOOKING,
    )


def downgrade() -> None:
    op.drop_table("class_bookings")
    op.drop_table("class_schedules")
    op.drop_table("studio_classes")
    op.drop_table("members")
