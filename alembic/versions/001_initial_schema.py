"""Initial schema: events, tickets, ticket templates with indexes and constraints.

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
    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("organizer_id", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("max_attendees", sa.Integer(), nullable=True),
        sa.Column("available_benefits", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("max_attendees IS NULL OR max_attendees > 0", name="check_max_attendees_positive"),
    )
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    # Dashboard lists an organizer's events by start date
    op.create_index("ix_events_organizer_start", "events", ["organizer_id", "start_date"])

    # Tickets table
    op.create_table(
        "tickets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(36), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("holder_name", sa.String(255), nullable=False),
        sa.Column("holder_email", sa.String(255), nullable=False),
        sa.Column("pin_code", sa.String(6), nullable=False),
        sa.Column("qr_payload", sa.Text(), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default=sa.text("'attendee'")),
        sa.Column("selected_benefits", sa.JSON(), nullable=False),
        sa.Column("used_benefits", sa.JSON(), nullable=False),
        sa.Column("total_benefits_used", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("meal_options", sa.JSON(), nullable=False),
        sa.Column("accommodation_type", sa.String(100), nullable=True),
        sa.Column("transport_included", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "pin_code", name="uq_ticket_event_pin"),
        sa.CheckConstraint("total_benefits_used >= 0", name="check_total_benefits_used_non_negative"),
    )
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])
    # Scanner lookup: exact match on (event_id, qr_payload)
    op.create_index("ix_tickets_event_qr", "tickets", ["event_id", "qr_payload"], unique=True)

    # Ticket templates table
    op.create_table(
        "ticket_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("creator_id", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("canvas_width", sa.Integer(), nullable=False),
        sa.Column("canvas_height", sa.Integer(), nullable=False),
        sa.Column("background", sa.JSON(), nullable=False),
        sa.Column("elements", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("canvas_width > 0 AND canvas_height > 0", name="check_canvas_size_positive"),
    )
    op.create_index("ix_ticket_templates_creator_id", "ticket_templates", ["creator_id"])
    op.create_index("ix_ticket_templates_public_category", "ticket_templates", ["is_public", "category"])


def downgrade() -> None:
    op.drop_table("ticket_templates")
    op.drop_table("tickets")
    op.drop_table("events")
