"""
Event model owning a catalog of redeemable benefits.

Key design decisions:
- `organizer_id` is the identity provider's subject, not a local FK
- `available_benefits` is the catalog tickets draw `selected_benefits` from
- Tickets are deleted with their event (ORM cascade and ON DELETE CASCADE)
"""

import uuid

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, CheckConstraint
from sqlalchemy.orm import relationship

from eventpass.db.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_id)
    organizer_id = Column(String(255), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=True)
    company_name = Column(String(255), nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    location = Column(String(255), nullable=True)
    max_attendees = Column(Integer, nullable=True)
    available_benefits = Column(JSON, nullable=False, default=list)

    tickets = relationship(
        "Ticket",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("max_attendees IS NULL OR max_attendees > 0", name="check_max_attendees_positive"),
        Index("ix_events_organizer_start", "organizer_id", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, organizer={self.organizer_id})>"
