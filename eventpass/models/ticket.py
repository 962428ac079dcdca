"""
Ticket model: one issued credential and its redemption state.

Key design decisions:
- `used_benefits` is authoritative; `total_benefits_used` and `is_used` are
  materialized from it inside the same UPDATE and never taken from callers
- `version` column enables optimistic locking for concurrent redemption
- Unique (event_id, pin_code) so a PIN identifies at most one ticket per event
- `pin_code` and `qr_payload` are written once at issuance
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from eventpass.db.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(String(36), primary_key=True, default=_new_id)
    event_id = Column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    holder_name = Column(String(255), nullable=False)
    holder_email = Column(String(255), nullable=False)
    pin_code = Column(String(6), nullable=False)
    qr_payload = Column(Text, nullable=False)
    role = Column(String(50), nullable=False, default="attendee")

    selected_benefits = Column(JSON, nullable=False, default=list)
    used_benefits = Column(JSON, nullable=False, default=list)
    total_benefits_used = Column(Integer, nullable=False, default=0)
    is_used = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    used_at = Column(DateTime(timezone=True), nullable=True)

    meal_options = Column(JSON, nullable=False, default=list)
    accommodation_type = Column(String(100), nullable=True)
    transport_included = Column(Boolean, nullable=False, default=False)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    event = relationship("Event", back_populates="tickets")

    __table_args__ = (
        UniqueConstraint("event_id", "pin_code", name="uq_ticket_event_pin"),
        CheckConstraint("total_benefits_used >= 0", name="check_total_benefits_used_non_negative"),
        # Scanner lookup is an exact match on (event_id, qr_payload)
        Index("ix_tickets_event_qr", "event_id", "qr_payload", unique=True),
    )

    @property
    def status(self) -> str:
        if not self.is_active:
            return "inactive"
        if self.is_used:
            return "used"
        return "valid"

    @property
    def remaining_benefits(self) -> list[str]:
        used = set(self.used_benefits or [])
        return [b for b in (self.selected_benefits or []) if b not in used]

    def __repr__(self) -> str:
        return (
            f"<Ticket(id={self.id}, event={self.event_id}, "
            f"used={self.total_benefits_used}/{len(self.selected_benefits or [])}, status={self.status})>"
        )
