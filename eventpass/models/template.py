"""
Stored ticket template: a named, categorized scene document.

The document itself (background + ordered elements) is kept as JSON and
validated through `eventpass.schemas.template.TemplateDocument` on the way
in and out.
"""

import uuid

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, Index, Integer, String

from eventpass.db.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class TicketTemplate(Base, TimestampMixin):
    __tablename__ = "ticket_templates"

    id = Column(String(36), primary_key=True, default=_new_id)
    creator_id = Column(String(255), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    is_public = Column(Boolean, nullable=False, default=True)
    canvas_width = Column(Integer, nullable=False)
    canvas_height = Column(Integer, nullable=False)
    background = Column(JSON, nullable=False, default=dict)
    elements = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        CheckConstraint("canvas_width > 0 AND canvas_height > 0", name="check_canvas_size_positive"),
        Index("ix_ticket_templates_public_category", "is_public", "category"),
    )

    def __repr__(self) -> str:
        return f"<TicketTemplate(id={self.id}, name={self.name}, category={self.category})>"
