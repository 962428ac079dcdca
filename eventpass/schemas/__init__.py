from eventpass.schemas.event import EventCreate, EventUpdate, EventResponse, EventStats
from eventpass.schemas.ticket import (
    TicketCreate, TicketUpdate, TicketResponse, TicketRole, VerifiedTicketView,
)
from eventpass.schemas.qr import QRPayload
from eventpass.schemas.template import TemplateDocument, Element, ElementKind, Background

__all__ = [
    "EventCreate", "EventUpdate", "EventResponse", "EventStats",
    "TicketCreate", "TicketUpdate", "TicketResponse", "TicketRole", "VerifiedTicketView",
    "QRPayload",
    "TemplateDocument", "Element", "ElementKind", "Background",
]
