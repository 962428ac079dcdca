from eventpass.models.event import Event
from eventpass.models.ticket import Ticket
from eventpass.models.template import TicketTemplate

__all__ = ["Event", "Ticket", "TicketTemplate"]
