"""
Event service handling CRUD operations and dashboard statistics.
"""

from collections import Counter

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.clock import as_utc
from eventpass.core.errors import Forbidden, NotFound, ValidationError
from eventpass.core.logging import get_logger
from eventpass.models.event import Event
from eventpass.models.ticket import Ticket
from eventpass.schemas.event import EventCreate, EventStats, EventUpdate

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: str) -> Event:
    event = Event(
        organizer_id=organizer_id,
        **event_data.model_dump(),
    )
    db.add(event)
    await db.flush()
    await db.refresh(event)

    logger.info("event_created", event_id=event.id, title=event.title, benefits=len(event.available_benefits))
    return event


async def get_event(db: AsyncSession, event_id: str) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise NotFound(f"Event {event_id} not found")
    return event


async def get_owned_event(db: AsyncSession, event_id: str, organizer_id: str) -> Event:
    """Get an event and make sure the caller organizes it."""
    event = await get_event(db, event_id)
    if event.organizer_id != organizer_id:
        logger.warning("event_access_denied", event_id=event_id, user_id=organizer_id)
        raise Forbidden("You are not the organizer of this event")
    return event


async def list_events(db: AsyncSession, organizer_id: str) -> list[Event]:
    result = await db.execute(
        select(Event)
        .where(Event.organizer_id == organizer_id)
        .order_by(Event.start_date.asc())
    )
    return list(result.scalars().all())


async def update_event(db: AsyncSession, event: Event, changes: EventUpdate) -> Event:
    fields = changes.model_dump(exclude_unset=True)
    for name, value in fields.items():
        setattr(event, name, value)

    if event.end_date is not None and as_utc(event.end_date) < as_utc(event.start_date):
        raise ValidationError("end_date must not be before start_date")

    await db.flush()
    await db.refresh(event)
    logger.info("event_updated", event_id=event.id, fields=sorted(fields))
    return event


async def delete_event(db: AsyncSession, event: Event) -> None:
    """Delete an event. Its tickets are removed first."""
    result = await db.execute(
        delete(Ticket).where(Ticket.event_id == event.id).execution_options(synchronize_session=False)
    )
    await db.delete(event)
    await db.flush()
    logger.info("event_deleted", event_id=event.id, tickets_deleted=result.rowcount)


async def get_event_stats(db: AsyncSession, event_id: str) -> EventStats:
    result = await db.execute(select(Ticket).where(Ticket.event_id == event_id))
    tickets = list(result.scalars().all())

    redeemed: Counter = Counter()
    for ticket in tickets:
        redeemed.update(ticket.used_benefits or [])

    return EventStats(
        event_id=event_id,
        tickets_issued=len(tickets),
        tickets_active=sum(1 for t in tickets if t.is_active),
        tickets_used=sum(1 for t in tickets if t.is_used),
        benefits_redeemed=sum(t.total_benefits_used for t in tickets),
        redemptions_by_benefit=dict(redeemed),
    )
