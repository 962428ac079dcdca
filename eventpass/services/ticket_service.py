"""
Ticket service: issuance, lookups and organizer edits.

CONCURRENCY STRATEGY: Conditional update on a version column
============================================================

Problem:
  Two staff members scan the same ticket at the same time for different
  benefits. Both read used_benefits=["Lunch"], both append their benefit
  and write back. The second write silently drops the first redemption.

Solution:
  Every mutation is a single conditional UPDATE:

    UPDATE tickets SET ..., version = version + 1
    WHERE id = :id AND version = :seen_version [AND is_active AND NOT is_used]

  If rows_affected == 0 the row changed underneath us: re-read it and
  re-evaluate the rules against the fresh state (the benefit may now be
  already redeemed, or the ticket closed). Counters derived from
  used_benefits are computed here, inside the same UPDATE, never accepted
  from the caller.
"""

import uuid
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.clock import utcnow
from eventpass.core.config import get_settings
from eventpass.core.errors import BackendError, NotFound, ValidationError
from eventpass.core.logging import get_logger
from eventpass.core.metrics import tickets_issued
from eventpass.models.event import Event
from eventpass.models.ticket import Ticket
from eventpass.schemas.ticket import TicketCreate, TicketUpdate
from eventpass.services.credentials import build_qr_payload, generate_pin, parse_qr_payload

logger = get_logger(__name__)
settings = get_settings()

# Fields an organizer may clear by sending null
NULLABLE_FIELDS = frozenset({"accommodation_type"})


def check_benefit_catalog(event: Event, selected: list[str]) -> None:
    if not settings.ENFORCE_BENEFIT_CATALOG:
        return
    unknown = [b for b in selected if b not in (event.available_benefits or [])]
    if unknown:
        raise ValidationError(f"Benefits not offered by this event: {', '.join(unknown)}")


def is_fully_used(selected: list[str], used: list[str]) -> bool:
    return bool(selected) and set(used) == set(selected)


async def _resolve_credentials(db: AsyncSession, event: Event, data: TicketCreate, ticket_id: str) -> tuple[str, str]:
    if data.qr_payload is not None and data.pin is None:
        raise ValidationError("A QR payload can only be supplied together with its PIN")

    if data.pin is None:
        pin = generate_pin()
        qr_payload = build_qr_payload(event.id, data.holder_name, data.holder_email, pin, ticket_id=ticket_id)
    elif data.qr_payload is None:
        pin = data.pin
        qr_payload = build_qr_payload(event.id, data.holder_name, data.holder_email, pin, ticket_id=ticket_id)
    else:
        pin, qr_payload = data.pin, data.qr_payload
        payload = parse_qr_payload(qr_payload)
        if (
            payload.event_id != event.id
            or payload.pin_code != pin
            or payload.participant_name != data.holder_name
            or payload.email != data.holder_email
        ):
            raise ValidationError("QR payload does not match this ticket's event, holder or PIN")

    taken = await db.execute(
        select(Ticket.id).where(Ticket.event_id == event.id, Ticket.pin_code == pin)
    )
    if taken.first() is not None:
        logger.warning("issuance_pin_collision", event_id=event.id)
        raise ValidationError("PIN or QR payload already in use for this event, refresh the credentials")

    return pin, qr_payload


async def issue_ticket(db: AsyncSession, event: Event, data: TicketCreate) -> Ticket:
    """Validate issuance input, bind credentials and insert the ticket."""
    check_benefit_catalog(event, data.selected_benefits)

    if event.max_attendees is not None:
        issued = await db.execute(select(func.count(Ticket.id)).where(Ticket.event_id == event.id))
        if issued.scalar_one() >= event.max_attendees:
            raise ValidationError(f"Event is at capacity ({event.max_attendees} tickets)")

    ticket_id = str(uuid.uuid4())
    pin, qr_payload = await _resolve_credentials(db, event, data, ticket_id)

    ticket = Ticket(
        id=ticket_id,
        event_id=event.id,
        holder_name=data.holder_name,
        holder_email=data.holder_email,
        pin_code=pin,
        qr_payload=qr_payload,
        role=data.role.value,
        selected_benefits=list(data.selected_benefits),
        used_benefits=[],
        total_benefits_used=0,
        is_used=False,
        is_active=True,
        meal_options=list(data.meal_options),
        accommodation_type=data.accommodation_type,
        transport_included=data.transport_included,
        version=1,
    )
    db.add(ticket)
    try:
        await db.flush()
    except IntegrityError:
        # Lost a race for the same PIN or QR payload against another issuance
        await db.rollback()
        raise ValidationError("PIN or QR payload already in use for this event, refresh the credentials")
    await db.refresh(ticket)

    tickets_issued.inc()
    logger.info(
        "ticket_issued",
        ticket_id=ticket.id,
        event_id=event.id,
        role=ticket.role,
        benefits=len(ticket.selected_benefits),
    )
    return ticket


async def get_ticket(db: AsyncSession, ticket_id: str, fresh: bool = False) -> Ticket:
    query = select(Ticket).where(Ticket.id == ticket_id)
    if fresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    ticket = result.scalar_one_or_none()
    if not ticket:
        raise NotFound(f"Ticket {ticket_id} not found")
    return ticket


async def get_ticket_by_qr(db: AsyncSession, event_id: str, qr_payload: str) -> Optional[Ticket]:
    """Exact match on the stored payload, scoped to one event."""
    result = await db.execute(
        select(Ticket)
        .where(Ticket.event_id == event_id, Ticket.qr_payload == qr_payload)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_ticket_by_pin(db: AsyncSession, event_id: str, pin: str) -> Optional[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.event_id == event_id, Ticket.pin_code == pin)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_tickets_by_event(db: AsyncSession, event_id: str) -> list[Ticket]:
    result = await db.execute(
        select(Ticket)
        .where(Ticket.event_id == event_id)
        .order_by(Ticket.created_at.asc(), Ticket.holder_name.asc())
    )
    return list(result.scalars().all())


async def conditional_update(
    db: AsyncSession,
    ticket_id: str,
    expected_version: int,
    values: dict,
    open_only: bool = False,
) -> bool:
    """
    Apply `values` only if the ticket is still at `expected_version`.
    With `open_only`, also require the ticket to be active and not used.
    Returns False when another writer got there first.
    """
    conditions = [Ticket.id == ticket_id, Ticket.version == expected_version]
    if open_only:
        conditions += [Ticket.is_active.is_(True), Ticket.is_used.is_(False)]

    result = await db.execute(
        update(Ticket)
        .where(*conditions)
        .values(**values, version=expected_version + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def update_ticket(db: AsyncSession, ticket_id: str, changes: TicketUpdate) -> Ticket:
    """
    Organizer edit. Holder details, role, benefits and extras may change;
    PIN, payload and redemption history may not. Keeps used ⊆ selected and
    recomputes is_used from the new selection.
    """
    fields = changes.model_dump(exclude_unset=True)
    if "role" in fields and fields["role"] is not None:
        fields["role"] = fields["role"].value

    for attempt in range(1, settings.MAX_REDEMPTION_ATTEMPTS + 1):
        ticket = await get_ticket(db, ticket_id, fresh=True)
        values = {k: v for k, v in fields.items() if v is not None or k in NULLABLE_FIELDS}

        if "selected_benefits" in values:
            selected = values["selected_benefits"]
            event = await db.get(Event, ticket.event_id)
            check_benefit_catalog(event, selected)
            dropped = [b for b in ticket.used_benefits if b not in selected]
            if dropped:
                raise ValidationError(f"Cannot remove benefits that were already used: {', '.join(dropped)}")

            closed = is_fully_used(selected, ticket.used_benefits)
            values["is_used"] = closed
            if closed and not ticket.is_used:
                values["used_at"] = utcnow()
            elif not closed:
                values["used_at"] = None

        if await conditional_update(db, ticket.id, ticket.version, values):
            ticket = await get_ticket(db, ticket_id, fresh=True)
            logger.info("ticket_updated", ticket_id=ticket.id, fields=sorted(values))
            return ticket

        logger.info("ticket_update_retry", ticket_id=ticket_id, attempt=attempt, reason="version_conflict")

    raise BackendError("Ticket is being updated by someone else, please try again")


async def delete_ticket(db: AsyncSession, ticket: Ticket) -> None:
    await db.delete(ticket)
    await db.flush()
    logger.info("ticket_deleted", ticket_id=ticket.id, event_id=ticket.event_id)
