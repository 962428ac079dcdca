"""
Ticket endpoints.

Organizer endpoints need a bearer token for the owning event. The holder
lookup and the PIN-gated redeem are public: the 6-digit PIN is the
credential there.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.errors import InvalidPin, NotFound
from eventpass.core.logging import get_logger
from eventpass.core.security import get_current_user_id
from eventpass.db.session import get_db
from eventpass.models.ticket import Ticket
from eventpass.rendering.presets import get_preset
from eventpass.rendering.renderer import RenderMode, bindings_for_ticket, render_png
from eventpass.schemas.ticket import (
    CredentialsResponse,
    HolderDetails,
    PinLookup,
    RedeemRequest,
    RedemptionResponse,
    TicketCreate,
    TicketResponse,
    TicketUpdate,
    VerifiedTicketView,
)
from eventpass.services import redemption, template_service, ticket_service
from eventpass.services.credentials import issue_credentials
from eventpass.services.event_service import get_event, get_owned_event

logger = get_logger(__name__)
router = APIRouter(tags=["Tickets"])

DEFAULT_PRESET = "corporate"


async def _owned_ticket(db: AsyncSession, ticket_id: str, user_id: str) -> Ticket:
    ticket = await ticket_service.get_ticket(db, ticket_id)
    await get_owned_event(db, ticket.event_id, user_id)
    return ticket


@router.post("/events/{event_id}/tickets/credentials", response_model=CredentialsResponse)
async def preview_credentials_endpoint(
    event_id: str,
    holder: HolderDetails,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Generate a PIN and QR payload for the issuance form. Nothing is stored;
    call again to refresh, then send both back when issuing.
    """
    await get_owned_event(db, event_id, user_id)
    credentials = issue_credentials(event_id, holder.holder_name, holder.holder_email)
    return CredentialsResponse(pin=credentials.pin, qr_payload=credentials.qr_payload)


@router.post("/events/{event_id}/tickets", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def issue_ticket_endpoint(
    event_id: str,
    ticket_data: TicketCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    event = await get_owned_event(db, event_id, user_id)
    return await ticket_service.issue_ticket(db, event, ticket_data)


@router.get("/events/{event_id}/tickets", response_model=list[TicketResponse])
async def list_tickets_endpoint(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id, user_id)
    return await ticket_service.list_tickets_by_event(db, event_id)


@router.post("/events/{event_id}/tickets/lookup", response_model=VerifiedTicketView)
async def lookup_ticket_endpoint(
    event_id: str,
    lookup: PinLookup,
    db: AsyncSession = Depends(get_db),
):
    """Holder view of a ticket, found by its PIN."""
    await get_event(db, event_id)
    ticket = await ticket_service.get_ticket_by_pin(db, event_id, lookup.pin)
    if ticket is None:
        logger.info("ticket_lookup_miss", event_id=event_id)
        raise InvalidPin("No ticket matches this PIN")
    return ticket


@router.patch("/tickets/{ticket_id}", response_model=TicketResponse)
async def update_ticket_endpoint(
    ticket_id: str,
    changes: TicketUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await _owned_ticket(db, ticket_id, user_id)
    return await ticket_service.update_ticket(db, ticket_id, changes)


@router.delete("/tickets/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket_endpoint(
    ticket_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    ticket = await _owned_ticket(db, ticket_id, user_id)
    await ticket_service.delete_ticket(db, ticket)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tickets/{ticket_id}/deactivate", response_model=TicketResponse)
async def deactivate_ticket_endpoint(
    ticket_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Stop a ticket from being scanned. Its redemption history is kept."""
    await _owned_ticket(db, ticket_id, user_id)
    return await redemption.deactivate(db, ticket_id)


@router.post("/tickets/{ticket_id}/redeem", response_model=RedemptionResponse)
async def redeem_benefit_endpoint(
    ticket_id: str,
    request: RedeemRequest,
    db: AsyncSession = Depends(get_db),
):
    ticket = await redemption.redeem_benefit(db, ticket_id, request.benefit, request.pin)
    return RedemptionResponse(
        ticket=VerifiedTicketView.model_validate(ticket),
        benefit=request.benefit,
        ticket_closed=ticket.is_used,
    )


@router.get("/tickets/{ticket_id}/image", response_class=Response)
async def ticket_image_endpoint(
    ticket_id: str,
    template_id: Optional[str] = Query(None),
    preset: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    The attendee's ticket as a PNG with a real QR code. Uses a saved
    template, a built-in preset, or the corporate preset by default.
    """
    ticket = await _owned_ticket(db, ticket_id, user_id)
    event = await get_event(db, ticket.event_id)

    if template_id is not None:
        template = await template_service.get_template(db, template_id, user_id)
        document = template_service.document_from_row(template)
    else:
        summary = get_preset(preset or DEFAULT_PRESET)
        if summary is None:
            raise NotFound(f"Preset {preset} not found")
        document = summary.document

    png = render_png(document, bindings_for_ticket(ticket, event), mode=RenderMode.FINAL)
    logger.info("ticket_image_rendered", ticket_id=ticket.id, template_id=template_id, preset=preset)
    return Response(content=png, media_type="image/png")
