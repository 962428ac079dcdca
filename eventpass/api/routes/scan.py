"""
Check-in desk endpoints.

Each request replays the scanner flow on a fresh ScanSession, so the server
keeps no per-scanner state: resolve the payload, confirm the PIN, then
redeem. The PIN travels with every sensitive request.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.security import get_current_user_id
from eventpass.db.session import get_db
from eventpass.schemas.ticket import (
    RedemptionResponse,
    ResolvedTicketView,
    ScanRedeemRequest,
    ScanRequest,
    ScanVerifyRequest,
    VerifiedTicketView,
)
from eventpass.services.event_service import get_owned_event
from eventpass.services.scan_session import ScanSession

router = APIRouter(prefix="/events/{event_id}/scan", tags=["Scan"])


@router.post("/resolve", response_model=ResolvedTicketView)
async def resolve_endpoint(
    event_id: str,
    request: ScanRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Check a scanned payload belongs to this event. Reveals nothing but the ticket id."""
    await get_owned_event(db, event_id, user_id)
    session = ScanSession(event_id)
    ticket = await session.resolve(db, request.qr_payload)
    return ResolvedTicketView(ticket_id=ticket.id, state=session.state.value)


@router.post("/verify", response_model=VerifiedTicketView)
async def verify_endpoint(
    event_id: str,
    request: ScanVerifyRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id, user_id)
    session = ScanSession(event_id)
    await session.resolve(db, request.qr_payload)
    return session.submit_pin(request.pin)


@router.post("/redeem", response_model=RedemptionResponse)
async def redeem_endpoint(
    event_id: str,
    request: ScanRedeemRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await get_owned_event(db, event_id, user_id)
    session = ScanSession(event_id)
    await session.resolve(db, request.qr_payload)
    session.submit_pin(request.pin)
    view = await session.redeem(db, request.benefit)
    session.close()
    return RedemptionResponse(ticket=view, benefit=request.benefit, ticket_closed=view.is_used)
