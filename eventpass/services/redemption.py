"""
Benefit redemption state machine.

  Active&Open ──(last benefit redeemed)──► Active&Closed
       │                                        │
       └──────────(deactivate)──► Deactivated ◄─┘

Closed and Deactivated are terminal for redemption. Deactivation keeps the
redemption history intact.

Every redemption re-checks the PIN, whatever the caller's UI state says,
and lands as one conditional UPDATE (see ticket_service). A failed check
never writes anything, so every error here is safe to retry.
"""

import hmac

from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.clock import utcnow
from eventpass.core.config import get_settings
from eventpass.core.errors import AlreadyRedeemed, BackendError, InvalidPin, TicketClosed, ValidationError
from eventpass.core.logging import get_logger
from eventpass.core.metrics import record_pin_check, record_redemption, redemption_conflicts
from eventpass.models.ticket import Ticket
from eventpass.services.ticket_service import conditional_update, get_ticket, is_fully_used

logger = get_logger(__name__)
settings = get_settings()


def verify_pin(ticket: Ticket, supplied_pin: str) -> bool:
    """Constant-time PIN comparison. No state change."""
    if not isinstance(supplied_pin, str):
        return False
    matched = hmac.compare_digest(ticket.pin_code.encode(), supplied_pin.encode())
    record_pin_check(matched)
    return matched


def check_redeemable(ticket: Ticket, benefit: str, supplied_pin: str) -> None:
    """
    Raise the first rule a redemption would break. A closed ticket is
    reported as closed whatever PIN was supplied.
    """
    if not ticket.is_active or ticket.is_used:
        record_redemption("ticket_closed")
        raise TicketClosed()

    if not verify_pin(ticket, supplied_pin):
        record_redemption("invalid_pin")
        logger.warning("redemption_rejected", ticket_id=ticket.id, reason="invalid_pin")
        raise InvalidPin()

    if benefit not in (ticket.selected_benefits or []):
        record_redemption("not_selected")
        raise ValidationError(f"'{benefit}' is not one of this ticket's benefits")

    if benefit in (ticket.used_benefits or []):
        record_redemption("already_redeemed")
        raise AlreadyRedeemed(f"{benefit} has already been marked as used")


async def redeem_benefit(db: AsyncSession, ticket_id: str, benefit: str, supplied_pin: str) -> Ticket:
    """
    Mark one benefit as used.

    Appends to used_benefits, recomputes total_benefits_used and closes the
    ticket once every selected benefit is used. A lost race re-reads the
    ticket and re-applies the rules, so two concurrent redemptions of
    different benefits both land and two of the same benefit yield one
    success and one AlreadyRedeemed.
    """
    for attempt in range(1, settings.MAX_REDEMPTION_ATTEMPTS + 1):
        ticket = await get_ticket(db, ticket_id, fresh=True)
        check_redeemable(ticket, benefit, supplied_pin)

        used = [*ticket.used_benefits, benefit]
        closed = is_fully_used(ticket.selected_benefits, used)
        values = {
            "used_benefits": used,
            "total_benefits_used": len(used),
            "is_used": closed,
        }
        if closed:
            values["used_at"] = utcnow()

        if await conditional_update(db, ticket.id, ticket.version, values, open_only=True):
            ticket = await get_ticket(db, ticket_id, fresh=True)
            record_redemption("success")
            logger.info(
                "benefit_redeemed",
                ticket_id=ticket.id,
                event_id=ticket.event_id,
                benefit=benefit,
                used=ticket.total_benefits_used,
                total=len(ticket.selected_benefits),
                closed=closed,
                attempt=attempt,
            )
            return ticket

        redemption_conflicts.inc()
        logger.info("redemption_retry", ticket_id=ticket_id, attempt=attempt, reason="version_conflict")

    raise BackendError("Ticket is being updated by another operator, please try again")


async def deactivate(db: AsyncSession, ticket_id: str) -> Ticket:
    """Set is_active = false. Idempotent; history is untouched."""
    for attempt in range(1, settings.MAX_REDEMPTION_ATTEMPTS + 1):
        ticket = await get_ticket(db, ticket_id, fresh=True)
        if not ticket.is_active:
            return ticket

        if await conditional_update(db, ticket.id, ticket.version, {"is_active": False}):
            ticket = await get_ticket(db, ticket_id, fresh=True)
            logger.info("ticket_deactivated", ticket_id=ticket.id, event_id=ticket.event_id)
            return ticket

        logger.info("deactivate_retry", ticket_id=ticket_id, attempt=attempt, reason="version_conflict")

    raise BackendError("Ticket is being updated by another operator, please try again")
