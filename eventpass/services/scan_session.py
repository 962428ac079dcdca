"""
Scanner session: the operator-side flow at the check-in desk.

    SCANNING ──decode──► RESOLVED ──match──► PIN_PENDING ──pin ok──► VERIFIED
        ▲                   │                    │ (wrong pin: stay)    │
        └──── no match ─────┘                    │                      │
        └──────────────── reset() / close() ─────┴──────────────────────┘

One session per scanner instance; nothing here is shared between sessions.
The entered PIN lives only on the session object and is dropped on reset.
Being VERIFIED is not a trust boundary: redemptions still go through
`redeem_benefit`, which checks the PIN against the stored ticket again.
"""

from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from eventpass.core.errors import InvalidPin, InvalidQr, ScanStateError, ValidationError
from eventpass.core.logging import get_logger
from eventpass.core.metrics import record_scan
from eventpass.models.ticket import Ticket
from eventpass.schemas.ticket import PIN_PATTERN, VerifiedTicketView
from eventpass.services import redemption, ticket_service

logger = get_logger(__name__)


class ScanState(str, Enum):
    SCANNING = "scanning"
    RESOLVED = "resolved"
    PIN_PENDING = "pin_pending"
    VERIFIED = "verified"


class ScanSession:
    def __init__(self, event_id: str):
        self.event_id = event_id
        self.state = ScanState.SCANNING
        self.ticket: Optional[Ticket] = None
        self._pin: Optional[str] = None

    def _require(self, *states: ScanState) -> None:
        if self.state not in states:
            raise ScanStateError(f"Cannot do that while {self.state.value}")

    async def resolve(self, db: AsyncSession, payload: str) -> Ticket:
        """Look up a decoded payload. Unknown payloads send the session back to scanning."""
        self._require(ScanState.SCANNING)
        self.state = ScanState.RESOLVED

        try:
            ticket = await ticket_service.get_ticket_by_qr(db, self.event_id, payload)
        except Exception:
            self.reset()
            raise

        if ticket is None:
            record_scan(False)
            logger.info("scan_invalid_qr", event_id=self.event_id)
            self.reset()
            raise InvalidQr()

        record_scan(True)
        self.ticket = ticket
        self.state = ScanState.PIN_PENDING
        logger.info("scan_resolved", event_id=self.event_id, ticket_id=ticket.id)
        return ticket

    def submit_pin(self, pin: str) -> VerifiedTicketView:
        """Confirm the holder's PIN. A mismatch leaves the session waiting for another try."""
        self._require(ScanState.PIN_PENDING)
        if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
            raise ValidationError("PIN must be exactly 6 digits")

        if not redemption.verify_pin(self.ticket, pin):
            logger.info("scan_pin_rejected", event_id=self.event_id, ticket_id=self.ticket.id)
            raise InvalidPin()

        self._pin = pin
        self.state = ScanState.VERIFIED
        logger.info("scan_verified", event_id=self.event_id, ticket_id=self.ticket.id)
        return self.view()

    async def redeem(self, db: AsyncSession, benefit: str) -> VerifiedTicketView:
        """Mark a benefit as used for the verified ticket."""
        self._require(ScanState.VERIFIED)
        self.ticket = await redemption.redeem_benefit(db, self.ticket.id, benefit, self._pin)
        return self.view()

    def view(self) -> VerifiedTicketView:
        self._require(ScanState.VERIFIED)
        return VerifiedTicketView.model_validate(self.ticket)

    def reset(self) -> None:
        """Scan another ticket: forget the ticket and the entered PIN."""
        self.ticket = None
        self._pin = None
        self.state = ScanState.SCANNING

    # Closing the dialog mid-flow is the same as starting over
    close = reset
