"""
Domain error taxonomy for ticketing operations.

Every error is an HTTPException so services can raise them the same way they
raise plain HTTP errors, while callers outside a request (scan sessions,
tests) can still catch them by type. Each carries a stable machine `code`
that the API returns next to the human-readable detail.

None of these are fatal: each one is scoped to the single action that
triggered it and the action can be re-invoked.
"""

from typing import Optional

from fastapi import HTTPException, status


class TicketingError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "ticketing_error"
    default_detail: str = "Ticketing operation failed"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFound(TicketingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Resource not found"


class InvalidQr(TicketingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "invalid_qr"
    default_detail = "This QR code is not valid for this event"


class InvalidPin(TicketingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "invalid_pin"
    # Never include the expected PIN or which digit differs
    default_detail = "The entered PIN does not match the ticket"


class AlreadyRedeemed(TicketingError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_redeemed"
    default_detail = "This benefit has already been marked as used"


class TicketClosed(TicketingError):
    status_code = status.HTTP_409_CONFLICT
    code = "ticket_closed"
    default_detail = "Ticket is inactive or all of its benefits have been used"


class ScanStateError(TicketingError):
    status_code = status.HTTP_409_CONFLICT
    code = "scan_state"
    default_detail = "Action not allowed in the current scan state"


class ValidationError(TicketingError):
    status_code = 422
    code = "validation_error"
    default_detail = "Invalid input"


class Forbidden(TicketingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "You do not have access to this resource"


class BackendError(TicketingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "backend_error"
    default_detail = "Storage backend unavailable, please try again"
