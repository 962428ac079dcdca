"""
PIN and QR payload issuance.

Pure generation: nothing is persisted here. An organizer can ask for fresh
credentials as many times as they like before the ticket is committed; once
stored, a ticket's PIN and payload never change.
"""

import json
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from eventpass.core.errors import InvalidQr
from eventpass.schemas.qr import QRPayload

PIN_MIN = 100000
PIN_MAX = 999999


@dataclass(frozen=True)
class Credentials:
    pin: str
    qr_payload: str


def generate_pin() -> str:
    """Uniform 6-digit PIN in 100000..999999."""
    return str(PIN_MIN + secrets.randbelow(PIN_MAX - PIN_MIN + 1))


def build_qr_payload(
    event_id: str,
    holder_name: str,
    holder_email: str,
    pin: str,
    ticket_id: Optional[str] = None,
    timestamp_ms: Optional[int] = None,
) -> str:
    payload = QRPayload(
        event_id=event_id,
        participant_name=holder_name,
        email=holder_email,
        pin_code=pin,
        ticket_id=ticket_id,
        timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
    )
    return payload.to_wire()


def issue_credentials(event_id: str, holder_name: str, holder_email: str) -> Credentials:
    pin = generate_pin()
    return Credentials(
        pin=pin,
        qr_payload=build_qr_payload(event_id, holder_name, holder_email, pin),
    )


def parse_qr_payload(raw: str) -> QRPayload:
    """Read a scanned payload back. Raises InvalidQr if it is not ours."""
    try:
        return QRPayload.model_validate(json.loads(raw))
    except (ValueError, TypeError, PydanticValidationError):
        raise InvalidQr("QR code could not be read")
