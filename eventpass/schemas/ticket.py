"""
Pydantic schemas for ticket issuance, organizer edits and the views shown
after PIN verification.

The PIN appears only in organizer/holder responses (`TicketResponse`,
`CredentialsResponse`); scanner-facing views never include it.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

PIN_PATTERN = re.compile(r"^\d{6}$")


class TicketRole(str, Enum):
    ATTENDEE = "attendee"
    SPEAKER = "speaker"
    ORGANIZER = "organizer"
    SPONSOR = "sponsor"
    VOLUNTEER = "volunteer"
    VIP = "vip"
    # Extended labels offered by the ticket generator
    TRAINER = "trainer"
    ARTIST = "artist"
    COMEDIAN = "comedian"
    GUEST_OF_HONOUR = "guest_of_honour"
    MUSICIAN = "musician"
    ACTOR = "actor"
    PLAYER = "player"
    PASTOR = "pastor"
    PANELIST = "panelist"


def _ordered_unique(values: list[str]) -> list[str]:
    result: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in result:
            result.append(value)
    return result


def _check_pin(value: Optional[str]) -> Optional[str]:
    if value is not None and not PIN_PATTERN.match(value):
        raise ValueError("PIN must be exactly 6 digits")
    return value


class HolderDetails(BaseModel):
    holder_name: str = Field(..., min_length=1, max_length=255)
    holder_email: EmailStr


class CredentialsResponse(BaseModel):
    pin: str
    qr_payload: str


class TicketCreate(HolderDetails):
    role: TicketRole = TicketRole.ATTENDEE
    selected_benefits: list[str] = Field(default_factory=list)
    meal_options: list[str] = Field(default_factory=list)
    accommodation_type: Optional[str] = Field(None, max_length=100)
    transport_included: bool = False
    # Credentials previewed earlier through /credentials; generated when omitted
    pin: Optional[str] = None
    qr_payload: Optional[str] = None

    @field_validator("selected_benefits", "meal_options")
    @classmethod
    def clean_lists(cls, value):
        return _ordered_unique(value)

    @field_validator("pin")
    @classmethod
    def check_pin(cls, value):
        return _check_pin(value)


class TicketUpdate(BaseModel):
    holder_name: Optional[str] = Field(None, min_length=1, max_length=255)
    holder_email: Optional[EmailStr] = None
    role: Optional[TicketRole] = None
    selected_benefits: Optional[list[str]] = None
    meal_options: Optional[list[str]] = None
    accommodation_type: Optional[str] = Field(None, max_length=100)
    transport_included: Optional[bool] = None

    @field_validator("selected_benefits", "meal_options")
    @classmethod
    def clean_lists(cls, value):
        return None if value is None else _ordered_unique(value)


class TicketResponse(BaseModel):
    id: str
    event_id: str
    holder_name: str
    holder_email: str
    pin_code: str
    qr_payload: str
    role: str
    selected_benefits: list[str]
    used_benefits: list[str]
    total_benefits_used: int
    is_used: bool
    is_active: bool
    status: str
    used_at: Optional[datetime]
    meal_options: list[str]
    accommodation_type: Optional[str]
    transport_included: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class VerifiedTicketView(BaseModel):
    """What staff see once a scanned ticket's PIN has been confirmed."""

    id: str
    holder_name: str
    holder_email: str
    role: str
    status: str
    is_used: bool
    is_active: bool
    selected_benefits: list[str]
    used_benefits: list[str]
    remaining_benefits: list[str]
    total_benefits_used: int

    model_config = {"from_attributes": True}


class ResolvedTicketView(BaseModel):
    """Result of resolving a QR payload, before the PIN is entered."""

    ticket_id: str
    state: str


class PinSubmission(BaseModel):
    pin: str

    @field_validator("pin")
    @classmethod
    def check_pin(cls, value):
        return _check_pin(value)


class PinLookup(PinSubmission):
    pass


class RedeemRequest(PinSubmission):
    benefit: str = Field(..., min_length=1)


class ScanRequest(BaseModel):
    qr_payload: str = Field(..., min_length=1)


class ScanVerifyRequest(ScanRequest, PinSubmission):
    pass


class ScanRedeemRequest(ScanVerifyRequest):
    benefit: str = Field(..., min_length=1)


class RedemptionResponse(BaseModel):
    ticket: VerifiedTicketView
    benefit: str
    ticket_closed: bool
