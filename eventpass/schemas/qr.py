"""
QR payload wire format.

Already-issued tickets carry this exact JSON shape, so field names are
stable camelCase: {eventId, participantName, email, pinCode, ticketId?, timestamp}.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class QRPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event_id: str = Field(..., alias="eventId")
    participant_name: str = Field(..., alias="participantName")
    email: str = Field(..., alias="email")
    pin_code: str = Field(..., alias="pinCode")
    ticket_id: Optional[str] = Field(None, alias="ticketId")
    timestamp: int = Field(..., alias="timestamp")  # epoch milliseconds

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
