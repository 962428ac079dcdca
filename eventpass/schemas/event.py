"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator


NON_NULLABLE_UPDATE_FIELDS = frozenset({"title", "start_date", "available_benefits"})


def _dedupe(names: list[str]) -> list[str]:
    seen: list[str] = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.append(name)
    return seen


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    company_name: Optional[str] = Field(None, max_length=255)
    start_date: datetime
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    max_attendees: Optional[int] = Field(None, gt=0, le=100000)
    available_benefits: list[str] = Field(default_factory=list)

    @field_validator("available_benefits")
    @classmethod
    def clean_benefits(cls, value):
        return _dedupe(value)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    company_name: Optional[str] = Field(None, max_length=255)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    max_attendees: Optional[int] = Field(None, gt=0, le=100000)
    available_benefits: Optional[list[str]] = None

    @field_validator("available_benefits")
    @classmethod
    def clean_benefits(cls, value):
        return None if value is None else _dedupe(value)

    @model_validator(mode="after")
    def check_required_not_null(self):
        # May be omitted from a patch but never cleared
        cleared = sorted(
            name for name in NON_NULLABLE_UPDATE_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class EventResponse(BaseModel):
    id: str
    organizer_id: str
    title: str
    description: Optional[str]
    company_name: Optional[str]
    start_date: datetime
    end_date: Optional[datetime]
    location: Optional[str]
    max_attendees: Optional[int]
    available_benefits: list[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventStats(BaseModel):
    event_id: str
    tickets_issued: int
    tickets_active: int
    tickets_used: int
    benefits_redeemed: int
    redemptions_by_benefit: dict[str, int]
