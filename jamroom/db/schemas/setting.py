from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from .slot import normalize_time
from .user import EMAIL_PATTERN

_EMAIL_RE = re.compile(EMAIL_PATTERN)


def _check_emails(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    cleaned = [value.strip() for value in values if value.strip()]
    for value in cleaned:
        if not _EMAIL_RE.match(value):
            raise ValueError(f"Invalid email address: {value!r}")
    return cleaned


class RentalSubItem(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    price: float = Field(default=0, ge=0)


class RentalType(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    base_price: float = Field(ge=0)
    sub_items: list[RentalSubItem] = Field(default_factory=list)


class BusinessHours(BaseModel):
    start_time: str = "09:00"
    end_time: str = "22:00"

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        return normalize_time(value)


class AdminSettings(BaseModel):
    rental_types: list[RentalType] = Field(default_factory=list)
    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    slot_duration: int = 60
    admin_emails: list[str] = Field(default_factory=list)
    admin_mobiles: list[str] = Field(default_factory=list)
    upi_id: str
    upi_name: str
    gst_enabled: bool = False
    gst_rate: float = 0.18

    class Config:
        from_attributes = True


class AdminSettingsUpdate(BaseModel):
    rental_types: list[RentalType] | None = None
    business_hours: BusinessHours | None = None
    slot_duration: int | None = Field(default=None, gt=0)
    admin_emails: list[str] | None = None
    admin_mobiles: list[str] | None = None
    upi_id: str | None = None
    upi_name: str | None = None
    gst_enabled: bool | None = None
    gst_rate: float | None = Field(default=None, ge=0, le=1)

    @field_validator("admin_emails")
    @classmethod
    def _check_admin_emails(cls, value: list[str] | None) -> list[str] | None:
        return _check_emails(value)


class PublicSettings(BaseModel):
    rental_types: list[RentalType] = Field(default_factory=list)
    business_hours: BusinessHours = Field(default_factory=BusinessHours)
    slot_duration: int = 60
