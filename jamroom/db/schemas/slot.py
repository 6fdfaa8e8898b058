import datetime as dt
import re
from pydantic import BaseModel, Field, field_validator, model_validator

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def normalize_time(value: str) -> str:
    """Return ``value`` as zero padded ``HH:MM`` or raise ``ValueError``."""
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError("Invalid time format (HH:MM)")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


class SlotBase(BaseModel):
    date: dt.date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        return normalize_time(value)


class SlotCreate(SlotBase):
    @model_validator(mode="after")
    def _check_order(self) -> "SlotCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotUpdate(BaseModel):
    date: dt.date | None = None
    start_time: str | None = None
    end_time: str | None = None
    is_blocked: bool | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: str | None) -> str | None:
        return normalize_time(value) if value is not None else None


class SlotBlock(BaseModel):
    blocked: bool = True


class SlotBulkCreate(BaseModel):
    dates: list[dt.date] = Field(min_length=1)
    start_time: str
    end_time: str
    slot_duration: int | None = Field(default=None, gt=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        return normalize_time(value)


class Slot(SlotBase):
    id: int
    is_blocked: bool = False

    class Config:
        from_attributes = True


class SlotAvailability(Slot):
    is_booked: bool = False
    confirmed_booking_id: int | None = None
    pending_count: int = 0


class SlotBulkResult(BaseModel):
    count: int
    slots: list[Slot] = Field(default_factory=list)
