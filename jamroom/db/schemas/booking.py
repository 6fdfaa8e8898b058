from datetime import date, datetime
from pydantic import BaseModel, Field

from ..models.booking import BookingStatus, PaymentStatus


class BookingCreate(BaseModel):
    slot_id: int
    rental_type: str = Field(min_length=1, max_length=128)
    band_name: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class BookingReject(BaseModel):
    reason: str | None = None


class Booking(BaseModel):
    id: int
    user_id: int | None = None
    slot_id: int | None = None
    slot_date: date
    start_time: str
    end_time: str
    rental_type: str
    price: float
    payment_status: PaymentStatus
    booking_status: BookingStatus
    user_name: str
    user_email: str
    user_mobile: str | None = None
    band_name: str | None = None
    notes: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
