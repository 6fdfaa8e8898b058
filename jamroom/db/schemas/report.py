from datetime import date
from pydantic import BaseModel, Field

from .booking import Booking


class BusySlot(BaseModel):
    date: date
    time: str
    count: int
    total_revenue: float


class RevenueReport(BaseModel):
    start_date: date
    end_date: date
    total_revenue: float = 0
    total_bookings: int = 0
    average_booking_value: float = 0
    busiest_slots: list[BusySlot] = Field(default_factory=list)


class DashboardStats(BaseModel):
    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    total_revenue: float
    recent_bookings: list[Booking] = Field(default_factory=list)
