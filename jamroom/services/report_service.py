from __future__ import annotations

from datetime import date
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.errors import ValidationError, store_operation
from ..db import models
from ..db.models.booking import BookingStatus, PaymentStatus
from ..db.schemas.booking import Booking
from ..db.schemas.report import BusySlot, DashboardStats, RevenueReport

logger = logging.getLogger(__name__)

RECENT_BOOKINGS_LIMIT = 5


def _earned():
    return (
        models.Booking.booking_status == BookingStatus.CONFIRMED,
        models.Booking.payment_status == PaymentStatus.PAID,
    )


@store_operation
def compute_revenue(
    db: Session,
    start_date: date,
    end_date: date,
    limit: int | None = None,
) -> RevenueReport:
    """Revenue over confirmed and paid bookings whose slot falls in the range."""
    if start_date > end_date:
        raise ValidationError({"end_date": "end_date must not be before start_date"})
    if limit is not None and limit < 0:
        raise ValidationError({"limit": "limit must not be negative"})

    in_range = (
        *_earned(),
        models.Booking.slot_date >= start_date,
        models.Booking.slot_date <= end_date,
    )
    total_revenue, total_bookings = db.execute(
        select(
            func.coalesce(func.sum(models.Booking.price), 0),
            func.count(models.Booking.id),
        ).where(*in_range)
    ).one()

    count = func.count(models.Booking.id).label("bookings_count")
    busiest = select(
        models.Booking.slot_date,
        models.Booking.start_time,
        count,
        func.coalesce(func.sum(models.Booking.price), 0),
    ).where(*in_range).group_by(
        models.Booking.slot_date, models.Booking.start_time
    ).order_by(
        count.desc(), models.Booking.slot_date, models.Booking.start_time
    )
    if limit is not None:
        busiest = busiest.limit(limit)

    total_revenue = float(total_revenue or 0)
    total_bookings = int(total_bookings or 0)
    return RevenueReport(
        start_date=start_date,
        end_date=end_date,
        total_revenue=total_revenue,
        total_bookings=total_bookings,
        average_booking_value=total_revenue / total_bookings if total_bookings else 0,
        busiest_slots=[
            BusySlot(date=day, time=start, count=int(n), total_revenue=float(revenue))
            for day, start, n, revenue in db.execute(busiest).all()
        ],
    )


@store_operation
def dashboard_stats(db: Session) -> DashboardStats:
    counts = dict(
        db.execute(
            select(models.Booking.booking_status, func.count(models.Booking.id)).group_by(
                models.Booking.booking_status
            )
        ).all()
    )
    revenue = db.execute(
        select(func.coalesce(func.sum(models.Booking.price), 0)).where(*_earned())
    ).scalar_one()
    recent = (
        db.execute(
            select(models.Booking)
            .order_by(models.Booking.created_at.desc(), models.Booking.id.desc())
            .limit(RECENT_BOOKINGS_LIMIT)
        )
        .scalars()
        .all()
    )
    return DashboardStats(
        total_bookings=sum(counts.values()),
        pending_bookings=counts.get(BookingStatus.PENDING, 0),
        confirmed_bookings=counts.get(BookingStatus.CONFIRMED, 0),
        total_revenue=float(revenue or 0),
        recent_bookings=[Booking.model_validate(booking) for booking in recent],
    )


__all__ = ["compute_revenue", "dashboard_stats"]
