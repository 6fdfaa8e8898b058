from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import logging
from typing import Any, Iterable

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_SLOT_DURATION_MIN
from ..core.errors import Conflict, NotFound, ValidationError, store_operation
from ..db import models

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SlotAvailability:
    id: int
    date: date
    start_time: str
    end_time: str
    is_blocked: bool
    is_booked: bool = False
    confirmed_booking_id: int | None = None
    pending_count: int = 0


def _to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _from_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def generate_intervals(start_time: str, end_time: str, duration_min: int) -> list[tuple[str, str]]:
    """Split ``[start_time, end_time)`` into whole ``duration_min`` intervals."""
    start = _to_minutes(start_time)
    end = _to_minutes(end_time)
    intervals = []
    while start + duration_min <= end:
        intervals.append((_from_minutes(start), _from_minutes(start + duration_min)))
        start += duration_min
    return intervals


def get_slot(db: Session, slot_id: int, *, for_update: bool = False) -> models.Slot:
    stmt = select(models.Slot).where(models.Slot.id == slot_id)
    if for_update:
        stmt = stmt.with_for_update()
    slot = db.execute(stmt).scalar_one_or_none()
    if not slot:
        raise NotFound("Slot not found")
    return slot


def confirmed_booking_for(db: Session, slot_id: int) -> models.Booking | None:
    return (
        db.execute(
            select(models.Booking).where(
                models.Booking.slot_id == slot_id,
                models.Booking.booking_status == models.BookingStatus.CONFIRMED,
            )
        )
        .scalars()
        .first()
    )


def active_booking_for(db: Session, slot_id: int) -> models.Booking | None:
    return (
        db.execute(
            select(models.Booking).where(
                models.Booking.slot_id == slot_id,
                models.Booking.booking_status.in_(models.ACTIVE_BOOKING_STATUSES),
            )
        )
        .scalars()
        .first()
    )


@store_operation
def list_availability(
    db: Session,
    *,
    on: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    include_blocked: bool = False,
) -> list[SlotAvailability]:
    stmt = select(models.Slot)
    if on is not None:
        stmt = stmt.where(models.Slot.date == on)
    elif start_date is not None or end_date is not None:
        if start_date is None or end_date is None:
            raise ValidationError(
                {"start_date": "start_date and end_date must be given together"}
            )
        if start_date > end_date:
            raise ValidationError({"end_date": "end_date must not be before start_date"})
        stmt = stmt.where(models.Slot.date >= start_date, models.Slot.date <= end_date)
    if not include_blocked:
        stmt = stmt.where(models.Slot.is_blocked.is_(False))
    slots = list(
        db.execute(stmt.order_by(models.Slot.date, models.Slot.start_time)).scalars().all()
    )
    slot_ids = [slot.id for slot in slots]
    confirmed: dict[int, int] = {}
    pending: dict[int, int] = {}
    if slot_ids:
        confirmed = dict(
            db.execute(
                select(models.Booking.slot_id, models.Booking.id)
                .where(models.Booking.slot_id.in_(slot_ids))
                .where(models.Booking.booking_status == models.BookingStatus.CONFIRMED)
            ).all()
        )
        pending = dict(
            db.execute(
                select(models.Booking.slot_id, func.count(models.Booking.id))
                .where(models.Booking.slot_id.in_(slot_ids))
                .where(models.Booking.booking_status == models.BookingStatus.PENDING)
                .group_by(models.Booking.slot_id)
            ).all()
        )
    return [
        SlotAvailability(
            id=slot.id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            is_blocked=slot.is_blocked,
            is_booked=slot.id in confirmed,
            confirmed_booking_id=confirmed.get(slot.id),
            pending_count=int(pending.get(slot.id, 0)),
        )
        for slot in slots
    ]


@store_operation
def create_slot(db: Session, *, on: date, start_time: str, end_time: str) -> models.Slot:
    if end_time <= start_time:
        raise ValidationError({"end_time": "end_time must be after start_time"})
    existing = db.execute(
        select(models.Slot.id).where(models.Slot.date == on, models.Slot.start_time == start_time)
    ).first()
    if existing:
        raise Conflict("Slot already exists")
    slot = models.Slot(date=on, start_time=start_time, end_time=end_time, is_blocked=False)
    db.add(slot)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Slot already exists") from exc
    db.refresh(slot)
    logger.info("Slot created", extra={"slot_id": slot.id, "date": on.isoformat()})
    return slot


@store_operation
def bulk_create_slots(
    db: Session,
    *,
    dates: Iterable[date],
    start_time: str,
    end_time: str,
    duration_min: int | None = None,
) -> list[models.Slot]:
    """Create one slot per interval per date, skipping existing ``(date, start)`` pairs.

    Running the same request twice creates nothing the second time.
    """
    if duration_min is None:
        settings = db.get(models.AdminSettings, models.SETTINGS_ID)
        duration_min = settings.slot_duration if settings else DEFAULT_SLOT_DURATION_MIN
    if duration_min <= 0:
        raise ValidationError({"slot_duration": "slot_duration must be positive"})
    if end_time <= start_time:
        raise ValidationError({"end_time": "end_time must be after start_time"})

    unique_dates = sorted(set(dates))
    intervals = generate_intervals(start_time, end_time, duration_min)
    if not unique_dates or not intervals:
        return []

    existing = {
        tuple(row)
        for row in db.execute(
            select(models.Slot.date, models.Slot.start_time).where(
                models.Slot.date.in_(unique_dates)
            )
        ).all()
    }
    created = [
        models.Slot(date=day, start_time=start, end_time=end, is_blocked=False)
        for day in unique_dates
        for start, end in intervals
        if (day, start) not in existing
    ]
    if not created:
        return []
    db.add_all(created)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Slots were created concurrently, please retry") from exc
    for slot in created:
        db.refresh(slot)
    logger.info(
        "Bulk slots created",
        extra={"count": len(created), "dates": [day.isoformat() for day in unique_dates]},
    )
    return created


@store_operation
def set_slot_blocked(db: Session, slot_id: int, blocked: bool) -> models.Slot:
    slot = get_slot(db, slot_id, for_update=True)
    if blocked and confirmed_booking_for(db, slot.id):
        db.rollback()
        raise Conflict("slot has a confirmed booking")
    slot.is_blocked = blocked
    db.commit()
    db.refresh(slot)
    logger.info("Slot block toggled", extra={"slot_id": slot.id, "blocked": blocked})
    return slot


@store_operation
def update_slot(db: Session, slot_id: int, changes: dict[str, Any]) -> models.Slot:
    slot = get_slot(db, slot_id, for_update=True)
    blocked = changes.pop("is_blocked", None)
    moves = {key: value for key, value in changes.items() if value is not None}
    if moves:
        start = moves.get("start_time", slot.start_time)
        end = moves.get("end_time", slot.end_time)
        if end <= start:
            db.rollback()
            raise ValidationError({"end_time": "end_time must be after start_time"})
        if active_booking_for(db, slot.id):
            db.rollback()
            raise Conflict("Cannot move slot with active bookings")
    if blocked and confirmed_booking_for(db, slot.id):
        db.rollback()
        raise Conflict("slot has a confirmed booking")
    for key, value in moves.items():
        setattr(slot, key, value)
    if blocked is not None:
        slot.is_blocked = blocked
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Slot already exists") from exc
    db.refresh(slot)
    return slot


@store_operation
def delete_slot(db: Session, slot_id: int) -> None:
    slot = get_slot(db, slot_id, for_update=True)
    if active_booking_for(db, slot.id):
        db.rollback()
        raise Conflict("Cannot delete slot with active bookings")
    db.delete(slot)
    db.commit()
    logger.info("Slot deleted", extra={"slot_id": slot_id})


__all__ = [
    "SlotAvailability",
    "generate_intervals",
    "get_slot",
    "confirmed_booking_for",
    "active_booking_for",
    "list_availability",
    "create_slot",
    "bulk_create_slots",
    "set_slot_blocked",
    "update_slot",
    "delete_slot",
]
