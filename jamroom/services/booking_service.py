from __future__ import annotations

from datetime import date
import logging
from typing import Callable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import (
    ALREADY_CANCELLED,
    ALREADY_CONFIRMED,
    REJECTION_NOTE_PREFIX,
    SLOT_BLOCKED,
    SLOT_TAKEN,
)
from ..core.errors import Conflict, Forbidden, NotFound, ValidationError, store_operation
from ..db import models
from ..db.models.booking import BookingStatus, PaymentStatus
from . import settings_service
from .notification_service import BookingEvent, BookingEventKind, Notifier, build_event
from .schedule_service import active_booking_for, get_slot

logger = logging.getLogger(__name__)

ACTIVE_SLOT_INDEX = "uq_booking_active_slot"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _is_active_slot_violation(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint:
        return constraint == ACTIVE_SLOT_INDEX
    # SQLite reports the indexed column rather than the index name
    return "bookings.slot_id" in str(exc.orig)


def _emit(notify: Notifier | None, build: Callable[[], BookingEvent]) -> None:
    """Hand an event to the notifier. The booking is already committed here."""
    if notify is None:
        return
    try:
        notify(build())
    except Exception:
        logger.exception("Failed to hand off booking notification")


def _wants_whatsapp(booking: models.Booking) -> bool:
    return bool(booking.user and booking.user.whatsapp_enabled)


def _get_booking(db: Session, booking_id: int, *, for_update: bool = False) -> models.Booking:
    stmt = select(models.Booking).where(models.Booking.id == booking_id)
    if for_update:
        stmt = stmt.with_for_update()
    booking = db.execute(stmt).scalar_one_or_none()
    if not booking:
        raise NotFound("Booking not found")
    return booking


@store_operation
def create_booking(
    db: Session,
    user: models.User,
    slot_id: int,
    rental_type: str,
    *,
    band_name: str | None = None,
    notes: str | None = None,
    notify: Notifier | None = None,
) -> models.Booking:
    slot = get_slot(db, slot_id, for_update=True)
    if slot.is_blocked:
        db.rollback()
        raise Conflict(SLOT_BLOCKED)
    if active_booking_for(db, slot.id):
        db.rollback()
        raise Conflict(SLOT_TAKEN)
    if not rental_type or not rental_type.strip():
        db.rollback()
        raise ValidationError({"rental_type": "Rental type is required"})
    try:
        price = settings_service.resolve_rental_price(db, rental_type)
    except ValidationError:
        db.rollback()
        raise

    booking = models.Booking(
        user_id=user.id,
        slot_id=slot.id,
        slot_date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        rental_type=rental_type.strip(),
        price=price,
        payment_status=PaymentStatus.PENDING,
        booking_status=BookingStatus.PENDING,
        user_name=user.name,
        user_email=user.email,
        user_mobile=user.mobile,
        band_name=_clean(band_name),
        notes=_clean(notes),
    )
    db.add(booking)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_active_slot_violation(exc):
            logger.info("Concurrent booking lost the slot race", extra={"slot_id": slot_id})
            raise Conflict(SLOT_TAKEN) from exc
        raise
    db.refresh(booking)
    logger.info(
        "Booking requested",
        extra={"booking_id": booking.id, "slot_id": slot_id, "user_id": user.id},
    )
    whatsapp = bool(user.whatsapp_enabled)
    _emit(
        notify,
        lambda: build_event(
            BookingEventKind.requested,
            booking,
            db.get(models.AdminSettings, models.SETTINGS_ID),
            notify_user_whatsapp=whatsapp,
        ),
    )
    return booking


@store_operation
def approve_booking(
    db: Session,
    booking_id: int,
    approver: models.User,
    *,
    notify: Notifier | None = None,
) -> models.Booking:
    booking = _get_booking(db, booking_id, for_update=True)
    if booking.booking_status == BookingStatus.CONFIRMED:
        db.rollback()
        raise Conflict(ALREADY_CONFIRMED)
    if booking.booking_status in (BookingStatus.CANCELLED, BookingStatus.REJECTED):
        db.rollback()
        raise Conflict(f"Booking is {booking.booking_status.value.lower()}")
    booking.booking_status = BookingStatus.CONFIRMED
    # Payment is verified off-system; approval marks it paid.
    booking.payment_status = PaymentStatus.PAID
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking approved", extra={"booking_id": booking.id, "approver_id": approver.id}
    )
    _emit(
        notify,
        lambda: build_event(
            BookingEventKind.approved,
            booking,
            db.get(models.AdminSettings, models.SETTINGS_ID),
            actor_name=approver.name,
            notify_user_whatsapp=_wants_whatsapp(booking),
        ),
    )
    return booking


@store_operation
def reject_booking(
    db: Session,
    booking_id: int,
    reason: str | None = None,
    *,
    actor: models.User | None = None,
    notify: Notifier | None = None,
) -> models.Booking:
    booking = _get_booking(db, booking_id, for_update=True)
    if booking.booking_status == BookingStatus.CANCELLED:
        db.rollback()
        raise Conflict("Booking is cancelled")
    if booking.booking_status == BookingStatus.CONFIRMED:
        logger.warning(
            "Rejecting a confirmed booking", extra={"booking_id": booking.id}
        )
    booking.booking_status = BookingStatus.REJECTED
    reason = _clean(reason)
    if reason:
        note = f"{REJECTION_NOTE_PREFIX}{reason}"
        booking.notes = f"{booking.notes}\n{note}" if booking.notes else note
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking rejected",
        extra={"booking_id": booking.id, "actor_id": actor.id if actor else None},
    )
    _emit(
        notify,
        lambda: build_event(
            BookingEventKind.rejected,
            booking,
            db.get(models.AdminSettings, models.SETTINGS_ID),
            reason=reason,
            actor_name=actor.name if actor else None,
            notify_user_whatsapp=_wants_whatsapp(booking),
        ),
    )
    return booking


@store_operation
def cancel_booking(
    db: Session,
    booking_id: int,
    user: models.User,
    *,
    notify: Notifier | None = None,
) -> models.Booking:
    booking = _get_booking(db, booking_id, for_update=True)
    if booking.user_id != user.id:
        db.rollback()
        raise Forbidden("Not authorized to cancel this booking")
    if booking.booking_status == BookingStatus.CANCELLED:
        db.rollback()
        raise Conflict(ALREADY_CANCELLED)
    if booking.booking_status == BookingStatus.REJECTED:
        db.rollback()
        raise Conflict("Booking is rejected")
    booking.booking_status = BookingStatus.CANCELLED
    db.commit()
    db.refresh(booking)
    logger.info("Booking cancelled", extra={"booking_id": booking.id, "user_id": user.id})
    _emit(
        notify,
        lambda: build_event(
            BookingEventKind.cancelled,
            booking,
            db.get(models.AdminSettings, models.SETTINGS_ID),
            notify_user_whatsapp=_wants_whatsapp(booking),
        ),
    )
    return booking


@store_operation
def get_booking_for(db: Session, booking_id: int, user: models.User) -> models.Booking:
    booking = _get_booking(db, booking_id)
    if booking.user_id != user.id and user.role != models.UserRole.admin:
        raise Forbidden("Not authorized to view this booking")
    return booking


@store_operation
def list_user_bookings(db: Session, user: models.User) -> list[models.Booking]:
    return list(
        db.execute(
            select(models.Booking)
            .where(models.Booking.user_id == user.id)
            .order_by(models.Booking.slot_date.desc(), models.Booking.start_time.desc())
        )
        .scalars()
        .all()
    )


@store_operation
def list_bookings(
    db: Session,
    *,
    status: BookingStatus | None = None,
    on: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[models.Booking]:
    stmt = select(models.Booking)
    if status is not None:
        stmt = stmt.where(models.Booking.booking_status == status)
    if on is not None:
        stmt = stmt.where(models.Booking.slot_date == on)
    elif start_date is not None and end_date is not None:
        stmt = stmt.where(
            models.Booking.slot_date >= start_date, models.Booking.slot_date <= end_date
        )
    stmt = stmt.order_by(models.Booking.slot_date.desc(), models.Booking.start_time.desc())
    return list(db.execute(stmt).scalars().all())


__all__ = [
    "create_booking",
    "approve_booking",
    "reject_booking",
    "cancel_booking",
    "get_booking_for",
    "list_user_bookings",
    "list_bookings",
]
