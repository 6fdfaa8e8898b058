from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service
from ...services.notification_service import Notifier

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=schemas.Booking, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
    notify: Notifier = Depends(deps.get_notifier),
):
    return booking_service.create_booking(
        db,
        user,
        payload.slot_id,
        payload.rental_type,
        band_name=payload.band_name,
        notes=payload.notes,
        notify=notify,
    )


@router.get("/my", response_model=list[schemas.Booking])
def my_bookings(
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    return booking_service.list_user_bookings(db, user)


@router.get("/{booking_id}", response_model=schemas.Booking)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    return booking_service.get_booking_for(db, booking_id, user)


@router.post("/{booking_id}/cancel", response_model=schemas.Booking)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
    notify: Notifier = Depends(deps.get_notifier),
):
    return booking_service.cancel_booking(db, booking_id, user, notify=notify)
