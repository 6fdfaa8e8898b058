from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.booking import BookingStatus
from ...services import booking_service, report_service, user_service
from ...services.notification_service import Notifier

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/bookings", response_model=list[schemas.Booking])
def list_bookings(
    status: BookingStatus | None = None,
    on: date | None = Query(None, alias="date"),
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return booking_service.list_bookings(
        db, status=status, on=on, start_date=start_date, end_date=end_date
    )


@router.post("/bookings/{booking_id}/approve", response_model=schemas.Booking)
def approve_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(deps.require_roles("admin")),
    notify: Notifier = Depends(deps.get_notifier),
):
    return booking_service.approve_booking(db, booking_id, admin, notify=notify)


@router.post("/bookings/{booking_id}/reject", response_model=schemas.Booking)
def reject_booking(
    booking_id: int,
    payload: schemas.BookingReject | None = None,
    db: Session = Depends(get_db),
    admin: models.User = Depends(deps.require_roles("admin")),
    notify: Notifier = Depends(deps.get_notifier),
):
    return booking_service.reject_booking(
        db,
        booking_id,
        payload.reason if payload else None,
        actor=admin,
        notify=notify,
    )


@router.get("/stats", response_model=schemas.DashboardStats)
def dashboard_stats(
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return report_service.dashboard_stats(db)


@router.get("/revenue", response_model=schemas.RevenueReport)
def revenue_report(
    start_date: date,
    end_date: date,
    limit: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return report_service.compute_revenue(db, start_date, end_date, limit)


@router.post("/make-admin", response_model=schemas.User)
def make_admin(
    payload: schemas.MakeAdmin,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return user_service.make_admin(db, payload.email)
