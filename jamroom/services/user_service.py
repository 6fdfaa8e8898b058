from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core import security
from ..core.errors import Conflict, NotFound, ValidationError, store_operation
from ..db import models
from . import settings_service

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def ensure_admin_exists(session: Session, email: str, password: str, name: str) -> models.User:
    email = _normalize_email(email)
    admin = session.query(models.User).filter_by(email=email).first()
    if admin:
        updated = False
        if not security.verify_password(password, admin.password_hash):
            admin.password_hash = security.get_password_hash(password)
            updated = True
        if admin.role != models.UserRole.admin:
            admin.role = models.UserRole.admin
            updated = True
        if updated:
            session.commit()
            logger.info("Updated default admin user '%s'", email)
        else:
            logger.info("Admin user '%s' already exists", email)
        return admin

    admin = models.User(
        name=name,
        email=email,
        password_hash=security.get_password_hash(password),
        role=models.UserRole.admin,
    )
    session.add(admin)
    session.commit()
    logger.info("Created default admin user '%s'", email)
    return admin


@store_operation
def register_user(
    db: Session, *, name: str, email: str, password: str, mobile: str | None = None
) -> models.User:
    email = _normalize_email(email)
    if db.query(models.User).filter_by(email=email).first():
        raise Conflict("Email already registered")
    user = models.User(
        name=name.strip(),
        email=email,
        mobile=mobile.strip() if mobile else None,
        password_hash=security.get_password_hash(password),
        role=models.UserRole.user,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Email already registered") from exc
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})
    return user


@store_operation
def make_admin(db: Session, email: str) -> models.User:
    email = _normalize_email(email)
    user = db.query(models.User).filter_by(email=email).first()
    if not user:
        raise NotFound("User not found")
    if user.role == models.UserRole.admin:
        raise Conflict("User is already an admin")
    user.role = models.UserRole.admin
    settings_service.add_admin_email(db, email)
    db.commit()
    db.refresh(user)
    logger.info("User promoted to admin", extra={"user_id": user.id})
    return user


@store_operation
def update_profile(db: Session, user: models.User, changes: dict[str, Any]) -> models.User:
    # Booking rows keep the contact details captured when they were made.
    for key in ("name", "mobile", "whatsapp_enabled"):
        value = changes.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


@store_operation
def change_password(
    db: Session, user: models.User, current_password: str, new_password: str
) -> None:
    if not security.verify_password(current_password, user.password_hash):
        raise ValidationError(
            {"current_password": "Current password is incorrect"},
            detail="Current password is incorrect",
        )
    user.password_hash = security.get_password_hash(new_password)
    db.commit()
    logger.info("Password changed", extra={"user_id": user.id})


@store_operation
def delete_account(db: Session, user: models.User) -> None:
    active = db.execute(
        select(models.Booking.id).where(
            models.Booking.user_id == user.id,
            models.Booking.booking_status.in_(models.ACTIVE_BOOKING_STATUSES),
        )
    ).first()
    if active:
        raise Conflict("Cannot delete account with active bookings")
    # History stays readable through the booking snapshot.
    db.execute(
        update(models.Booking).where(models.Booking.user_id == user.id).values(user_id=None)
    )
    db.delete(user)
    db.commit()
    logger.info("User account deleted", extra={"user_id": user.id})


__all__ = [
    "ensure_admin_exists",
    "register_user",
    "make_admin",
    "update_profile",
    "change_password",
    "delete_account",
]
