from __future__ import annotations

import copy
import logging
import re
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core import constants
from ..core.errors import NotFound, ValidationError, store_operation
from ..db import models
from ..db.schemas.user import EMAIL_PATTERN

logger = logging.getLogger(__name__)


def _defaults() -> dict[str, Any]:
    return {
        "rental_types": copy.deepcopy(constants.DEFAULT_RENTAL_TYPES),
        "business_hours": dict(constants.DEFAULT_BUSINESS_HOURS),
        "slot_duration": constants.DEFAULT_SLOT_DURATION_MIN,
        "admin_emails": list(constants.DEFAULT_ADMIN_EMAILS),
        "admin_mobiles": [],
        "upi_id": constants.DEFAULT_UPI_ID,
        "upi_name": constants.DEFAULT_UPI_NAME,
        "gst_enabled": False,
        "gst_rate": constants.DEFAULT_GST_RATE,
    }


@store_operation
def ensure_admin_settings(db: Session) -> models.AdminSettings:
    """Create the settings row with defaults unless it already exists.

    Safe to call from several workers at startup: a losing insert is rolled
    back and the winner's row is returned.
    """
    settings = db.get(models.AdminSettings, models.SETTINGS_ID)
    if settings:
        return settings
    settings = models.AdminSettings(id=models.SETTINGS_ID, **_defaults())
    db.add(settings)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Admin settings were created concurrently")
        return db.get(models.AdminSettings, models.SETTINGS_ID)
    db.refresh(settings)
    logger.info("Created default admin settings")
    return settings


def get_admin_settings(db: Session) -> models.AdminSettings:
    settings = db.get(models.AdminSettings, models.SETTINGS_ID)
    if not settings:
        raise NotFound("Admin settings are not initialised")
    return settings


def find_rental_type(settings: models.AdminSettings, name: str) -> dict | None:
    wanted = name.strip()
    for rental in settings.rental_types or []:
        if rental.get("name") == wanted:
            return rental
    return None


def resolve_rental_price(db: Session, rental_type: str) -> float:
    """Return the current base price for ``rental_type``.

    An unknown rental type is a validation error. When the rate table itself
    cannot be read the configured fallback price is used and a
    ``rate_lookup_fallback`` warning is logged for operators.
    """
    settings = db.get(models.AdminSettings, models.SETTINGS_ID)
    fallback = float(get_settings().fallback_price)
    if not settings or not settings.rental_types:
        logger.warning(
            "Rate table unavailable, using fallback price",
            extra={
                "event": "rate_lookup_fallback",
                "rental_type": rental_type,
                "fallback_price": fallback,
            },
        )
        return fallback
    rental = find_rental_type(settings, rental_type)
    if rental is None:
        raise ValidationError(
            {"rental_type": f"Unknown rental type '{rental_type}'"},
            detail="Unknown rental type",
        )
    try:
        return float(rental["base_price"])
    except (KeyError, TypeError, ValueError):
        logger.warning(
            "Rate table entry has no usable base price, using fallback price",
            extra={
                "event": "rate_lookup_fallback",
                "rental_type": rental_type,
                "fallback_price": fallback,
            },
        )
        return fallback


@store_operation
def update_admin_settings(db: Session, changes: dict[str, Any]) -> models.AdminSettings:
    settings = get_admin_settings(db)
    if "business_hours" in changes and changes["business_hours"] is not None:
        hours = changes["business_hours"]
        if hours["end_time"] <= hours["start_time"]:
            raise ValidationError({"business_hours": "end_time must be after start_time"})
    if changes.get("rental_types") is not None:
        names = [rental["name"].strip() for rental in changes["rental_types"]]
        if len(names) != len(set(names)):
            raise ValidationError({"rental_types": "Rental type names must be unique"})
        for rental in changes["rental_types"]:
            rental["name"] = rental["name"].strip()
    if changes.get("admin_emails") is not None:
        emails = [email.strip().lower() for email in changes["admin_emails"] if email.strip()]
        invalid = [email for email in emails if not re.match(EMAIL_PATTERN, email)]
        if invalid:
            raise ValidationError({"admin_emails": f"Invalid email address: {invalid[0]!r}"})
        changes["admin_emails"] = emails
    for key, value in changes.items():
        if value is None:
            continue
        setattr(settings, key, value)
    db.commit()
    db.refresh(settings)
    logger.info("Admin settings updated", extra={"fields": sorted(changes)})
    return settings


def add_admin_email(db: Session, email: str) -> None:
    settings = get_admin_settings(db)
    email = email.strip().lower()
    if email not in (settings.admin_emails or []):
        settings.admin_emails = [*(settings.admin_emails or []), email]


__all__ = [
    "ensure_admin_settings",
    "get_admin_settings",
    "find_rental_type",
    "resolve_rental_price",
    "update_admin_settings",
    "add_admin_email",
]
