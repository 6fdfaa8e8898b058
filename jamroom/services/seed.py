from datetime import date, timedelta
from sqlalchemy.orm import Session
from ..db.session import SessionLocal
from ..db import models
from ..config import get_settings
from .settings_service import ensure_admin_settings
from .schedule_service import bulk_create_slots
from .user_service import ensure_admin_exists

SEED_DAYS = 7


def seed(session: Session) -> None:
    settings = get_settings()
    ensure_admin_exists(
        session,
        settings.default_admin_email,
        settings.default_admin_password,
        settings.default_admin_name,
    )
    studio = ensure_admin_settings(session)
    if session.query(models.Slot).count() == 0:
        hours = studio.business_hours or {}
        today = date.today()
        bulk_create_slots(
            session,
            dates=[today + timedelta(days=offset) for offset in range(1, SEED_DAYS + 1)],
            start_time=hours.get("start_time", "09:00"),
            end_time=hours.get("end_time", "22:00"),
            duration_min=studio.slot_duration,
        )


if __name__ == "__main__":
    with SessionLocal() as session:
        seed(session)
        print("Seed data created")
