from . import (
    booking_service,
    notification_service,
    report_service,
    schedule_service,
    settings_service,
    user_service,
)
__all__ = [
    "booking_service",
    "notification_service",
    "report_service",
    "schedule_service",
    "settings_service",
    "user_service",
]
