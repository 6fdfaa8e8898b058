"""Common application-wide constants."""

# Rate table installed by ``ensure_admin_settings`` on a fresh database
DEFAULT_RENTAL_TYPES = [
    {"name": "JamRoom", "description": "Basic jam room rental", "base_price": 500, "sub_items": []},
    {"name": "Instruments", "description": "Instrument rental only", "base_price": 300, "sub_items": []},
    {"name": "Sound System", "description": "Sound system rental", "base_price": 400, "sub_items": []},
    {
        "name": "JamRoom + Instruments",
        "description": "Room with instruments",
        "base_price": 700,
        "sub_items": [],
    },
    {"name": "Full Package", "description": "Everything included", "base_price": 1000, "sub_items": []},
]
DEFAULT_BUSINESS_HOURS = {"start_time": "09:00", "end_time": "22:00"}
DEFAULT_SLOT_DURATION_MIN = 60
DEFAULT_ADMIN_EMAILS = ["admin@jamroom.com"]
DEFAULT_UPI_ID = "jamroom@paytm"
DEFAULT_UPI_NAME = "JamRoom Studio"
DEFAULT_GST_RATE = 0.18

REJECTION_NOTE_PREFIX = "Rejection reason: "

# Conflict reasons surfaced to API clients
SLOT_BLOCKED = "slot blocked"
SLOT_TAKEN = "slot already booked/requested"
ALREADY_CONFIRMED = "already confirmed"
ALREADY_CANCELLED = "already cancelled"


__all__ = [
    "DEFAULT_RENTAL_TYPES",
    "DEFAULT_BUSINESS_HOURS",
    "DEFAULT_SLOT_DURATION_MIN",
    "DEFAULT_ADMIN_EMAILS",
    "DEFAULT_UPI_ID",
    "DEFAULT_UPI_NAME",
    "DEFAULT_GST_RATE",
    "REJECTION_NOTE_PREFIX",
    "SLOT_BLOCKED",
    "SLOT_TAKEN",
    "ALREADY_CONFIRMED",
    "ALREADY_CANCELLED",
]
