from . import (
    admin,
    auth,
    bookings,
    misc,
    profile,
    settings,
    slots,
)

__all__ = [
    "admin",
    "auth",
    "bookings",
    "misc",
    "profile",
    "settings",
    "slots",
]
