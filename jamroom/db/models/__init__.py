from .user import User, UserRole
from .slot import Slot
from .booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus, PaymentStatus
from .admin_settings import SETTINGS_ID, AdminSettings
