from .slot import (
    Slot,
    SlotAvailability,
    SlotBlock,
    SlotBulkCreate,
    SlotBulkResult,
    SlotCreate,
    SlotUpdate,
    normalize_time,
)
from .booking import Booking, BookingCreate, BookingReject
from .setting import (
    AdminSettings,
    AdminSettingsUpdate,
    BusinessHours,
    PublicSettings,
    RentalSubItem,
    RentalType,
)
from .user import MakeAdmin, PasswordChange, ProfileUpdate, User, UserRegister
from .report import BusySlot, DashboardStats, RevenueReport
