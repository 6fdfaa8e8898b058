from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from ..session import Base

SETTINGS_ID = 1


class AdminSettings(Base):
    """Studio-wide configuration. Exactly one row (``id == SETTINGS_ID``)."""

    __tablename__ = "admin_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ID)
    rental_types: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    business_hours: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    slot_duration: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    admin_emails: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    admin_mobiles: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    upi_id: Mapped[str] = mapped_column(String(128), default="jamroom@paytm")
    upi_name: Mapped[str] = mapped_column(String(128), default="JamRoom Studio")
    gst_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    gst_rate: Mapped[float] = mapped_column(Numeric(5, 4), default=0.18)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
