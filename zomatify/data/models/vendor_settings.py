from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from zomatify.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class VendorSettingsModel(Base):
    __tablename__ = "vendor_settings"

    vendor_id = Column(String, primary_key=True)
    is_accepting_orders = Column(Boolean, nullable=False, default=True)
    is_busy_mode = Column(Boolean, nullable=False, default=False)
    max_concurrent_orders = Column(Integer, nullable=False, default=20)

    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
