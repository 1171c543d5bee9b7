import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, JSON, Numeric, String, Text

from zomatify.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False, index=True)
    vendor_id = Column(String, nullable=True, index=True)

    items = Column(JSON, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    status = Column(String, nullable=False, default="pending")  # pending, accepted, preparing, ready, completed, cancelled
    payment_status = Column(String, nullable=False, default="pending")  # pending, paid, failed, refunded
    payment_method = Column(String, nullable=False, default="cod")
    payment_id = Column(String, nullable=True)
    razorpay_order_id = Column(String, nullable=True, index=True)
    refund_id = Column(String, nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_reason = Column(Text, nullable=True)

    delivery_address = Column(JSON, nullable=True)
    scheduled_for = Column(DateTime(timezone=True), nullable=True)
    special_instructions = Column(Text, nullable=True)
    group_order_id = Column(String, nullable=True)
    order_type = Column(String, nullable=False, default="delivery")

    queue_position = Column(Integer, nullable=True)
    bill_number = Column(Integer, nullable=True)
    bill_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
