# zomatify/repos/order_repo.py
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from zomatify.data.models.order import OrderModel

# orders still occupying the kitchen
ACTIVE_STATUSES = ("pending", "accepted", "preparing")


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def get_order(self, order_id: str) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def list_orders(
        self,
        user_id: str | None = None,
        vendor_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[OrderModel]:
        query = select(OrderModel)
        if user_id:
            query = query.where(OrderModel.user_id == user_id)
        if vendor_id:
            query = query.where(OrderModel.vendor_id == vendor_id)
        if status:
            query = query.where(OrderModel.status == status)

        query = query.order_by(OrderModel.created_at.desc()).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def get_by_razorpay_order_id(self, razorpay_order_id: str) -> List[OrderModel]:
        query = select(OrderModel).where(OrderModel.razorpay_order_id == razorpay_order_id)
        return list(self.db.execute(query).scalars().all())

    def count_active(self, vendor_id: str) -> int:
        query = (
            select(func.count())
            .select_from(OrderModel)
            .where(OrderModel.vendor_id == vendor_id)
            .where(OrderModel.status.in_(ACTIVE_STATUSES))
        )
        return self.db.execute(query).scalar_one()

    def update_order(self, order: OrderModel, changes: Dict[str, Any]) -> OrderModel:
        for field, value in changes.items():
            setattr(order, field, value)
        self.db.commit()
        self.db.refresh(order)
        return order

    def _max_for_vendor(self, column, vendor_id: str | None) -> int | None:
        query = select(func.max(column))
        if vendor_id is None:
            query = query.where(OrderModel.vendor_id.is_(None))
        else:
            query = query.where(OrderModel.vendor_id == vendor_id)
        return self.db.execute(query).scalar_one_or_none()

    def next_queue_position(self, vendor_id: str | None) -> int:
        last = self._max_for_vendor(OrderModel.queue_position, vendor_id)
        return (last or 0) + 1

    def next_bill_number(self, vendor_id: str | None) -> int:
        last = self._max_for_vendor(OrderModel.bill_number, vendor_id)
        return (last or 0) + 1
