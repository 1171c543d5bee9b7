# zomatify/services/order_service.py
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from zomatify.data.models.order import OrderModel
from zomatify.domain.schemas import OrderCreate, OrderPaymentUpdate, OrderStatusUpdate
from zomatify.exceptions import OrderNotFoundError, VendorUnavailableError
from zomatify.repos.order_repo import OrderRepo
from zomatify.repos.vendor_repo import VendorRepo
from zomatify.services.notification_service import NotificationService
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

# gateway webhook event -> payment_status
PAYMENT_EVENTS = {
    "payment.captured": "paid",
    "payment.failed": "failed",
}


class OrderService:
    """
    Use cases of the order records domain.
    Orders are written by the checkout and the vendor; the customer app only reads them.
    """

    def __init__(self, db: Session, notification_service: NotificationService | None = None):
        self.repo = OrderRepo(db)
        self.vendors = VendorRepo(db)
        self.notification_service = notification_service or NotificationService()

    # commands
    def create_order(self, payload: OrderCreate) -> OrderModel:
        """
        1. checks the vendor is taking orders
        2. assigns the next queue position and bill number for the vendor
        3. stores the order
        4. sends the notification (async)
        """
        if payload.vendor_id:
            self.check_vendor_available(payload.vendor_id)

        queue_position = self.repo.next_queue_position(payload.vendor_id)
        bill_number = self.repo.next_bill_number(payload.vendor_id)

        logger.info(
            f"Assigning queue position {queue_position}, bill {bill_number} "
            f"to new order for vendor {payload.vendor_id}"
        )

        order = OrderModel(
            user_id=payload.user_id,
            vendor_id=payload.vendor_id,
            items=[i.model_dump(mode="json") for i in payload.items],
            total_price=payload.total_price,
            status=payload.status,
            payment_status=payload.payment_status,
            payment_method=payload.payment_method,
            payment_id=payload.payment_id,
            delivery_address=(
                payload.delivery_address.model_dump(mode="json", by_alias=True)
                if payload.delivery_address
                else None
            ),
            scheduled_for=payload.scheduled_for,
            special_instructions=payload.special_instructions,
            group_order_id=payload.group_order_id,
            order_type=payload.order_type,
            queue_position=queue_position,
            bill_number=bill_number,
            bill_date=date.today(),
        )
        created = self.repo.create_order(order)

        logger.info(f"Order {created.id} created for user {created.user_id}")
        self.notification_service.send_order_notification(created.user_id, created.id, created.status)
        return created

    def update_payment(self, order_id: str, payload: OrderPaymentUpdate) -> OrderModel:
        if not payload.payment_id or not payload.payment_status:
            raise ValueError("Missing required fields: payment_id or payment_status")

        order = self.get_order(order_id)

        # status stays as is, the vendor accepts the order
        changes: Dict[str, Any] = {
            "payment_id": payload.payment_id,
            "payment_status": payload.payment_status,
        }
        if payload.razorpay_order_id:
            changes["razorpay_order_id"] = payload.razorpay_order_id

        updated = self.repo.update_order(order, changes)
        logger.info(f"Order {order_id} payment {payload.payment_id} -> {payload.payment_status}")
        return updated

    def link_gateway_order(self, order_id: str, razorpay_order_id: str | None) -> OrderModel:
        """Record the gateway order so webhooks can find this order before the client verifies."""
        if not razorpay_order_id:
            raise ValueError("Missing required field: razorpay_order_id")

        order = self.get_order(order_id)
        updated = self.repo.update_order(order, {"razorpay_order_id": razorpay_order_id})
        logger.info(f"Order {order_id} linked to gateway order {razorpay_order_id}")
        return updated

    def mark_refunded(self, order_id: str, refund_id: str, amount: Decimal, reason: str) -> OrderModel:
        order = self.get_order(order_id)
        updated = self.repo.update_order(
            order,
            {
                "payment_status": "refunded",
                "refund_id": refund_id,
                "refund_amount": amount,
                "refund_reason": reason,
            },
        )
        logger.info(f"Order {order_id} refunded: {refund_id} ({amount})")
        return updated

    def update_status(self, order_id: str, payload: OrderStatusUpdate) -> OrderModel:
        order = self.get_order(order_id)

        changes = payload.model_dump(exclude_none=True)
        if not changes:
            return order

        status_changed = "status" in changes and changes["status"] != order.status
        updated = self.repo.update_order(order, changes)
        logger.info(f"Order {order_id} updated: {changes}")

        if status_changed:
            self.notification_service.send_order_notification(updated.user_id, updated.id, updated.status)
        return updated

    def apply_payment_event(self, event: Dict[str, Any]) -> int:
        """Apply a verified gateway webhook event, returns the number of orders touched."""
        event_type = event.get("event")
        payment_status = PAYMENT_EVENTS.get(event_type)
        if payment_status is None:
            logger.debug(f"Ignoring unhandled payment event: {event_type}")
            return 0

        entity = (event.get("payload") or {}).get("payment", {}).get("entity", {})
        razorpay_order_id = entity.get("order_id")
        if not razorpay_order_id:
            logger.warning(f"Payment event {event_type} without order_id: {entity.get('id')}")
            return 0

        orders = self.repo.get_by_razorpay_order_id(razorpay_order_id)
        for order in orders:
            changes: Dict[str, Any] = {"payment_status": payment_status}
            if payment_status == "paid":
                changes["payment_id"] = entity.get("id")
            self.repo.update_order(order, changes)

        logger.info(
            f"Payment event {event_type} for {razorpay_order_id}: {len(orders)} order(s) updated"
        )
        return len(orders)

    def check_vendor_available(self, vendor_id: str) -> None:
        settings = self.vendors.get_settings(vendor_id)
        if settings is None:
            raise VendorUnavailableError("Vendor settings not configured. Please contact support.")
        if not settings.is_accepting_orders:
            raise VendorUnavailableError(
                "This vendor is currently not accepting orders. Please try again later."
            )
        if settings.is_busy_mode:
            raise VendorUnavailableError(
                "This vendor is currently busy. Please try again in a few minutes."
            )

        active = self.repo.count_active(vendor_id)
        if active >= settings.max_concurrent_orders:
            logger.warning(
                f"Vendor {vendor_id} at capacity: {active}/{settings.max_concurrent_orders} active orders"
            )
            raise VendorUnavailableError("This vendor is at maximum capacity. Please try again later.")

    # queries
    def get_order(self, order_id: str) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise OrderNotFoundError("Order not found")
        return order

    def list_orders(
        self,
        user_id: str | None = None,
        vendor_id: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[OrderModel]:
        return self.repo.list_orders(user_id, vendor_id, status, limit, offset)
