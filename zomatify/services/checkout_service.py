# zomatify/services/checkout_service.py
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Awaitable, Callable

from pydantic import ValidationError

from zomatify.domain.schemas import (
    CheckoutResult,
    DeliveryAddress,
    OrderCreate,
    OrderOut,
    PaymentConfirmation,
    PaymentOrderOut,
)
from zomatify.exceptions import ZomatifyError
from zomatify.services.api_client import ZomatifyApiClient
from zomatify.services.auth_service import AuthSessionManager
from zomatify.services.cart_service import CartService
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

TAX_RATE = Decimal("0.05")
DELIVERY_FEE = Decimal("30")
FREE_DELIVERY_ABOVE = Decimal("300")

# the gateway's hosted checkout, returns what the gateway hands back
PaymentCollector = Callable[[PaymentOrderOut, OrderOut], Awaitable[PaymentConfirmation]]


@dataclass(frozen=True)
class Bill:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.tax + self.delivery_fee


def calculate_bill(subtotal: Decimal, order_type: str = "delivery") -> Bill:
    tax = (subtotal * TAX_RATE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if order_type != "delivery" or subtotal > FREE_DELIVERY_ABOVE:
        fee = Decimal("0")
    else:
        fee = DELIVERY_FEE
    return Bill(subtotal=subtotal, tax=tax, delivery_fee=fee)


class CheckoutService:
    """
    Place-order flow over the cart, the auth session and the HTTP API.

    The cart is cleared only after the order is stored and, for online
    payment, the gateway signature has been verified. Every failure is
    returned as CheckoutResult(success=False) and leaves the cart as it was.
    """

    def __init__(self, cart: CartService, auth: AuthSessionManager, api: ZomatifyApiClient):
        self.cart = cart
        self.auth = auth
        self.api = api

    def bill(self, order_type: str = "delivery") -> Bill:
        return calculate_bill(self.cart.total_price, order_type)

    async def place_order(
        self,
        delivery_address: DeliveryAddress | None,
        payment_method: str = "cod",
        collect_payment: PaymentCollector | None = None,
        vendor_id: str | None = None,
        order_type: str = "delivery",
        special_instructions: str | None = None,
        scheduled_for: datetime | None = None,
        group_order_id: str | None = None,
    ) -> CheckoutResult:
        user = self.auth.state.user
        if user is None:
            return self._failure("Please log in to place an order")
        if not self.cart.items:
            return self._failure("Your cart is empty")
        if order_type == "delivery" and delivery_address is None:
            return self._failure("Please add a delivery address")
        if payment_method == "razorpay" and collect_payment is None:
            return self._failure("Online payment is not available")

        bill = self.bill(order_type)

        try:
            order = await self.api.create_order(
                OrderCreate(
                    user_id=user.id,
                    vendor_id=vendor_id,
                    items=self.cart.to_order_items(),
                    total_price=bill.total,
                    payment_method=payment_method,
                    delivery_address=delivery_address,
                    scheduled_for=scheduled_for,
                    special_instructions=special_instructions,
                    group_order_id=group_order_id,
                    order_type=order_type,
                )
            )
        except ValidationError as e:
            return self._failure(f"Invalid order: {e.errors()[0]['msg']}")
        except ZomatifyError as e:
            return self._failure(e.message or "Failed to place order")

        logger.info(f"Order {order.id} stored, queue position {order.queue_position}")

        if payment_method == "razorpay":
            try:
                paid = await self._collect_online_payment(order, bill.total, collect_payment)
            except ZomatifyError as e:
                return self._failure(e.message, order.id)
            except Exception as e:
                logger.exception(f"Payment for order {order.id} failed")
                return self._failure(str(e) or "An error occurred during payment verification", order.id)
            if not paid:
                return self._failure("Payment verification failed. Please contact support.", order.id)

        self.cart.clear_cart()
        return CheckoutResult(success=True, order_id=order.id, queue_position=order.queue_position)

    async def _collect_online_payment(
        self,
        order: OrderOut,
        amount: Decimal,
        collect_payment: PaymentCollector,
    ) -> bool:
        gateway_order = await self.api.create_payment_order(amount, order.id)
        # webhooks find the order by gateway order id even if the customer never returns
        await self.api.link_gateway_order(order.id, gateway_order.id)
        confirmation = await collect_payment(gateway_order, order)

        if not await self.api.verify_payment(confirmation):
            logger.warning(f"Signature mismatch for payment {confirmation.payment_id}")
            return False

        await self.api.update_order_payment(
            order.id,
            confirmation.payment_id,
            "paid",
            razorpay_order_id=confirmation.order_id,
        )
        return True

    @staticmethod
    def _failure(message: str, order_id: str | None = None) -> CheckoutResult:
        logger.error(f"Checkout failed: {message}")
        return CheckoutResult(success=False, order_id=order_id, error=message)
