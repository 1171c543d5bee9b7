# zomatify/services/payment_service.py
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from zomatify.domain.schemas import (
    DebugCredentialsOut,
    PaymentOrderIn,
    PaymentOrderOut,
    RefundIn,
    RefundOut,
    VerifyPaymentIn,
)
from zomatify.exceptions import GatewayConfigError, InvalidAmountError, PaymentNotRefundableError
from zomatify.services.gateway_client import (
    RazorpayGateway,
    verify_payment_signature,
    verify_webhook_signature,
)
from zomatify.utils import settings
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

TEST_KEY_PREFIX = "rzp_test_"


def parse_amount(raw: Any) -> Decimal:
    """Accept positive numbers and numeric strings, reject everything else."""
    if raw is None or isinstance(raw, bool) or raw == "":
        raise InvalidAmountError("Invalid amount")
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        raise InvalidAmountError("Invalid amount") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError("Invalid amount")
    return amount


def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def mask(value: str | None) -> str:
    if not value:
        return "MISSING"
    return f"{value[:4]}***{value[-4:]}"


class PaymentService:
    """
    Stateless bridge to the payment gateway.
    Credentials are read from settings when the service is built.
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        gateway_factory=RazorpayGateway,
    ):
        self.key_id = settings.RAZORPAY_KEY_ID if key_id is None else key_id
        self.key_secret = settings.RAZORPAY_KEY_SECRET if key_secret is None else key_secret
        self.webhook_secret = (
            settings.RAZORPAY_WEBHOOK_SECRET if webhook_secret is None else webhook_secret
        )
        self.gateway_factory = gateway_factory

    def create_order(self, payload: PaymentOrderIn) -> PaymentOrderOut:
        logger.info(
            f"Payment order request: amount={payload.amount!r} "
            f"reference={payload.order_reference} currency={payload.currency}"
        )
        amount = parse_amount(payload.amount)

        gateway = self.gateway_factory(self.key_id, self.key_secret)
        order = gateway.create_order(
            amount=to_minor_units(amount),
            currency=payload.currency,
            receipt=payload.order_reference or f"order_{int(time.time() * 1000)}",
            notes=payload.notes,
        )

        return PaymentOrderOut(
            id=order["id"],
            amount=order["amount"],
            currency=order["currency"],
            status=order["status"],
        )

    def verify_payment(self, payload: VerifyPaymentIn) -> bool:
        if not payload.payment_id or not payload.order_id or not payload.signature:
            raise ValueError("Missing verification parameters")

        if not self.key_secret:
            raise GatewayConfigError("Missing Razorpay secret")

        verified = verify_payment_signature(
            self.key_secret, payload.order_id, payload.payment_id, payload.signature
        )

        logger.info(
            f"Payment verification: payment={payload.payment_id} "
            f"order={payload.order_id} verified={verified}"
        )
        return verified

    def verify_webhook(self, body: bytes, signature: str | None) -> bool:
        if not self.webhook_secret:
            raise GatewayConfigError("Webhook secret not configured")
        if not signature:
            return False
        return verify_webhook_signature(self.webhook_secret, body, signature)

    def refund(self, payload: RefundIn) -> RefundOut:
        """
        Refund a captured payment, in full unless an amount (paise) is given.

        Raises:
            ValueError: If an id is missing
            PaymentNotRefundableError: If the payment is not captured
            PaymentError: If the gateway fails
        """
        if not payload.payment_id or not payload.order_id:
            raise ValueError("Payment ID and Order ID are required")

        gateway = self.gateway_factory(self.key_id, self.key_secret)
        payment = gateway.fetch_payment(payload.payment_id)
        if not payment or payment.get("status") != "captured":
            raise PaymentNotRefundableError("Payment not found or not eligible for refund")

        amount = payload.amount or payment["amount"]
        refund = gateway.refund_payment(
            payload.payment_id,
            amount,
            notes={
                "reason": payload.reason,
                "order_id": payload.order_id,
                "refund_type": "vendor_cancellation",
            },
        )

        logger.info(f"Refund {refund['id']} processed for order {payload.order_id}")
        return RefundOut(
            id=refund["id"],
            amount=Decimal(amount) / 100,
            status=refund.get("status", "processed"),
            order_id=payload.order_id,
            payment_id=payload.payment_id,
        )

    def debug_credentials(self) -> DebugCredentialsOut:
        key_id, key_secret = self.key_id, self.key_secret
        return DebugCredentialsOut(
            key_id_present=bool(key_id),
            key_secret_present=bool(key_secret),
            key_id_length=len(key_id) if key_id else 0,
            key_secret_length=len(key_secret) if key_secret else 0,
            key_id_preview=mask(key_id),
            key_secret_preview=mask(key_secret),
            key_id_starts_with_test=bool(key_id) and key_id.startswith(TEST_KEY_PREFIX),
            environment=settings.ENVIRONMENT or "development",
            timestamp=datetime.now(timezone.utc),
        )
