# zomatify/services/gateway_client.py
from typing import Any, Dict

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from zomatify.exceptions import GatewayConfigError, PaymentError
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)

GATEWAY_ERRORS = (BadRequestError, GatewayError, ServerError)


def verify_payment_signature(key_secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    """Check the checkout signature over order_id|payment_id with the key secret."""
    client = razorpay.Client(auth=("", key_secret))
    try:
        client.utility.verify_payment_signature(
            {
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            }
        )
    except (SignatureVerificationError, TypeError):
        return False
    return True


def verify_webhook_signature(webhook_secret: str, body: bytes, signature: str) -> bool:
    """Check the X-Razorpay-Signature of a raw webhook body."""
    try:
        payload = body.decode("utf-8")
    except UnicodeDecodeError:
        return False
    try:
        razorpay.Client().utility.verify_webhook_signature(payload, signature, webhook_secret)
    except (SignatureVerificationError, TypeError):
        return False
    return True


class RazorpayGateway:
    """Thin wrapper over the Razorpay SDK client."""

    def __init__(self, key_id: str | None, key_secret: str | None):
        if not key_id or not key_secret:
            raise GatewayConfigError(
                "Razorpay credentials are missing. Please set RAZORPAY_KEY_ID "
                "and RAZORPAY_KEY_SECRET in your environment variables"
            )
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """
        Create a gateway order.

        Args:
            amount: Amount in minor units (paise)
            currency: ISO currency code
            receipt: Our own reference for the order
            notes: Free-form key/values stored with the order

        Raises:
            PaymentError: If the gateway rejects the request
        """
        options = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        logger.info(f"Razorpay order options: {options}")

        try:
            order = self.client.order.create(data=options)
        except GATEWAY_ERRORS as e:
            raise PaymentError(
                message=str(e) or "Failed to create Razorpay order",
                code=type(e).__name__,
            ) from e

        logger.info(f"Razorpay order created: {order.get('id')}")
        return order

    def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        try:
            return self.client.payment.fetch(payment_id)
        except GATEWAY_ERRORS as e:
            raise PaymentError(
                message=str(e) or "Failed to fetch payment",
                code=type(e).__name__,
            ) from e

    def refund_payment(
        self,
        payment_id: str,
        amount: int,
        notes: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        """Refund amount (paise) of a captured payment."""
        logger.info(f"Razorpay refund of {amount} for payment {payment_id}")
        try:
            refund = self.client.payment.refund(payment_id, {"amount": amount, "notes": notes or {}})
        except GATEWAY_ERRORS as e:
            raise PaymentError(
                message=str(e) or "Failed to process refund",
                code=type(e).__name__,
            ) from e

        logger.info(f"Razorpay refund created: {refund.get('id')}")
        return refund
