# zomatify/services/api_client.py
from decimal import Decimal
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from zomatify.domain.schemas import (
    OrderCreate,
    OrderOut,
    PaymentConfirmation,
    PaymentOrderOut,
)
from zomatify.exceptions import ApiClientError
from zomatify.utils.settings import API_BASE_URL, DEFAULT_CURRENCY
from zomatify.utils.logging import get_logger

logger = get_logger(__name__)


class ZomatifyApiClient:
    """Async client for the payments and orders endpoints."""

    def __init__(self, base_url: str | None = None, http_client: httpx.AsyncClient | None = None):
        self.base_url = (base_url or API_BASE_URL).rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=15.0)
        self._owns_client = http_client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # payments
    async def create_payment_order(
        self,
        amount: Decimal,
        order_reference: str,
        currency: str = DEFAULT_CURRENCY,
    ) -> PaymentOrderOut:
        data = await self._request(
            "POST",
            "/api/payments/order",
            json={"amount": str(amount), "orderReference": order_reference, "currency": currency},
        )
        return self._parse(PaymentOrderOut, data, "/api/payments/order")

    async def verify_payment(self, confirmation: PaymentConfirmation) -> bool:
        data = await self._request(
            "POST",
            "/api/payments/verify",
            json={
                "paymentId": confirmation.payment_id,
                "orderId": confirmation.order_id,
                "signature": confirmation.signature,
            },
        )
        return bool(data.get("verified"))

    # orders
    async def create_order(self, order: OrderCreate) -> OrderOut:
        data = await self._request(
            "POST",
            "/api/orders",
            json=order.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return self._parse(OrderOut, data, "/api/orders", key="data")

    async def link_gateway_order(self, order_id: str, razorpay_order_id: str) -> OrderOut:
        path = f"/api/orders/{order_id}/gateway-order"
        data = await self._request("PATCH", path, json={"razorpay_order_id": razorpay_order_id})
        return self._parse(OrderOut, data, path, key="data")

    async def update_order_payment(
        self,
        order_id: str,
        payment_id: str,
        payment_status: str,
        razorpay_order_id: str | None = None,
    ) -> OrderOut:
        path = f"/api/orders/{order_id}/payment"
        data = await self._request(
            "PATCH",
            path,
            json={
                "payment_id": payment_id,
                "payment_status": payment_status,
                "razorpay_order_id": razorpay_order_id,
            },
        )
        return self._parse(OrderOut, data, path, key="data")

    @staticmethod
    def _parse(model, data: Any, path: str, key: str | None = None):
        try:
            return model.model_validate(data[key] if key else data)
        except (KeyError, TypeError, ValidationError) as e:
            raise ApiClientError(f"Invalid response from {path}") from e

    async def _request(self, method: str, path: str, json: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(f"ZomatifyApiClient {method} {url}")

        try:
            response = await self._client.request(method, url, json=json)
        except httpx.RequestError as e:
            raise ApiClientError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error")
            except (ValueError, AttributeError):
                message = None
            raise ApiClientError(
                message or f"{method} {path} failed: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ApiClientError(
                f"Invalid response from {path}", status_code=response.status_code
            ) from e
