"""
Razorpay API client for payment orders.

Provides async methods for:
- Creating gateway orders for checkout
- Fetching gateway order status
- Listing payments made against a gateway order
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class GatewayOrder:
    """Razorpay order as returned by the Orders API."""

    id: str
    amount: int  # in paise
    currency: str
    receipt: Optional[str]
    status: str  # created, attempted, paid


class RazorpayError(Exception):
    """Base exception for Razorpay API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class RazorpayTimeoutError(RazorpayError):
    """The gateway did not answer within the configured timeout."""


class RazorpayClient:
    """Async client for the Razorpay Orders API (HTTP Basic auth)."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not key_id or not key_secret:
            raise ValueError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET are required")
        self.key_id = key_id
        self._auth = httpx.BasicAuth(key_id, key_secret)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
    ) -> dict:
        """Make an async request to the Razorpay API."""
        url = f"{self._base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    auth=self._auth,
                    json=json_data,
                )
        except httpx.TimeoutException as exc:
            logger.warning(f"Razorpay request timed out: {method} {endpoint}")
            raise RazorpayTimeoutError("Razorpay request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error(f"Razorpay transport error: {method} {endpoint}: {exc}")
            raise RazorpayError(f"Razorpay unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text}

        if not response.is_success:
            error = data.get("error") or {}
            logger.error(f"Razorpay API error: {response.status_code} - {data}")
            raise RazorpayError(
                message=error.get("description", "Unknown Razorpay error"),
                status_code=response.status_code,
                response_data=data,
            )

        return data

    @staticmethod
    def _to_gateway_order(data: dict) -> GatewayOrder:
        return GatewayOrder(
            id=data["id"],
            amount=int(data.get("amount", 0)),
            currency=data.get("currency", "INR"),
            receipt=data.get("receipt"),
            status=data.get("status", "created"),
        )

    async def create_order(
        self,
        amount_minor: int,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[dict] = None,
    ) -> GatewayOrder:
        """
        Create a gateway order the checkout widget can collect payment for.

        Args:
            amount_minor: Amount in paise
            currency: ISO currency code
            receipt: Our own reference (the local order id)
            notes: Free-form key/values echoed back by the gateway

        Raises:
            RazorpayTimeoutError: If the gateway does not answer in time
            RazorpayError: If the gateway rejects the request
        """
        payload = {"amount": amount_minor, "currency": currency}
        if receipt:
            payload["receipt"] = receipt
        if notes:
            payload["notes"] = notes

        data = await self._request("POST", "/orders", json_data=payload)
        return self._to_gateway_order(data)

    async def fetch_order(self, gateway_order_id: str) -> GatewayOrder:
        data = await self._request("GET", f"/orders/{gateway_order_id}")
        return self._to_gateway_order(data)

    async def fetch_order_payments(self, gateway_order_id: str) -> list[dict]:
        data = await self._request("GET", f"/orders/{gateway_order_id}/payments")
        return list(data.get("items", []))


def get_razorpay_client() -> Optional[RazorpayClient]:
    """Return a configured client, or None when credentials are missing."""
    settings = get_settings()
    if not settings.razorpay_configured:
        return None
    return RazorpayClient(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        base_url=settings.RAZORPAY_BASE_URL,
        timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
    )
