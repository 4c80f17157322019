"""TokenPay - Razorpay gateway adapter.

All traffic with the payment provider goes through this module:
1. Order creation (amount sent in minor units)
2. Payment signature verification (HMAC-SHA256 over ``order_id|payment_id``)
3. Webhook signature verification (HMAC-SHA256 over the raw body)
4. Order / payment lookups used by reconciliation
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx

from tokenpay.core.config import get_settings
from tokenpay.core.exceptions import GatewayError, GatewayUnavailable
from tokenpay.utils.amount import to_minor_units

logger = logging.getLogger(__name__)

# Provider limit on the receipt field
MAX_RECEIPT_LENGTH = 40


@dataclass(frozen=True)
class GatewayOrder:
    """Order as returned by the provider. ``amount`` is in minor units."""

    id: str
    amount: int
    currency: str
    receipt: str | None
    status: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GatewayOrder":
        return cls(
            id=data["id"],
            amount=int(data.get("amount", 0)),
            currency=data.get("currency", ""),
            receipt=data.get("receipt"),
            status=data.get("status", "created"),
        )


@dataclass(frozen=True)
class GatewayPayment:
    """Payment entity attached to a provider order."""

    id: str
    order_id: str | None
    status: str
    method: str | None = None
    error_description: str | None = None

    @property
    def is_captured(self) -> bool:
        return self.status == "captured"

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GatewayPayment":
        return cls(
            id=data["id"],
            order_id=data.get("order_id"),
            status=data.get("status", ""),
            method=data.get("method"),
            error_description=data.get("error_description"),
        )


class RazorpayService:
    """Async client for the Razorpay Orders API.

    Credentials and endpoints default to settings; tests inject an
    ``httpx.MockTransport`` through ``transport``.
    """

    def __init__(
        self,
        key_id: str | None = None,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.key_id = settings.razorpay_key_id if key_id is None else key_id
        self.key_secret = settings.razorpay_key_secret if key_secret is None else key_secret
        self.webhook_secret = (
            settings.razorpay_webhook_secret if webhook_secret is None else webhook_secret
        )
        self.api_base = (api_base or settings.razorpay_api_base).rstrip("/")
        self.timeout = timeout or settings.razorpay_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """True when API credentials are present."""
        return bool(self.key_id and self.key_secret)

    @property
    def webhook_secret_configured(self) -> bool:
        return bool(self.webhook_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if not self.is_configured:
            raise GatewayUnavailable("Payment gateway is not configured")
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_base,
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        """Send a request and decode the JSON body.

        Raises:
            GatewayUnavailable: If credentials are missing
            GatewayError: On timeout, network failure or provider rejection
        """
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"Razorpay {method} {path} timed out after {self.timeout}s")
            raise GatewayError("Payment gateway timed out", {"path": path}) from e
        except httpx.RequestError as e:
            logger.error(f"Razorpay {method} {path} failed: {e}")
            raise GatewayError("Payment gateway unreachable", {"path": path}) from e

        if response.is_error:
            code, description = self._parse_error(response)
            logger.error(
                f"Razorpay {method} {path} rejected: {response.status_code} {code} {description}"
            )
            raise GatewayError(
                description,
                {"status_code": response.status_code, "provider_code": code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError("Payment gateway returned invalid JSON", {"path": path}) from e

    @staticmethod
    def _parse_error(response: httpx.Response) -> tuple[str | None, str]:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        description = error.get("description") or f"HTTP {response.status_code}"
        return error.get("code"), description

    # ============ Orders ============

    async def create_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str,
        billing_country: str,
        notes: dict[str, str] | None = None,
    ) -> GatewayOrder:
        """Create a provider order.

        Args:
            amount: Final amount in major units (converted to minor units here)
            currency: INR / USD
            receipt: Internal transaction id (<= 40 chars)
            billing_country: Canonical billing country, stored in order notes
            notes: Extra order notes

        Returns:
            Created gateway order

        Raises:
            GatewayUnavailable: If credentials are missing
            GatewayError: If the provider rejects the order or cannot be reached
        """
        if len(receipt) > MAX_RECEIPT_LENGTH:
            raise GatewayError(
                f"Receipt exceeds {MAX_RECEIPT_LENGTH} characters", {"receipt": receipt}
            )

        payload = {
            "amount": to_minor_units(amount, currency),
            "currency": currency.upper(),
            "receipt": receipt,
            "notes": {"billing_country": billing_country, **(notes or {})},
        }
        data = await self._request("POST", "/orders", json=payload)
        order = GatewayOrder.from_api(data)
        logger.info(
            f"Razorpay order created: {order.id} receipt={receipt} "
            f"amount={order.amount} {order.currency}"
        )
        return order

    async def find_order_by_receipt(self, receipt: str) -> GatewayOrder | None:
        """Find the provider order created for a receipt, if any."""
        data = await self._request("GET", "/orders", params={"receipt": receipt})
        items = data.get("items") or []
        if not items:
            return None
        return GatewayOrder.from_api(items[0])

    async def fetch_order_payments(self, order_id: str) -> list[GatewayPayment]:
        """List payment attempts made against a provider order."""
        data = await self._request("GET", f"/orders/{order_id}/payments")
        return [GatewayPayment.from_api(item) for item in data.get("items") or []]

    # ============ Signatures ============

    @staticmethod
    def generate_signature(message: str | bytes, secret: str) -> str:
        """Create hex HMAC-SHA256 signature.

        Args:
            message: Signed payload (str is UTF-8 encoded)
            secret: Shared secret

        Returns:
            Hex-encoded signature
        """
        if isinstance(message, str):
            message = message.encode()
        return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()

    def verify_signature(self, payment_id: str, order_id: str, signature: str) -> bool:
        """Verify the checkout signature the client reports after paying.

        Returns False on any malformed input instead of raising.
        """
        if not self.key_secret:
            logger.error("Cannot verify payment signature: key secret not configured")
            return False
        if not (
            isinstance(payment_id, str)
            and isinstance(order_id, str)
            and isinstance(signature, str)
            and payment_id
            and order_id
            and signature
        ):
            return False

        expected = self.generate_signature(f"{order_id}|{payment_id}", self.key_secret)
        try:
            return hmac.compare_digest(expected, signature)
        except TypeError:
            # Non-ASCII signature strings
            return False

    def verify_webhook_signature(self, raw_body: bytes, header_signature: str | None) -> bool:
        """Verify a webhook delivery against the webhook secret.

        Returns False without a configured secret; the ingress decides
        whether such deliveries are processed unverified.
        """
        if not self.webhook_secret or not header_signature:
            return False
        expected = self.generate_signature(raw_body, self.webhook_secret)
        try:
            return hmac.compare_digest(expected, header_signature)
        except TypeError:
            return False


_gateway: RazorpayService | None = None


def get_razorpay_service() -> RazorpayService:
    """Get the process-wide gateway client."""
    global _gateway
    if _gateway is None:
        _gateway = RazorpayService()
    return _gateway
