"""Shared test helpers: signatures, webhook bodies and a fake Razorpay API."""
import hashlib
import hmac
import json
from decimal import Decimal
from typing import Any

import httpx
from fastapi import HTTPException

from tokenpay.services.package_catalog import TokenPackage

KEY_ID = "rzp_test_key"
KEY_SECRET = "rzp_test_secret"
WEBHOOK_SECRET = "whsec_test_secret"
API_BASE = "https://api.razorpay.test/v1"

# 100.00 USD reference price, used by the INR pricing scenario
HUNDRED_PACK = TokenPackage("hundred", "Hundred Pack", 500, Decimal("100"))


def sign_payment(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    """Checkout signature as Razorpay computes it."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def sign_webhook(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def webhook_body(
    event: str, order_id: str | None, payment_id: str = "pay_hook_1", **entity: Any
) -> bytes:
    payment = {"id": payment_id, "entity": "payment", "order_id": order_id, **entity}
    return json.dumps(
        {"entity": "event", "event": event, "payload": {"payment": {"entity": payment}}}
    ).encode()


class FakeRazorpay:
    """In-memory stand-in for the Razorpay Orders API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.orders: dict[str, dict[str, Any]] = {}
        self.payments: dict[str, list[dict[str, Any]]] = {}
        # Response or exception returned instead of creating an order
        self.create_failure: httpx.Response | Exception | None = None
        # Create the order upstream, then time out anyway
        self.timeout_after_create = False

    @property
    def create_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def add_order(self, receipt: str, amount: int = 100, currency: str = "USD") -> dict:
        order_id = f"order_{len(self.orders) + 1:06d}"
        order = {
            "id": order_id,
            "entity": "order",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }
        self.orders[order_id] = order
        return order

    def capture(self, order_id: str, payment_id: str = "pay_recon_1", method: str = "upi") -> None:
        self.payments.setdefault(order_id, []).append(
            {"id": payment_id, "order_id": order_id, "status": "captured", "method": method}
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path.endswith("/orders"):
            if isinstance(self.create_failure, Exception):
                raise self.create_failure
            if self.create_failure is not None:
                return self.create_failure
            body = json.loads(request.content)
            order = self.add_order(body["receipt"], body["amount"], body["currency"])
            order["notes"] = body.get("notes", {})
            if self.timeout_after_create:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, json=order)

        if request.method == "GET" and path.endswith("/orders"):
            receipt = request.url.params.get("receipt")
            items = [o for o in self.orders.values() if o["receipt"] == receipt]
            return httpx.Response(200, json={"count": len(items), "items": items})

        if request.method == "GET" and path.endswith("/payments"):
            order_id = path.rstrip("/").split("/")[-2]
            items = self.payments.get(order_id, [])
            return httpx.Response(200, json={"count": len(items), "items": items})

        return httpx.Response(
            404, json={"error": {"code": "BAD_REQUEST_ERROR", "description": "Not found"}}
        )


class FakeClerk:
    """Accepts ``Authorization: Bearer <clerk user id>`` as a signed-in session."""

    def __init__(self) -> None:
        self.profiles: dict[str, dict[str, Any]] = {}

    def verify_token(self, request) -> dict:
        header = request.headers.get("authorization", "")
        if not header.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        return {"sub": header.removeprefix("Bearer ")}

    def get_user_info(self, clerk_id: str) -> dict[str, Any]:
        return self.profiles.get(clerk_id, {"email": f"{clerk_id}@example.com"})


def auth(clerk_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {clerk_id}"}
