"""TokenPay - Razorpay webhook event schemas.

Deliveries are parsed into a closed union of known events plus an
explicit unknown variant:

    {"event": "payment.captured",
     "payload": {"payment": {"entity": {"id": "pay_..", "order_id": "order_..", ...}}}}
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from tokenpay.core.exceptions import ValidationError


class PaymentEntity(BaseModel):
    """Payment entity inside a webhook payload."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    order_id: str | None = None
    status: str | None = None
    method: str | None = None
    amount: int | None = None
    currency: str | None = None
    error_code: str | None = None
    error_description: str | None = None


class PaymentCapturedEvent(BaseModel):
    event: Literal["payment.captured"] = "payment.captured"
    payment: PaymentEntity


class PaymentFailedEvent(BaseModel):
    event: Literal["payment.failed"] = "payment.failed"
    payment: PaymentEntity


class UnknownWebhookEvent(BaseModel):
    event: str


WebhookEvent = PaymentCapturedEvent | PaymentFailedEvent | UnknownWebhookEvent

_PAYMENT_EVENTS: dict[str, type[PaymentCapturedEvent] | type[PaymentFailedEvent]] = {
    "payment.captured": PaymentCapturedEvent,
    "payment.failed": PaymentFailedEvent,
}


def parse_webhook_event(data: Any) -> WebhookEvent:
    """Parse a decoded webhook body into a typed event.

    Raises:
        ValidationError: If the body is not an event object or a known
            event lacks its payment entity
    """
    if not isinstance(data, dict) or not isinstance(data.get("event"), str):
        raise ValidationError("Webhook body has no event type")

    event = data["event"]
    event_cls = _PAYMENT_EVENTS.get(event)
    if event_cls is None:
        return UnknownWebhookEvent(event=event)

    payload = data.get("payload")
    payment = payload.get("payment") if isinstance(payload, dict) else None
    entity = payment.get("entity") if isinstance(payment, dict) else None
    try:
        return event_cls(payment=PaymentEntity.model_validate(entity))
    except PydanticValidationError as e:
        errors = e.errors(include_url=False, include_context=False, include_input=False)
        raise ValidationError(f"Malformed {event} payload", {"errors": errors}) from e
