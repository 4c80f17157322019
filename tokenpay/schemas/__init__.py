"""Schemas module - Pydantic DTOs for request/response."""

from tokenpay.schemas.pagination import HistoryPage
from tokenpay.schemas.payment import (
    BalanceResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    PackageListResponse,
    TransactionSummary,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from tokenpay.schemas.webhook import (
    PaymentCapturedEvent,
    PaymentEntity,
    PaymentFailedEvent,
    UnknownWebhookEvent,
    WebhookEvent,
    parse_webhook_event,
)

__all__: list[str] = [
    # Pagination
    "HistoryPage",
    # Payment
    "PackageListResponse",
    "CreateOrderRequest",
    "CreateOrderResponse",
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "TransactionSummary",
    "BalanceResponse",
    # Webhook
    "PaymentEntity",
    "PaymentCapturedEvent",
    "PaymentFailedEvent",
    "UnknownWebhookEvent",
    "WebhookEvent",
    "parse_webhook_event",
]
