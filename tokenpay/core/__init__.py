"""Core module - configuration, logging, and exceptions."""

from tokenpay.core.config import Settings, get_settings
from tokenpay.core.exceptions import (
    GatewayError,
    GatewayUnavailable,
    InvalidPackage,
    InvalidSignature,
    InvalidTransactionState,
    InvoiceGenerationFailed,
    OrderCreationFailed,
    TokenPayError,
    TransactionNotFound,
    UnknownPackage,
    ValidationError,
)
from tokenpay.core.logging import configure_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "configure_logging",
    # Exceptions
    "TokenPayError",
    "ValidationError",
    "InvalidPackage",
    "UnknownPackage",
    "GatewayError",
    "GatewayUnavailable",
    "OrderCreationFailed",
    "InvalidSignature",
    "TransactionNotFound",
    "InvalidTransactionState",
    "InvoiceGenerationFailed",
]
