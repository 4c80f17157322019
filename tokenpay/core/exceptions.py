"""TokenPay - Custom exceptions.

Every error carries a stable ``error_code`` and the HTTP status the API
layer answers with.
"""

from typing import Any


class TokenPayError(Exception):
    """Base exception for all TokenPay errors."""

    error_code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(TokenPayError):
    """Input validation failed."""

    error_code = "INVALID_REQUEST"
    status_code = 400


class InvalidPackage(ValidationError):
    """Package selector resolves to nothing purchasable."""

    error_code = "INVALID_PACKAGE"


class UnknownPackage(InvalidPackage):
    """Package id is not in the catalog."""

    error_code = "UNKNOWN_PACKAGE"

    def __init__(self, package_id: str) -> None:
        super().__init__(f"Unknown package '{package_id}'", {"package_id": package_id})


class GatewayError(TokenPayError):
    """Payment provider rejected the call or could not be reached."""

    error_code = "GATEWAY_ERROR"
    status_code = 502


class GatewayUnavailable(GatewayError):
    """Payment provider credentials are not configured."""

    error_code = "GATEWAY_UNAVAILABLE"
    status_code = 503


class OrderCreationFailed(TokenPayError):
    """Gateway order could not be created; the ledger row stays pending."""

    error_code = "ORDER_CREATION_FAILED"
    status_code = 502

    def __init__(self, message: str, transaction_id: str) -> None:
        super().__init__(message, {"transaction_id": transaction_id, "retryable": True})
        self.transaction_id = transaction_id


class InvalidSignature(TokenPayError):
    """Payment or webhook signature did not verify."""

    error_code = "INVALID_SIGNATURE"
    status_code = 400


class TransactionNotFound(TokenPayError):
    """No transaction matches the given identifier."""

    error_code = "TRANSACTION_NOT_FOUND"
    status_code = 404


class InvalidTransactionState(TokenPayError):
    """Transaction is terminal in a state that cannot be completed."""

    error_code = "INVALID_TRANSACTION_STATE"
    status_code = 409


class InvoiceGenerationFailed(TokenPayError):
    """Invoice PDF could not be rendered or written."""

    error_code = "INVOICE_GENERATION_FAILED"
    status_code = 500
