"""TokenPay - Purchase orchestration.

Order lifecycle:
1. create_order: price -> pending ledger row -> gateway order -> attach order id
2. verify_payment (client callback) / payment.captured (webhook) /
   reconciliation: all converge on complete_transaction, which credits
   the balance at most once
3. payment.failed (webhook): pending -> failed, balance untouched
4. Invoice generation after completion, best-effort
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from tokenpay.core.config import get_settings
from tokenpay.core.exceptions import (
    GatewayError,
    GatewayUnavailable,
    InvalidSignature,
    InvalidTransactionState,
    InvoiceGenerationFailed,
    OrderCreationFailed,
    TransactionNotFound,
    ValidationError,
)
from tokenpay.models.transaction import Transaction, TransactionStatus
from tokenpay.models.user import User
from tokenpay.schemas.webhook import (
    PaymentCapturedEvent,
    PaymentEntity,
    PaymentFailedEvent,
    WebhookEvent,
    parse_webhook_event,
)
from tokenpay.services.invoice_service import InvoiceService
from tokenpay.services.package_catalog import (
    PackageCatalog,
    PackageSelector,
    PriceQuote,
    build_catalog,
)
from tokenpay.services.razorpay_service import GatewayOrder, RazorpayService, get_razorpay_service
from tokenpay.services.tax_policy import DEFAULT_TAX_POLICY, TaxPolicy
from tokenpay.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

WEBHOOK_OK = "ok"
WEBHOOK_IGNORED = "ignored"


@dataclass(frozen=True)
class OrderResult:
    transaction: Transaction
    order: GatewayOrder
    quote: PriceQuote


@dataclass(frozen=True)
class CompletionResult:
    """Outcome of the shared completion path.

    ``credited`` is False when the transaction had already been
    completed by an earlier call.
    """

    transaction: Transaction
    credited: bool


class PaymentService:
    """Service for purchase orchestration.

    Pricing (catalog, tax policy) is injected and immutable; the unit
    name only affects messages.
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway: RazorpayService | None = None,
        catalog: PackageCatalog | None = None,
        tax_policy: TaxPolicy | None = None,
        invoices: InvoiceService | None = None,
        unit_name: str | None = None,
        require_webhook_signature: bool | None = None,
    ) -> None:
        settings = get_settings()
        self._db = db
        self.ledger = TransactionService(db)
        self.gateway = gateway or get_razorpay_service()
        self.catalog = catalog or build_catalog(settings)
        self.tax_policy = tax_policy or DEFAULT_TAX_POLICY
        self.invoices = invoices or InvoiceService()
        self.unit_name = unit_name or settings.credit_unit_name
        self.require_webhook_signature = (
            settings.webhook_require_signature
            if require_webhook_signature is None
            else require_webhook_signature
        )

    # ============ Catalog ============

    def list_packages(self, country: str | None) -> dict[str, Any]:
        """Every catalog package priced for a billing country."""
        quotes = self.catalog.price_list(country, self.tax_policy)
        return {
            "billing_country": self.tax_policy.normalize_country(country),
            "packages": [q.to_dict() for q in quotes],
            "supported_currencies": self.tax_policy.supported_currencies(),
        }

    # ============ Order creation ============

    async def create_order(
        self,
        user: User,
        selector: PackageSelector,
        billing_country: str | None,
    ) -> OrderResult:
        """Create a pending transaction and its gateway order.

        Args:
            user: Purchasing user
            selector: Catalog package id or custom quantity
            billing_country: Free-form country, normalized by the tax policy

        Returns:
            Ledger row (with gateway order id), gateway order and price quote

        Raises:
            InvalidPackage: If the selector resolves to nothing (no row is written)
            GatewayUnavailable: If the gateway has no credentials (no row is written)
            OrderCreationFailed: If the gateway call fails; the row stays pending
        """
        quote = self.catalog.quote(selector, billing_country, self.tax_policy)

        if not self.gateway.is_configured:
            raise GatewayUnavailable("Payment gateway is not configured")

        transaction = await self.ledger.create_pending(user.id, quote)  # type: ignore[arg-type]

        try:
            order = await self.gateway.create_order(
                amount=quote.final_amount,
                currency=quote.currency,
                receipt=transaction.transaction_id,
                billing_country=quote.billing_country,
                notes={
                    "original_amount": str(quote.package.base_price),
                    "tax_applied": "true" if quote.tax.applicable else "false",
                    "transaction_id": transaction.transaction_id,
                },
            )
        except GatewayError as e:
            logger.error(
                f"Gateway order failed for {transaction.transaction_id}, left pending: {e.message}"
            )
            raise OrderCreationFailed(e.message, transaction.transaction_id) from e

        if order.amount != transaction.amount_minor:
            logger.warning(
                f"Gateway order {order.id} amount {order.amount} "
                f"differs from quoted {transaction.amount_minor}"
            )

        transaction = await self.ledger.attach_gateway_order(transaction, order.id)
        logger.info(
            f"Order created: {transaction.transaction_id} -> {order.id} "
            f"({quote.final_amount} {quote.currency}, {quote.package.tokens} {self.unit_name})"
        )
        return OrderResult(transaction=transaction, order=order, quote=quote)

    # ============ Completion ============

    async def verify_payment(
        self,
        payment_id: str,
        order_id: str,
        signature: str,
        user_id: int | None = None,
    ) -> CompletionResult:
        """Verify a client-reported payment and complete its transaction.

        Args:
            payment_id: Gateway payment id
            order_id: Gateway order id
            signature: Checkout signature
            user_id: When given, only this user's transaction matches

        Raises:
            InvalidSignature: If the signature does not verify (nothing changes)
            TransactionNotFound: If no (owned) transaction has this order id
            InvalidTransactionState: If the transaction already failed
        """
        if not self.gateway.verify_signature(payment_id, order_id, signature):
            logger.warning(f"Invalid payment signature for order {order_id}, payment {payment_id}")
            raise InvalidSignature("Payment signature verification failed")

        transaction = await self.ledger.get_by_gateway_order_id(order_id)
        if transaction is None or (user_id is not None and transaction.user_id != user_id):
            raise TransactionNotFound(
                "Transaction not found for order", {"order_id": order_id}
            )

        return await self.complete_transaction(transaction, payment_id, signature=signature)

    async def complete_transaction(
        self,
        transaction: Transaction,
        payment_id: str,
        payment_method: str | None = None,
        signature: str | None = None,
    ) -> CompletionResult:
        """Shared completion path for callback, webhook and reconciliation.

        Completing an already completed transaction is a successful no-op.

        Raises:
            InvalidTransactionState: If the transaction is failed
        """
        if transaction.status == TransactionStatus.COMPLETED:
            logger.info(f"Transaction {transaction.transaction_id} already completed")
            return CompletionResult(transaction=transaction, credited=False)
        if transaction.status == TransactionStatus.FAILED:
            raise InvalidTransactionState(
                "Transaction has already failed",
                {"transaction_id": transaction.transaction_id},
            )

        credited = await self.ledger.complete_and_credit(
            transaction, payment_id, payment_method=payment_method, signature=signature
        )
        if not credited:
            # Lost the race to a concurrent transition
            if transaction.status == TransactionStatus.FAILED:
                raise InvalidTransactionState(
                    "Transaction has already failed",
                    {"transaction_id": transaction.transaction_id},
                )
            logger.info(f"Transaction {transaction.transaction_id} completed concurrently")
            return CompletionResult(transaction=transaction, credited=False)

        await self._issue_invoice(transaction)
        return CompletionResult(transaction=transaction, credited=True)

    async def get_balance(self, user_id: int) -> int:
        result = await self._db.execute(select(User.tokens).where(User.id == user_id))
        return result.scalar_one_or_none() or 0

    # ============ Webhooks ============

    async def process_webhook(self, raw_body: bytes, signature: str | None) -> str:
        """Authenticate, parse and dispatch one webhook delivery.

        Args:
            raw_body: Exact request bytes
            signature: Value of the X-Razorpay-Signature header

        Returns:
            "ok" when applied (or already applied), "ignored" otherwise

        Raises:
            InvalidSignature: Bad or missing signature, or no secret while
                signatures are required
            ValidationError: Body is not a webhook event
        """
        if self.gateway.webhook_secret_configured:
            if not self.gateway.verify_webhook_signature(raw_body, signature):
                logger.warning("Rejected webhook with invalid signature")
                raise InvalidSignature("Webhook signature verification failed")
        elif self.require_webhook_signature:
            logger.error("Rejected webhook: no webhook secret configured")
            raise InvalidSignature("Webhook signature cannot be verified")
        else:
            logger.warning("Webhook secret not configured, processing unverified delivery")

        try:
            data = json.loads(raw_body)
        except (ValueError, RecursionError) as e:
            raise ValidationError("Webhook body is not valid JSON") from e

        event = parse_webhook_event(data)
        logger.info(f"Webhook received: {event.event}")
        return await self.handle_webhook(event)

    async def handle_webhook(self, event: WebhookEvent) -> str:
        """Dispatch a parsed event."""
        if isinstance(event, PaymentCapturedEvent):
            return await self._on_payment_captured(event.payment)
        if isinstance(event, PaymentFailedEvent):
            return await self._on_payment_failed(event.payment)
        logger.info(f"Ignoring unhandled webhook event: {event.event}")
        return WEBHOOK_IGNORED

    async def _find_for_webhook(self, payment: PaymentEntity) -> Transaction | None:
        if not payment.order_id:
            logger.warning(f"Webhook payment {payment.id} has no order id")
            return None
        transaction = await self.ledger.get_by_gateway_order_id(payment.order_id)
        if transaction is None:
            logger.warning(f"No transaction for gateway order {payment.order_id}")
        return transaction

    async def _on_payment_captured(self, payment: PaymentEntity) -> str:
        transaction = await self._find_for_webhook(payment)
        if transaction is None:
            return WEBHOOK_IGNORED

        try:
            await self.complete_transaction(transaction, payment.id, payment_method=payment.method)
        except InvalidTransactionState:
            logger.error(
                f"Payment {payment.id} captured for failed transaction "
                f"{transaction.transaction_id}; needs manual reconciliation"
            )
            return WEBHOOK_IGNORED
        return WEBHOOK_OK

    async def _on_payment_failed(self, payment: PaymentEntity) -> str:
        transaction = await self._find_for_webhook(payment)
        if transaction is None:
            return WEBHOOK_IGNORED

        failed = await self.ledger.mark_failed(
            transaction,
            reason=payment.error_description or "payment_failed",
            payment_id=payment.id,
        )
        if failed or transaction.status == TransactionStatus.FAILED:
            return WEBHOOK_OK
        logger.info(
            f"Ignoring payment.failed for {transaction.status.value} "
            f"transaction {transaction.transaction_id}"
        )
        return WEBHOOK_IGNORED

    # ============ Invoices ============

    async def _issue_invoice(self, transaction: Transaction) -> None:
        """Generate and record the invoice; failures are logged, never raised."""
        transaction_id = transaction.transaction_id
        try:
            user = await self._db.get(User, transaction.user_id)
            if user is None:
                raise InvoiceGenerationFailed("Owner not found", {"transaction_id": transaction_id})
            filename = await self.invoices.generate_invoice(transaction, user)
            await self.ledger.set_invoice_filename(transaction, filename)
        except InvoiceGenerationFailed:
            logger.exception(f"Invoice generation failed for {transaction_id}")
        except SQLAlchemyError:
            logger.exception(f"Could not record invoice for {transaction_id}")
            await self._db.rollback()
            # Rollback expires the row; the completion itself is already committed
            await self._db.refresh(transaction)

    async def get_invoice_path(self, transaction_id: str, user: User) -> Path:
        """Locate a user's invoice, regenerating it when missing.

        Raises:
            TransactionNotFound: If the user owns no such transaction
            InvalidTransactionState: If the transaction is not completed
            InvoiceGenerationFailed: If regeneration fails
        """
        transaction = await self.ledger.get_by_transaction_id(transaction_id, user_id=user.id)
        if transaction is None:
            raise TransactionNotFound(
                "Transaction not found", {"transaction_id": transaction_id}
            )
        if transaction.status != TransactionStatus.COMPLETED:
            raise InvalidTransactionState(
                "Invoices are only available for completed transactions",
                {"transaction_id": transaction_id, "status": transaction.status.value},
            )

        if not self.invoices.invoice_exists(transaction.invoice_filename):
            filename = await self.invoices.generate_invoice(transaction, user)
            await self.ledger.set_invoice_filename(transaction, filename)
            logger.info(f"Invoice regenerated on demand: {filename}")

        return self.invoices.get_invoice_path(transaction.invoice_filename)  # type: ignore[arg-type]
