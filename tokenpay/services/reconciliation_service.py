"""TokenPay - Pending transaction reconciliation.

Resolves transactions that stayed pending past a grace period, e.g.
because the gateway order call timed out or the webhook never arrived.
"""

import logging
from datetime import timedelta

from tokenpay.core.config import get_settings
from tokenpay.core.exceptions import GatewayError, InvalidTransactionState
from tokenpay.models.transaction import Transaction
from tokenpay.services.payment_service import PaymentService
from tokenpay.utils.helpers import utc_now

logger = logging.getLogger(__name__)

REASON_ORDER_MISSING = "gateway_order_missing"
REASON_NOT_PAID = "payment_not_received"


class ReconciliationService:
    """Matches stale pending transactions against the gateway.

    - No gateway order id: look the order up by receipt and attach it,
      or fail the row once expired.
    - Gateway order id: complete it if a captured payment exists, or
      fail the row once expired.
    """

    BATCH_SIZE = 100

    def __init__(
        self,
        payments: PaymentService,
        grace_seconds: int | None = None,
        expiry_seconds: int | None = None,
    ) -> None:
        settings = get_settings()
        self.payments = payments
        self.ledger = payments.ledger
        self.gateway = payments.gateway
        self.grace = timedelta(
            seconds=settings.reconcile_grace_seconds if grace_seconds is None else grace_seconds
        )
        self.expiry = timedelta(
            seconds=settings.reconcile_expiry_seconds if expiry_seconds is None else expiry_seconds
        )

    async def reconcile_pending(self) -> dict[str, int]:
        """Reconcile one batch of stale pending transactions.

        Returns:
            Counters: checked, attached, completed, failed
        """
        stats = {"checked": 0, "attached": 0, "completed": 0, "failed": 0}
        if not self.gateway.is_configured:
            logger.warning("Skipping reconciliation: payment gateway not configured")
            return stats

        now = utc_now()
        stale = await self.ledger.list_stale_pending(now - self.grace, limit=self.BATCH_SIZE)

        for transaction in stale:
            stats["checked"] += 1
            expired = transaction.created_at <= now - self.expiry
            try:
                if transaction.gateway_order_id is None:
                    outcome = await self._reconcile_orphan(transaction, expired)
                else:
                    outcome = await self._reconcile_order(transaction, expired)
            except GatewayError as e:
                logger.warning(
                    f"Reconciliation of {transaction.transaction_id} deferred: {e.message}"
                )
                continue
            if outcome:
                stats[outcome] += 1

        if stats["checked"]:
            logger.info(f"Reconciliation finished: {stats}")
        return stats

    async def _reconcile_orphan(self, transaction: Transaction, expired: bool) -> str | None:
        order = await self.gateway.find_order_by_receipt(transaction.transaction_id)
        if order is not None:
            await self.ledger.attach_gateway_order(transaction, order.id)
            logger.info(f"Attached gateway order {order.id} to {transaction.transaction_id}")
            # A payment may already exist against the recovered order
            outcome = await self._reconcile_order(transaction, expired)
            return outcome if outcome == "completed" else "attached"

        if expired and await self.ledger.mark_failed(transaction, reason=REASON_ORDER_MISSING):
            return "failed"
        return None

    async def _reconcile_order(self, transaction: Transaction, expired: bool) -> str | None:
        payments = await self.gateway.fetch_order_payments(transaction.gateway_order_id or "")
        captured = next((p for p in payments if p.is_captured), None)

        if captured is not None:
            try:
                result = await self.payments.complete_transaction(
                    transaction, captured.id, payment_method=captured.method
                )
            except InvalidTransactionState:
                return None
            return "completed" if result.credited else None

        if (
            expired
            and not transaction.status.is_terminal
            and await self.ledger.mark_failed(transaction, reason=REASON_NOT_PAID)
        ):
            return "failed"
        return None
