"""TokenPay - Transaction ledger service.

Source of truth for "has this purchase been credited". Every status
transition is a conditional update guarded on ``status = 'pending'``,
so concurrent completions from the client callback and the webhook
apply at most once.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, select

from tokenpay.models.transaction import Transaction, TransactionStatus, generate_transaction_id
from tokenpay.models.user import User
from tokenpay.services.package_catalog import PriceQuote
from tokenpay.utils.helpers import utc_now

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for ledger reads and guarded state transitions."""

    RECENT_LIMIT = 5

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    @property
    def db(self) -> AsyncSession:
        return self._db

    # ============ Creation ============

    async def create_pending(self, user_id: int, quote: PriceQuote) -> Transaction:
        """Insert a pending transaction with the amounts from a quote.

        Amounts are frozen here and never recomputed.
        """
        transaction = Transaction(
            transaction_id=generate_transaction_id(),
            user_id=user_id,
            package_id=quote.package.id,
            package_name=quote.package.name,
            tokens=quote.package.tokens,
            currency=quote.currency,
            base_amount=quote.base_amount,
            tax_amount=quote.tax_amount,
            final_amount=quote.final_amount,
            tax_rate=quote.tax.tax_rate,
            tax_name=quote.tax.tax_name,
            billing_country=quote.billing_country,
            status=TransactionStatus.PENDING,
        )
        self._db.add(transaction)
        await self._db.commit()
        await self._db.refresh(transaction)
        logger.info(
            f"Pending transaction {transaction.transaction_id} for user {user_id}: "
            f"{transaction.tokens} units, {transaction.final_amount} {transaction.currency}"
        )
        return transaction

    async def attach_gateway_order(
        self, transaction: Transaction, gateway_order_id: str
    ) -> Transaction:
        transaction.gateway_order_id = gateway_order_id
        transaction.updated_at = utc_now()
        self._db.add(transaction)
        await self._db.commit()
        await self._db.refresh(transaction)
        return transaction

    # ============ Lookups ============

    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Transaction | None:
        result = await self._db.execute(
            select(Transaction).where(Transaction.gateway_order_id == gateway_order_id)
        )
        return result.scalar_one_or_none()

    async def get_by_transaction_id(
        self, transaction_id: str, user_id: int | None = None
    ) -> Transaction | None:
        """Get a transaction by internal id, optionally scoped to its owner."""
        query = select(Transaction).where(Transaction.transaction_id == transaction_id)
        if user_id is not None:
            query = query.where(Transaction.user_id == user_id)
        result = await self._db.execute(query)
        return result.scalar_one_or_none()

    # ============ Guarded transitions ============

    async def _transition(
        self, transaction: Transaction, new_status: TransactionStatus, **fields: Any
    ) -> bool:
        """Move a pending transaction to ``new_status``.

        Issues ``UPDATE ... WHERE id = ? AND status = 'pending'`` and
        reports whether this call won. Does not commit.
        """
        result = await self._db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id)
            .where(Transaction.status == TransactionStatus.PENDING)
            .values(status=new_status, updated_at=utc_now(), **fields)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def complete_and_credit(
        self,
        transaction: Transaction,
        payment_id: str,
        payment_method: str | None = None,
        signature: str | None = None,
    ) -> bool:
        """Complete a pending transaction and credit its owner, exactly once.

        The status change and the balance increment commit together.

        Args:
            transaction: Ledger row to complete
            payment_id: Gateway payment id
            payment_method: card / upi / ... when known
            signature: Client-reported checkout signature, if any

        Returns:
            True if this call completed the transaction, False if it was
            no longer pending (already completed or failed)
        """
        fields: dict[str, Any] = {
            "gateway_payment_id": payment_id,
            "completed_at": utc_now(),
        }
        if payment_method:
            fields["payment_method"] = payment_method
        if signature:
            fields["gateway_signature"] = signature

        won = await self._transition(transaction, TransactionStatus.COMPLETED, **fields)
        if won:
            await self._db.execute(
                update(User)
                .where(User.id == transaction.user_id)
                .values(tokens=User.tokens + transaction.tokens, updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )
        await self._db.commit()
        await self._db.refresh(transaction)

        if won:
            logger.info(
                f"Transaction {transaction.transaction_id} completed: "
                f"credited {transaction.tokens} units to user {transaction.user_id}"
            )
        return won

    async def mark_failed(
        self,
        transaction: Transaction,
        reason: str | None = None,
        payment_id: str | None = None,
    ) -> bool:
        """Fail a pending transaction. Returns False if it was already terminal."""
        fields: dict[str, Any] = {}
        if reason:
            fields["failure_reason"] = reason[:255]
        if payment_id:
            fields["gateway_payment_id"] = payment_id

        won = await self._transition(transaction, TransactionStatus.FAILED, **fields)
        await self._db.commit()
        await self._db.refresh(transaction)

        if won:
            logger.info(f"Transaction {transaction.transaction_id} failed: {reason}")
        return won

    async def set_invoice_filename(self, transaction: Transaction, filename: str) -> None:
        transaction.invoice_filename = filename
        transaction.updated_at = utc_now()
        self._db.add(transaction)
        await self._db.commit()

    # ============ Queries ============

    def history_query(self, user_id: int, status: TransactionStatus | None = None):
        """Select a user's transactions, newest first."""
        query = select(Transaction).where(Transaction.user_id == user_id)
        if status is not None:
            query = query.where(Transaction.status == status)
        return query.order_by(Transaction.created_at.desc(), Transaction.id.desc())

    async def list_stale_pending(self, older_than: datetime, limit: int = 100) -> list[Transaction]:
        """Pending transactions created before ``older_than``, oldest first."""
        result = await self._db.execute(
            select(Transaction)
            .where(Transaction.status == TransactionStatus.PENDING)
            .where(Transaction.created_at < older_than)
            .order_by(Transaction.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_balance_summary(self, user_id: int) -> dict[str, Any]:
        """Current balance, total purchased and recent completed purchases."""
        balance = await self._db.execute(select(User.tokens).where(User.id == user_id))
        total = await self._db.execute(
            select(func.coalesce(func.sum(Transaction.tokens), 0))
            .where(Transaction.user_id == user_id)
            .where(Transaction.status == TransactionStatus.COMPLETED)
        )
        recent = await self._db.execute(
            self.history_query(user_id, TransactionStatus.COMPLETED).limit(self.RECENT_LIMIT)
        )
        return {
            "balance": balance.scalar_one_or_none() or 0,
            "total_purchased": int(total.scalar_one()),
            "recent_transactions": list(recent.scalars().all()),
        }
