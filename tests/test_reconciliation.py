"""Pending transaction reconciliation tests."""
from datetime import timedelta

import httpx
import pytest

from tokenpay.core.exceptions import OrderCreationFailed
from tokenpay.models.transaction import TransactionStatus
from tokenpay.services.package_catalog import PackageSelector
from tokenpay.services.razorpay_service import RazorpayService
from tokenpay.services.reconciliation_service import (
    REASON_NOT_PAID,
    REASON_ORDER_MISSING,
    ReconciliationService,
)
from tokenpay.utils.helpers import utc_now

STARTER = PackageSelector(package_id="starter")


async def _age(db, transaction, seconds: int) -> None:
    transaction.created_at = utc_now() - timedelta(seconds=seconds)
    db.add(transaction)
    await db.commit()


async def _orphan(service, user):
    """Create a pending transaction whose gateway order id was never stored."""
    with pytest.raises(OrderCreationFailed) as exc_info:
        await service.create_order(user, STARTER, "US")
    return await service.ledger.get_by_transaction_id(exc_info.value.transaction_id)


def _reconciler(service, expiry_seconds: int = 3600) -> ReconciliationService:
    return ReconciliationService(service, grace_seconds=60, expiry_seconds=expiry_seconds)


class TestOrphanedTransactions:
    """Rows left without a gateway order id."""

    @pytest.mark.asyncio
    async def test_attaches_order_found_by_receipt(
        self, db, payment_service, user, fake_razorpay
    ) -> None:
        fake_razorpay.timeout_after_create = True
        transaction = await _orphan(payment_service, user)
        assert transaction.gateway_order_id is None
        await _age(db, transaction, 120)

        stats = await _reconciler(payment_service).reconcile_pending()

        (order,) = fake_razorpay.orders.values()
        assert stats == {"checked": 1, "attached": 1, "completed": 0, "failed": 0}
        assert transaction.gateway_order_id == order["id"]
        assert transaction.status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_recovered_order_with_payment_completes(
        self, db, payment_service, user, fake_razorpay, balance_of
    ) -> None:
        fake_razorpay.timeout_after_create = True
        transaction = await _orphan(payment_service, user)
        (order,) = fake_razorpay.orders.values()
        fake_razorpay.capture(order["id"], "pay_late")
        await _age(db, transaction, 120)

        stats = await _reconciler(payment_service).reconcile_pending()

        assert stats["completed"] == 1
        assert transaction.status == TransactionStatus.COMPLETED
        assert transaction.gateway_payment_id == "pay_late"
        assert await balance_of(user.id) == 1000

    @pytest.mark.asyncio
    async def test_expired_orphan_without_order_fails(
        self, db, payment_service, user, fake_razorpay
    ) -> None:
        fake_razorpay.create_failure = httpx.Response(
            500, json={"error": {"code": "SERVER_ERROR", "description": "Internal error"}}
        )
        transaction = await _orphan(payment_service, user)
        await _age(db, transaction, 7200)

        stats = await _reconciler(payment_service).reconcile_pending()

        assert stats["failed"] == 1
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.failure_reason == REASON_ORDER_MISSING

    @pytest.mark.asyncio
    async def test_unexpired_orphan_without_order_stays_pending(
        self, db, payment_service, user, fake_razorpay
    ) -> None:
        fake_razorpay.create_failure = httpx.ConnectError("connection refused")
        transaction = await _orphan(payment_service, user)
        await _age(db, transaction, 120)

        stats = await _reconciler(payment_service).reconcile_pending()

        assert stats == {"checked": 1, "attached": 0, "completed": 0, "failed": 0}
        assert transaction.status == TransactionStatus.PENDING


class TestOrderedTransactions:
    """Rows with a gateway order but no settlement yet."""

    @pytest.mark.asyncio
    async def test_captured_payment_credits_once(
        self, db, payment_service, user, fake_razorpay, balance_of
    ) -> None:
        result = await payment_service.create_order(user, STARTER, "US")
        fake_razorpay.capture(result.order.id, "pay_missed_webhook", method="card")
        await _age(db, result.transaction, 120)
        reconciler = _reconciler(payment_service)

        first = await reconciler.reconcile_pending()
        second = await reconciler.reconcile_pending()

        assert first["completed"] == 1
        assert second["checked"] == 0
        assert result.transaction.status == TransactionStatus.COMPLETED
        assert result.transaction.payment_method == "card"
        assert await balance_of(user.id) == 1000

    @pytest.mark.asyncio
    async def test_expired_unpaid_order_fails(self, db, payment_service, user, balance_of) -> None:
        result = await payment_service.create_order(user, STARTER, "US")
        await _age(db, result.transaction, 7200)

        stats = await _reconciler(payment_service).reconcile_pending()

        assert stats["failed"] == 1
        assert result.transaction.status == TransactionStatus.FAILED
        assert result.transaction.failure_reason == REASON_NOT_PAID
        assert await balance_of(user.id) == 0

    @pytest.mark.asyncio
    async def test_unpaid_order_within_expiry_is_left_alone(
        self, db, payment_service, user
    ) -> None:
        result = await payment_service.create_order(user, STARTER, "US")
        await _age(db, result.transaction, 120)

        stats = await _reconciler(payment_service).reconcile_pending()

        assert stats == {"checked": 1, "attached": 0, "completed": 0, "failed": 0}
        assert result.transaction.status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_fresh_transactions_are_skipped(
        self, payment_service, user, fake_razorpay
    ) -> None:
        result = await payment_service.create_order(user, STARTER, "US")
        fake_razorpay.capture(result.order.id)

        stats = await _reconciler(payment_service).reconcile_pending()

        assert stats["checked"] == 0
        assert result.transaction.status == TransactionStatus.PENDING


class TestUnconfiguredGateway:
    @pytest.mark.asyncio
    async def test_skips_when_gateway_unconfigured(self, db, make_service) -> None:
        service = make_service(db, gateway=RazorpayService(key_id="", key_secret=""))

        stats = await _reconciler(service).reconcile_pending()

        assert stats == {"checked": 0, "attached": 0, "completed": 0, "failed": 0}
