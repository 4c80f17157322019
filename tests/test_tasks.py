"""Celery task wiring tests."""
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest

from tokenpay.services.package_catalog import PackageSelector
from tokenpay.tasks import reconciliation
from tokenpay.tasks.celery_app import celery_app
from tokenpay.utils.helpers import utc_now

STARTER = PackageSelector(package_id="starter")


class TestCeleryApp:
    def test_reconcile_task_is_scheduled(self) -> None:
        schedule = celery_app.conf.beat_schedule["reconcile-pending-transactions"]

        assert schedule["task"] == "payments.reconcile_pending"
        assert "payments.reconcile_pending" in celery_app.tasks


class TestReconcileTask:
    @pytest.mark.asyncio
    async def test_runs_reconciliation_and_releases_resources(
        self, monkeypatch, tmp_path, session_factory, payment_service, user, gateway,
        fake_razorpay, db, balance_of,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        result = await payment_service.create_order(user, STARTER, "US")
        fake_razorpay.capture(result.order.id)
        result.transaction.created_at = utc_now() - timedelta(hours=1)
        db.add(result.transaction)
        await db.commit()

        closed = []

        @asynccontextmanager
        async def _session():
            async with session_factory() as session:
                yield session

        async def _close_db():
            closed.append("db")

        monkeypatch.setattr(reconciliation, "get_session", _session)
        monkeypatch.setattr(reconciliation, "close_db", _close_db)
        monkeypatch.setattr(reconciliation, "RazorpayService", lambda: gateway)

        stats = await reconciliation._reconcile_pending_async()

        assert stats == {"success": True, "checked": 1, "attached": 0, "completed": 1, "failed": 0}
        assert closed == ["db"]
        assert await balance_of(user.id) == 1000
