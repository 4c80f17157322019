"""Reconciliation tasks.

Periodically resolves purchases stuck in pending: orphaned gateway
orders, lost webhooks and abandoned checkouts.
"""

import asyncio
import logging
import time

from tokenpay.db.engine import close_db, get_session
from tokenpay.services.payment_service import PaymentService
from tokenpay.services.razorpay_service import RazorpayService
from tokenpay.services.reconciliation_service import ReconciliationService
from tokenpay.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async coroutine in sync context for Celery."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(name="payments.reconcile_pending")
def reconcile_pending() -> dict:
    """Reconcile stale pending transactions against the gateway.

    Returns:
        Counters: checked, attached, completed, failed
    """
    return run_async(_reconcile_pending_async())


async def _reconcile_pending_async() -> dict:
    start_time = time.time()
    # Each run owns its event loop, so it gets its own HTTP client too
    gateway = RazorpayService()
    try:
        async with get_session() as db:
            service = ReconciliationService(PaymentService(db, gateway=gateway))
            stats = await service.reconcile_pending()
        elapsed = time.time() - start_time
        logger.info(f"[reconcile_pending] done in {elapsed:.3f}s: {stats}")
        return {"success": True, **stats}
    except Exception as e:
        logger.exception(f"[reconcile_pending] failed: {e}")
        return {"success": False, "error": str(e)}
    finally:
        await gateway.close()
        await close_db()
