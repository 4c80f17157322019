"""TokenPay Tasks Module."""

from tokenpay.tasks.celery_app import celery_app
from tokenpay.tasks.reconciliation import reconcile_pending

__all__ = [
    "celery_app",
    "reconcile_pending",
]
