"""Celery configuration.

Usage:
    celery -A tokenpay.tasks.celery_app worker -l info
    celery -A tokenpay.tasks.celery_app beat -l info
"""

from celery import Celery

from tokenpay.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "tokenpay_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "tokenpay.tasks.reconciliation",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
    task_routes={
        "payments.*": {"queue": "payments"},
    },
    beat_schedule={
        "reconcile-pending-transactions": {
            "task": "payments.reconcile_pending",
            "schedule": settings.reconcile_interval_seconds,
        },
    },
)
