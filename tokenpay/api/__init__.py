"""API module - route handlers and common dependencies."""

from fastapi import FastAPI

from tokenpay.api.auth import CurrentUser, get_current_user
from tokenpay.api.deps import Payments, get_payment_service

__all__ = [
    "CurrentUser",
    "Payments",
    "get_current_user",
    "get_payment_service",
    "register_routers",
]


def register_routers(app: FastAPI) -> None:
    """Register all API routers to the application.

    Args:
        app: FastAPI application instance
    """
    # Purchase flow
    from tokenpay.api.invoices import router as invoices_router
    from tokenpay.api.payment import router as payment_router

    app.include_router(payment_router, prefix="/api")
    app.include_router(invoices_router, prefix="/api")

    # Gateway callbacks
    from tokenpay.api.webhooks import router as webhooks_router

    app.include_router(webhooks_router)
