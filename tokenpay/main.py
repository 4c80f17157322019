"""TokenPay - FastAPI Application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination

from tokenpay.api import register_routers
from tokenpay.core.config import get_settings
from tokenpay.core.exceptions import TokenPayError
from tokenpay.core.logging import configure_logging
from tokenpay.db import close_db, init_db
from tokenpay.services.razorpay_service import get_razorpay_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup: Initialize database tables
    Shutdown: Close gateway client and database connections
    """
    await init_db()
    yield
    await get_razorpay_service().close()
    await close_db()


async def tokenpay_error_handler(request: Request, exc: TokenPayError) -> JSONResponse:
    """Render domain errors as ``{"success": false, ...}`` bodies."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error_code": exc.error_code,
            "error_message": exc.message,
            "details": exc.details,
        },
    )


def create_app() -> FastAPI:
    """Application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        description="Token purchase and payment reconciliation API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TokenPayError, tokenpay_error_handler)  # type: ignore[arg-type]
    register_routers(app)
    add_pagination(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Application instance
app = create_app()
