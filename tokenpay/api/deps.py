"""Common FastAPI dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tokenpay.db import get_db
from tokenpay.services.payment_service import PaymentService


def get_payment_service(db: Annotated[AsyncSession, Depends(get_db)]) -> PaymentService:
    """Create payment service for the request session."""
    return PaymentService(db)


Payments = Annotated[PaymentService, Depends(get_payment_service)]
