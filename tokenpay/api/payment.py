"""TokenPay - Purchase API routes.

Endpoints used by the buy-credits page: price list, order creation,
checkout verification, history and balance.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi_pagination.ext.sqlmodel import apaginate

from tokenpay.api.auth import CurrentUser
from tokenpay.api.deps import Payments
from tokenpay.models.transaction import TransactionStatus
from tokenpay.schemas.pagination import HistoryPage
from tokenpay.schemas.payment import (
    BalanceResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    PackageInfo,
    PackageListResponse,
    TransactionSummary,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from tokenpay.services.package_catalog import PackageSelector

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("/packages", response_model=PackageListResponse)
async def list_packages(
    service: Payments,
    country: Annotated[str, Query(max_length=64, description="Billing country")] = "US",
) -> PackageListResponse:
    """List every package priced for a billing country."""
    return PackageListResponse(**service.list_packages(country))


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    data: CreateOrderRequest,
    user: CurrentUser,
    service: Payments,
) -> CreateOrderResponse:
    """Create a pending transaction and the matching gateway order.

    On gateway failure the error body carries the transaction id and
    ``retryable: true``.
    """
    result = await service.create_order(
        user,
        PackageSelector(package_id=data.package_id, custom_tokens=data.custom_tokens),
        data.billing_country,
    )
    transaction, quote = result.transaction, result.quote

    return CreateOrderResponse(
        order_id=result.order.id,
        transaction_id=transaction.transaction_id,
        amount=result.order.amount,
        currency=result.order.currency or quote.currency,
        key_id=service.gateway.key_id,
        base_amount=str(quote.base_amount),
        tax_amount=str(quote.tax_amount),
        final_amount=str(quote.final_amount),
        tax_rate=str(quote.tax.tax_rate),
        tax_name=quote.tax.tax_name,
        billing_country=quote.billing_country,
        package=PackageInfo(
            id=quote.package.id,
            name=quote.package.name,
            tokens=quote.package.tokens,
        ),
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    data: VerifyPaymentRequest,
    user: CurrentUser,
    service: Payments,
) -> VerifyPaymentResponse:
    """Verify the checkout signature and credit the purchase.

    Repeating the call for a completed transaction succeeds without
    crediting again.
    """
    result = await service.verify_payment(
        data.razorpay_payment_id,
        data.razorpay_order_id,
        data.razorpay_signature,
        user_id=user.id,
    )
    transaction = result.transaction
    message = (
        f"Payment verified. {transaction.tokens} {service.unit_name} added to your account."
        if result.credited
        else "Payment already processed."
    )

    return VerifyPaymentResponse(
        message=message,
        already_processed=not result.credited,
        balance=await service.get_balance(user.id),  # type: ignore[arg-type]
        transaction=TransactionSummary.from_transaction(transaction),
    )


@router.get("/history")
async def payment_history(
    user: CurrentUser,
    service: Payments,
    status: Annotated[TransactionStatus | None, Query(description="Filter by status")] = None,
) -> HistoryPage:
    """Caller's transactions, newest first."""
    query = service.ledger.history_query(user.id, status)  # type: ignore[arg-type]
    return await apaginate(
        service.ledger.db,
        query,
        transformer=lambda items: [TransactionSummary.from_transaction(t) for t in items],
    )


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(user: CurrentUser, service: Payments) -> BalanceResponse:
    """Current balance with purchase totals."""
    summary = await service.ledger.get_balance_summary(user.id)  # type: ignore[arg-type]
    return BalanceResponse(
        balance=summary["balance"],
        total_purchased=summary["total_purchased"],
        unit_name=service.unit_name,
        recent_transactions=[
            TransactionSummary.from_transaction(t) for t in summary["recent_transactions"]
        ],
    )
