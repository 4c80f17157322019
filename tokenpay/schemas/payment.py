"""TokenPay - Payment schemas.

Request/response DTOs for package listing, order creation, payment
verification, history and balance.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tokenpay.models.transaction import Transaction, TransactionStatus

# ============ Packages ============


class TaxInfoResponse(BaseModel):
    rate: str
    name: str
    applicable: bool


class PackagePriceResponse(BaseModel):
    """A catalog package priced for the caller's billing country."""

    id: str
    name: str
    tokens: int
    currency: str
    base_price: str
    tax_amount: str
    final_price: str
    formatted_price: str
    tax_info: TaxInfoResponse


class CurrencyResponse(BaseModel):
    code: str
    symbol: str
    name: str


class PackageListResponse(BaseModel):
    success: bool = True
    billing_country: str
    packages: list[PackagePriceResponse]
    supported_currencies: list[CurrencyResponse]


# ============ Order Creation ============


class CreateOrderRequest(BaseModel):
    """Request to start a purchase.

    Exactly one of package_id or custom_tokens must be given.
    """

    package_id: str | None = Field(default=None, max_length=64, description="Catalog package id")
    custom_tokens: int | None = Field(default=None, gt=0, description="Custom unit quantity")
    billing_country: str = Field(default="US", max_length=64, description="Billing country")

    @model_validator(mode="after")
    def check_selector(self) -> "CreateOrderRequest":
        if bool(self.package_id) == (self.custom_tokens is not None):
            raise ValueError("Provide exactly one of package_id or custom_tokens")
        return self


class PackageInfo(BaseModel):
    id: str
    name: str
    tokens: int


class CreateOrderResponse(BaseModel):
    """Everything the client needs to open the checkout."""

    success: bool = True
    order_id: str = Field(..., description="Gateway order id")
    transaction_id: str = Field(..., description="Internal transaction id")
    amount: int = Field(..., description="Final amount in minor units")
    currency: str
    key_id: str = Field(..., description="Public gateway key for the checkout")
    base_amount: str
    tax_amount: str
    final_amount: str
    tax_rate: str
    tax_name: str
    billing_country: str
    package: PackageInfo


# ============ Verification ============


class VerifyPaymentRequest(BaseModel):
    """Checkout callback fields reported by the client."""

    razorpay_payment_id: str = Field(..., min_length=1, max_length=64)
    razorpay_order_id: str = Field(..., min_length=1, max_length=64)
    razorpay_signature: str = Field(..., min_length=1, max_length=128)


class TransactionSummary(BaseModel):
    """Client-safe view of a transaction.

    The gateway payment id and signature are never exposed.
    """

    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    package_id: str
    package_name: str
    tokens: int
    currency: str
    base_amount: Decimal
    tax_amount: Decimal
    final_amount: Decimal
    tax_name: str
    billing_country: str
    payment_method: str | None
    status: TransactionStatus
    failure_reason: str | None
    has_invoice: bool = False
    created_at: datetime
    completed_at: datetime | None

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "TransactionSummary":
        summary = cls.model_validate(transaction)
        summary.has_invoice = bool(transaction.invoice_filename)
        return summary


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str
    already_processed: bool = False
    balance: int
    transaction: TransactionSummary


# ============ Balance ============


class BalanceResponse(BaseModel):
    success: bool = True
    balance: int
    total_purchased: int
    unit_name: str
    recent_transactions: list[TransactionSummary]
