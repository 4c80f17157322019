"""TokenPay - Transaction (purchase ledger) model."""

import secrets
import string
import time
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from tokenpay.utils.amount import to_minor_units
from tokenpay.utils.helpers import utc_now

if TYPE_CHECKING:
    from tokenpay.models.user import User

_BASE36 = string.digits + string.ascii_lowercase


class TransactionStatus(str, Enum):
    """Transaction status.

    State transitions:
    - pending -> completed (payment captured, balance credited once)
    - pending -> failed
    completed and failed are terminal.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TransactionStatus.PENDING


def generate_transaction_id() -> str:
    """Generate a unique, client-safe transaction id.

    Format: txn_<epoch ms>_<9 base36 chars>
    Example: txn_1702345678000_k3j9x0a1b

    Doubles as the gateway receipt, which is capped at 40 characters.
    """
    timestamp = int(time.time() * 1000)
    random_suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"txn_{timestamp}_{random_suffix}"


class Transaction(SQLModel, table=True):
    """One purchase attempt from creation to completion or failure.

    Prices are computed once at creation; verification never re-derives
    them from the catalog.

    Attributes:
        id: Auto-increment primary key
        transaction_id: Internal id shown to clients and used as receipt
        user_id: Owning user (cascade-deleted with the user)

        package_id / package_name: Catalog entry or "custom"
        tokens: Units credited on completion

        currency: INR / USD
        base_amount / tax_amount / final_amount: final = base + tax
        tax_rate / tax_name: Tax applied at creation
        billing_country: Canonical uppercase country code

        gateway_order_id: Provider order id (null until the order call succeeds)
        gateway_payment_id: Provider payment id (null until settlement)
        gateway_signature: Signature the client submitted on verification
        payment_method: card / upi / netbanking / ... (null until known)

        status: pending / completed / failed
        failure_reason: Provider error description or reconciliation reason
        invoice_filename: Set once the invoice PDF exists
    """

    __tablename__ = "transactions"

    id: int | None = Field(default=None, primary_key=True)
    transaction_id: str = Field(
        max_length=40,
        unique=True,
        index=True,
        description="Internal transaction id (txn_...)",
    )
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)

    package_id: str = Field(max_length=64, description="Catalog package id or 'custom'")
    package_name: str = Field(max_length=128)
    tokens: int = Field(description="Units credited on completion")

    # Money fields
    currency: str = Field(max_length=3)
    base_amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(18, 2), nullable=False),
        description="Price before tax, in currency",
    )
    tax_amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=sa.Column(sa.DECIMAL(18, 2), nullable=False, default=Decimal("0")),
        description="Tax in currency",
    )
    final_amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(18, 2), nullable=False),
        description="Charged amount (base + tax)",
    )
    tax_rate: Decimal = Field(
        default=Decimal("0"),
        sa_column=sa.Column(sa.DECIMAL(5, 4), nullable=False, default=Decimal("0")),
    )
    tax_name: str = Field(default="No Tax", max_length=32)
    billing_country: str = Field(max_length=8)

    # Gateway linkage
    gateway_order_id: str | None = Field(default=None, max_length=64, unique=True, index=True)
    gateway_payment_id: str | None = Field(default=None, max_length=64, index=True)
    gateway_signature: str | None = Field(default=None, max_length=128)
    payment_method: str | None = Field(default=None, max_length=32)

    # Status
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        index=True,
        description="Transaction status",
    )
    failure_reason: str | None = Field(default=None, max_length=255)
    invoice_filename: str | None = Field(default=None, max_length=128)

    # Timestamps
    completed_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)

    user: Optional["User"] = Relationship(
        back_populates="transactions",
        sa_relationship_kwargs={"lazy": "selectin"},
    )

    __table_args__ = (
        sa.CheckConstraint("tokens > 0", name="ck_transactions_tokens_positive"),
        sa.CheckConstraint(
            "base_amount >= 0 AND tax_amount >= 0", name="ck_transactions_amounts_non_negative"
        ),
        sa.CheckConstraint(
            "final_amount = base_amount + tax_amount", name="ck_transactions_final_amount"
        ),
    )

    @property
    def amount_minor(self) -> int:
        """Final amount in the provider's smallest currency unit."""
        return to_minor_units(self.final_amount, self.currency)

    @property
    def tax_applied(self) -> bool:
        return self.tax_amount > 0
