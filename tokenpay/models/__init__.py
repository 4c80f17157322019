"""Models module - SQLModel database entities."""

from tokenpay.models.transaction import (
    Transaction,
    TransactionStatus,
    generate_transaction_id,
)
from tokenpay.models.user import User

__all__ = [
    # User
    "User",
    # Transaction
    "Transaction",
    "TransactionStatus",
    "generate_transaction_id",
]
