"""TokenPay - User model."""

from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from tokenpay.utils.helpers import utc_now

if TYPE_CHECKING:
    from tokenpay.models.transaction import Transaction


class User(SQLModel, table=True):
    """User model - synced from Clerk.

    Only the fields the purchase flow reads are modelled here; profile
    and settings CRUD live elsewhere.

    Attributes:
        id: Auto-increment primary key
        clerk_id: Unique Clerk user ID (indexed)
        email: User email address (indexed)
        tokens: Purchased unit balance. Mutated only by increments.
        is_active: Account status
    """

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    clerk_id: str = Field(max_length=255, unique=True, index=True)
    email: str = Field(max_length=255, index=True)
    username: str | None = Field(default=None, max_length=255)
    first_name: str | None = Field(default=None, max_length=120)
    last_name: str | None = Field(default=None, max_length=120)
    phone: str | None = Field(default=None, max_length=32)
    country: str | None = Field(default=None, max_length=64)
    tokens: int = Field(default=0)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Rows are removed by the database cascade, never loaded for deletion
    transactions: list["Transaction"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

    __table_args__ = (sa.CheckConstraint("tokens >= 0", name="ck_users_tokens_non_negative"),)

    @property
    def display_name(self) -> str:
        """Full name when known, else username, else email."""
        full_name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full_name or self.username or self.email
