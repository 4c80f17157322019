"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17

Users with their unit balance and the purchase transaction ledger.
"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

transaction_status = sa.Enum("PENDING", "COMPLETED", "FAILED", name="transactionstatus")


def upgrade() -> None:
    """Create initial database schema."""
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("clerk_id", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("username", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column("first_name", sqlmodel.sql.sqltypes.AutoString(length=120), nullable=True),
        sa.Column("last_name", sqlmodel.sql.sqltypes.AutoString(length=120), nullable=True),
        sa.Column("phone", sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column("country", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column("tokens", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("tokens >= 0", name="ck_users_tokens_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_clerk_id"), "users", ["clerk_id"], unique=True)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    # Transactions table (purchase ledger)
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transaction_id", sqlmodel.sql.sqltypes.AutoString(length=40), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("package_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        sa.Column("package_name", sqlmodel.sql.sqltypes.AutoString(length=128), nullable=False),
        sa.Column("tokens", sa.Integer(), nullable=False),
        sa.Column("currency", sqlmodel.sql.sqltypes.AutoString(length=3), nullable=False),
        sa.Column("base_amount", sa.DECIMAL(18, 2), nullable=False),
        sa.Column("tax_amount", sa.DECIMAL(18, 2), nullable=False),
        sa.Column("final_amount", sa.DECIMAL(18, 2), nullable=False),
        sa.Column("tax_rate", sa.DECIMAL(5, 4), nullable=False),
        sa.Column("tax_name", sqlmodel.sql.sqltypes.AutoString(length=32), nullable=False),
        sa.Column("billing_country", sqlmodel.sql.sqltypes.AutoString(length=8), nullable=False),
        sa.Column("gateway_order_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True),
        sa.Column(
            "gateway_payment_id", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=True
        ),
        sa.Column(
            "gateway_signature", sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True
        ),
        sa.Column("payment_method", sqlmodel.sql.sqltypes.AutoString(length=32), nullable=True),
        sa.Column("status", transaction_status, nullable=False),
        sa.Column("failure_reason", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=True),
        sa.Column(
            "invoice_filename", sqlmodel.sql.sqltypes.AutoString(length=128), nullable=True
        ),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("tokens > 0", name="ck_transactions_tokens_positive"),
        sa.CheckConstraint(
            "base_amount >= 0 AND tax_amount >= 0", name="ck_transactions_amounts_non_negative"
        ),
        sa.CheckConstraint(
            "final_amount = base_amount + tax_amount", name="ck_transactions_final_amount"
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_transactions_transaction_id"), "transactions", ["transaction_id"], unique=True
    )
    op.create_index(op.f("ix_transactions_user_id"), "transactions", ["user_id"], unique=False)
    op.create_index(
        op.f("ix_transactions_gateway_order_id"),
        "transactions",
        ["gateway_order_id"],
        unique=True,
    )
    op.create_index(
        op.f("ix_transactions_gateway_payment_id"),
        "transactions",
        ["gateway_payment_id"],
        unique=False,
    )
    op.create_index(op.f("ix_transactions_status"), "transactions", ["status"], unique=False)
    op.create_index(
        op.f("ix_transactions_created_at"), "transactions", ["created_at"], unique=False
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("transactions")
    op.drop_table("users")
    transaction_status.drop(op.get_bind(), checkfirst=True)
