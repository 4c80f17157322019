"""Invoice PDF generation tests."""
from datetime import datetime
from decimal import Decimal

import pytest

from tokenpay.core.exceptions import InvoiceGenerationFailed
from tokenpay.models.transaction import Transaction, TransactionStatus
from tokenpay.models.user import User
from tokenpay.services.invoice_service import InvoiceService


def _transaction(status: TransactionStatus = TransactionStatus.COMPLETED) -> Transaction:
    return Transaction(
        transaction_id="txn_1700000000000_abc123xyz",
        user_id=1,
        package_id="starter",
        package_name="Starter Pack",
        tokens=1000,
        currency="INR",
        base_amount=Decimal("1759.12"),
        tax_amount=Decimal("316.64"),
        final_amount=Decimal("2075.76"),
        tax_rate=Decimal("0.18"),
        tax_name="GST",
        billing_country="IN",
        gateway_order_id="order_1",
        gateway_payment_id="pay_1",
        payment_method="upi",
        status=status,
        created_at=datetime(2026, 1, 15, 10, 30),
        completed_at=datetime(2026, 1, 15, 10, 31),
    )


def _user() -> User:
    return User(id=1, clerk_id="user_1", email="buyer@example.com", username="buyer")


class TestInvoiceService:
    """Rendering, naming and path resolution."""

    @pytest.mark.asyncio
    async def test_generates_pdf(self, invoices: InvoiceService) -> None:
        filename = await invoices.generate_invoice(_transaction(), _user())

        assert filename == "INV-txn_1700000000000_abc123xyz.pdf"
        path = invoices.get_invoice_path(filename)
        assert path.read_bytes().startswith(b"%PDF")
        assert invoices.invoice_exists(filename)
        # No temp files left behind
        assert [p.name for p in invoices.invoice_dir.iterdir()] == [filename]

    @pytest.mark.asyncio
    async def test_regeneration_overwrites_same_file(self, invoices: InvoiceService) -> None:
        first = await invoices.generate_invoice(_transaction(), _user())
        content = invoices.get_invoice_path(first).read_bytes()

        second = await invoices.generate_invoice(_transaction(), _user())

        assert first == second
        assert invoices.get_invoice_path(second).read_bytes() == content

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [TransactionStatus.PENDING, TransactionStatus.FAILED])
    async def test_only_completed_transactions(self, invoices, status) -> None:
        with pytest.raises(InvoiceGenerationFailed):
            await invoices.generate_invoice(_transaction(status), _user())

        assert not invoices.invoice_dir.exists()

    def test_path_stays_inside_invoice_dir(self, invoices: InvoiceService) -> None:
        path = invoices.get_invoice_path("../../etc/passwd")

        assert path.parent == invoices.invoice_dir
        assert path.name == "passwd"

    def test_missing_invoice(self, invoices: InvoiceService) -> None:
        assert invoices.invoice_exists("INV-nothing.pdf") is False
        assert invoices.invoice_exists(None) is False
