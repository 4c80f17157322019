"""TokenPay - Invoice PDF generation.

Invoices are derived artifacts: ``<invoice_dir>/INV-<transaction id>.pdf``.
Rendering the same transaction twice yields the same file name, and the
file is replaced atomically, so regeneration is always safe.
"""

import asyncio
import logging
import os
import tempfile
from decimal import Decimal
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from tokenpay.core.config import get_settings
from tokenpay.core.exceptions import InvoiceGenerationFailed
from tokenpay.models.transaction import Transaction, TransactionStatus
from tokenpay.models.user import User
from tokenpay.utils.amount import quantize_money

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service for rendering and locating invoice PDFs."""

    MARGIN = 50
    COLUMN_WIDTH = 125

    def __init__(
        self,
        invoice_dir: str | Path | None = None,
        company_name: str | None = None,
        company_address: str | None = None,
        company_email: str | None = None,
    ):
        settings = get_settings()
        self.invoice_dir = Path(invoice_dir or settings.invoice_dir)
        self.company_name = company_name or settings.invoice_company_name
        self.company_address = company_address or settings.invoice_company_address
        self.company_email = company_email or settings.invoice_company_email

    @staticmethod
    def invoice_number(transaction_id: str) -> str:
        return f"INV-{transaction_id}"

    @classmethod
    def invoice_filename(cls, transaction_id: str) -> str:
        return f"{cls.invoice_number(transaction_id)}.pdf"

    def get_invoice_path(self, filename: str) -> Path:
        """Resolve a stored filename inside the invoice directory."""
        # Only the final path component is honoured
        return self.invoice_dir / Path(filename).name

    def invoice_exists(self, filename: str | None) -> bool:
        return bool(filename) and self.get_invoice_path(filename).is_file()

    async def generate_invoice(self, transaction: Transaction, user: User) -> str:
        """Render the invoice for a completed transaction.

        Args:
            transaction: Completed ledger row
            user: Owner of the transaction

        Returns:
            Invoice filename (relative to the invoice directory)

        Raises:
            InvoiceGenerationFailed: If the transaction is not completed or
                the PDF could not be written
        """
        if transaction.status != TransactionStatus.COMPLETED:
            raise InvoiceGenerationFailed(
                "Invoices are only issued for completed transactions",
                {"transaction_id": transaction.transaction_id},
            )

        filename = self.invoice_filename(transaction.transaction_id)
        try:
            await asyncio.to_thread(self._write_pdf, transaction, user, filename)
        except Exception as e:
            raise InvoiceGenerationFailed(
                f"Could not write invoice: {e}",
                {"transaction_id": transaction.transaction_id},
            ) from e

        logger.info(f"Invoice generated: {filename}")
        return filename

    def _write_pdf(self, transaction: Transaction, user: User, filename: str) -> None:
        self.invoice_dir.mkdir(parents=True, exist_ok=True)
        target = self.get_invoice_path(filename)

        fd, tmp_path = tempfile.mkstemp(dir=self.invoice_dir, suffix=".pdf.tmp")
        os.close(fd)
        try:
            self._render(tmp_path, transaction, user)
            os.replace(tmp_path, target)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _render(self, path: str, transaction: Transaction, user: User) -> None:
        """Draw the fixed invoice layout onto one A4 page."""
        width, height = A4
        left = self.MARGIN
        right = width - self.MARGIN
        col = self.COLUMN_WIDTH
        currency = transaction.currency
        issued = (transaction.completed_at or transaction.created_at).strftime("%Y-%m-%d")

        pdf = canvas.Canvas(path, pagesize=A4, invariant=1)
        pdf.setTitle(self.invoice_number(transaction.transaction_id))

        y = height - self.MARGIN - 10
        pdf.setFont("Helvetica-Bold", 20)
        pdf.drawCentredString(width / 2, y, "INVOICE")

        # Company block
        y -= 35
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawRightString(right, y, self.company_name)
        pdf.setFont("Helvetica", 10)
        for line in [*self.company_address.split(", ", 1), f"Email: {self.company_email}"]:
            y -= 14
            pdf.drawRightString(right, y, line)

        # Invoice details
        y -= 30
        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawString(left, y, f"Invoice No: {self.invoice_number(transaction.transaction_id)}")
        y -= 16
        pdf.setFont("Helvetica", 10)
        pdf.drawString(left, y, f"Date: {issued}")

        # Bill to
        y -= 30
        y = self._section(
            pdf,
            left,
            y,
            "Bill To:",
            [
                user.display_name,
                f"Email: {user.email}",
                *([f"Mobile: {user.phone}"] if user.phone else []),
                f"Country: {transaction.billing_country or 'N/A'}",
            ],
        )

        # Payment details
        y -= 16
        y = self._section(
            pdf,
            left,
            y,
            "Payment Details:",
            [
                f"Razorpay Payment ID: {transaction.gateway_payment_id or 'N/A'}",
                f"Payment Method: {transaction.payment_method or 'N/A'}",
                f"Status: {transaction.status.value.capitalize()}",
            ],
        )

        # Line item
        y -= 30
        pdf.setFont("Helvetica-Bold", 12)
        for i, header in enumerate(("Description", "Quantity", "Unit Price", "Amount")):
            pdf.drawString(left + col * i, y, header)
        pdf.line(left, y - 5, right, y - 5)

        y -= 20
        unit_price = transaction.base_amount / Decimal(transaction.tokens)
        pdf.setFont("Helvetica", 10)
        row = (
            transaction.package_name,
            str(transaction.tokens),
            f"{currency} {unit_price.quantize(Decimal('0.0001'))}",
            f"{currency} {quantize_money(transaction.base_amount)}",
        )
        for i, cell in enumerate(row):
            pdf.drawString(left + col * i, y, cell)

        # Totals
        y -= 30
        tax_label = (
            f"{transaction.tax_name} ({transaction.tax_rate * 100:.0f}%):"
            if transaction.tax_applied
            else f"{transaction.tax_name}:"
        )
        pdf.drawString(left + col * 2, y, tax_label)
        pdf.drawString(left + col * 3, y, f"{currency} {quantize_money(transaction.tax_amount)}")
        y -= 20
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(left + col * 2, y, "Total:")
        pdf.drawString(
            left + col * 3, y, f"{currency} {quantize_money(transaction.final_amount)}"
        )

        pdf.setFont("Helvetica", 8)
        pdf.drawCentredString(width / 2, 100, "Thank you for your business!")

        pdf.showPage()
        pdf.save()

    @staticmethod
    def _section(pdf: canvas.Canvas, x: float, y: float, title: str, lines: list[str]) -> float:
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(x, y, title)
        pdf.line(x, y - 2, x + pdf.stringWidth(title, "Helvetica-Bold", 12), y - 2)
        pdf.setFont("Helvetica", 10)
        for line in lines:
            y -= 14
            pdf.drawString(x, y, line)
        return y
