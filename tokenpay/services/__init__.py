"""Services module - Business logic layer."""

from tokenpay.services.invoice_service import InvoiceService
from tokenpay.services.package_catalog import (
    CUSTOM_PACKAGE_ID,
    DEFAULT_PACKAGES,
    PackageCatalog,
    PackageSelector,
    PriceQuote,
    TokenPackage,
    build_catalog,
)
from tokenpay.services.payment_service import CompletionResult, OrderResult, PaymentService
from tokenpay.services.razorpay_service import (
    GatewayOrder,
    GatewayPayment,
    RazorpayService,
    get_razorpay_service,
)
from tokenpay.services.reconciliation_service import ReconciliationService
from tokenpay.services.tax_policy import DEFAULT_TAX_POLICY, TaxInfo, TaxPolicy, get_tax_info
from tokenpay.services.transaction_service import TransactionService

__all__ = [
    # Pricing
    "TaxPolicy",
    "TaxInfo",
    "DEFAULT_TAX_POLICY",
    "get_tax_info",
    "TokenPackage",
    "PackageCatalog",
    "PackageSelector",
    "PriceQuote",
    "CUSTOM_PACKAGE_ID",
    "DEFAULT_PACKAGES",
    "build_catalog",
    # Gateway
    "RazorpayService",
    "GatewayOrder",
    "GatewayPayment",
    "get_razorpay_service",
    # Ledger and orchestration
    "TransactionService",
    "PaymentService",
    "OrderResult",
    "CompletionResult",
    "ReconciliationService",
    # Invoices
    "InvoiceService",
]
