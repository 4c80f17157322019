"""Paginated transaction history.

?page=2&page_size=20 -> {"items": [...], "total": 42, "page": 2, "page_size": 20, "pages": 3}
"""

from fastapi import Query
from fastapi_pagination import Page
from fastapi_pagination.customization import (
    CustomizedPage,
    UseFieldsAliases,
    UseName,
    UseParamsFields,
)

from tokenpay.schemas.payment import TransactionSummary

__all__ = ["HISTORY_PAGE_SIZE", "HistoryPage"]

HISTORY_PAGE_SIZE = 10

HistoryPage = CustomizedPage[
    Page[TransactionSummary],
    UseName("TransactionHistoryPage"),
    UseParamsFields(
        size=Query(HISTORY_PAGE_SIZE, ge=1, le=100, alias="page_size", description="Page size"),
    ),
    UseFieldsAliases(size="page_size"),
]
