"""TokenPay - Invoice download route."""

from fastapi import APIRouter
from fastapi.responses import FileResponse

from tokenpay.api.auth import CurrentUser
from tokenpay.api.deps import Payments

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.get("/{transaction_id}", response_class=FileResponse)
async def download_invoice(
    transaction_id: str,
    user: CurrentUser,
    service: Payments,
) -> FileResponse:
    """Stream the caller's invoice PDF.

    A missing file is regenerated for completed transactions; other
    users' transactions answer 404.
    """
    path = await service.get_invoice_path(transaction_id, user)
    return FileResponse(path, media_type="application/pdf", filename=path.name)
