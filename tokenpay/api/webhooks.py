"""Webhook endpoint for Razorpay payment notifications.

The signature covers the exact request bytes, so the body is read raw
and only decoded after verification. Deliveries may repeat; processing
is idempotent.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Request, status

from tokenpay.api.deps import Payments
from tokenpay.core.exceptions import InvalidSignature

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    service: Payments,
    x_razorpay_signature: Annotated[str | None, Header()] = None,
    x_razorpay_event_id: Annotated[str | None, Header()] = None,
) -> dict[str, str]:
    """Receive Razorpay webhook events.

    Returns:
        401 on a bad signature, 400 on an unparseable body,
        otherwise {"status": "ok" | "ignored"}
    """
    body = await request.body()
    if x_razorpay_event_id:
        logger.info(f"Razorpay webhook delivery {x_razorpay_event_id}")

    try:
        result = await service.process_webhook(body, x_razorpay_signature)
    except InvalidSignature as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=e.message) from e

    return {"status": result}
