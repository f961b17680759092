# storefront/api/routers/webhooks.py
from fastapi import APIRouter, Depends, Header, HTTPException, Request

from storefront.api.deps import get_webhook_service
from storefront.domain.errors import StorefrontError
from storefront.services.webhook_service import WebhookService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/paystack")
async def paystack_webhook(
    request: Request,
    x_paystack_signature: str | None = Header(None),
    svc: WebhookService = Depends(get_webhook_service),
):
    body = await request.body()
    try:
        return svc.handle(body, x_paystack_signature)
    except StorefrontError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except (RuntimeError, ValueError) as e:
        logger.error(f"Webhook error: {e}")
        raise HTTPException(status_code=500, detail=str(e))
