from fastapi import APIRouter, Depends, Request

from src.api import schemas
from src.api.dependencies import get_webhook_service
from src.portal_app.services.webhook_service import WebhookService

router = APIRouter()


@router.post("/webhook", response_model=schemas.WebhookAck)
async def stripe_webhook(
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
):
    """Receive Stripe events. The raw body is needed for signature verification."""
    payload = await request.body()
    return service.handle(payload, request.headers.get("stripe-signature"))
