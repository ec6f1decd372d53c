"""
Form API routes.

Read-only delivery history for the analytics deliveries table.
"""
from fastapi import APIRouter, Depends, Query

from app.dependencies.webhooks import get_delivery_store
from app.schemas.webhook import WebhookDeliveryResponse
from app.services.delivery_store import DeliveryRecordStore


router = APIRouter(prefix="/api/forms", tags=["forms"])


@router.get("/{form_id}/webhook-deliveries", response_model=list[WebhookDeliveryResponse])
async def list_webhook_deliveries(
    form_id: str,
    limit: int = Query(20, ge=1, le=100),
    store: DeliveryRecordStore = Depends(get_delivery_store)
):
    """Most recent delivery attempts for a form, newest first."""
    deliveries = await store.list_for_form(form_id, limit=limit)
    return [WebhookDeliveryResponse.model_validate(d) for d in deliveries]
