"""
Webhook delivery dependencies for FastAPI.

Builds the delivery store, dispatcher and retry service per request so
routes never reach for module-level clients. Tests override these.
"""
from fastapi import Depends

from app.database import AsyncSessionLocal
from app.services.delivery_store import DeliveryRecordStore
from app.services.webhook_dispatcher import WebhookDispatcher
from app.services.webhook_service import WebhookDeliveryService


def get_delivery_store() -> DeliveryRecordStore:
    """Delivery log backed by the application database."""
    return DeliveryRecordStore(AsyncSessionLocal)


def get_webhook_dispatcher() -> WebhookDispatcher:
    """Dispatcher with the configured per-request timeout."""
    return WebhookDispatcher()


def get_webhook_service(
    store: DeliveryRecordStore = Depends(get_delivery_store),
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher)
) -> WebhookDeliveryService:
    """Retry orchestrator wired to the store and dispatcher."""
    return WebhookDeliveryService(store=store, dispatcher=dispatcher)
