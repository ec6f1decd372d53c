"""
Webhook API routes.

Delivery trigger for new submissions and a one-off test send used by the
webhook settings screen.
"""
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies.webhooks import get_webhook_dispatcher, get_webhook_service
from app.logging_config import get_logger
from app.schemas.webhook import DeliverWebhookRequest, WebhookTestRequest, WebhookConfig
from app.sentry_config import capture_exception
from app.services.url_policy import sanitize_headers, validate_webhook_url
from app.services.webhook_dispatcher import WebhookDispatcher
from app.services.webhook_service import WebhookDeliveryService
from app.services.webhook_trigger import trigger_webhook_delivery


router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

TEST_SAMPLE_DATA = {
    "field_1": "Sample value",
    "field_2": "Another sample"
}


@router.post("/deliver")
async def deliver_webhook(
    request: DeliverWebhookRequest,
    db: AsyncSession = Depends(get_db),
    service: WebhookDeliveryService = Depends(get_webhook_service)
):
    """
    Deliver the webhook for a new submission.

    Called by the submission flow with {submission_id, form_id}. Retries
    happen inside this call, so it can take several seconds to answer.
    """
    # Sentry tags come from these contextvars, so errors are captured while they are bound
    with structlog.contextvars.bound_contextvars(
        form_id=request.form_id, submission_id=request.submission_id
    ):
        try:
            outcome = await trigger_webhook_delivery(
                db, service, request.submission_id, request.form_id
            )
        except Exception as e:
            get_logger().error("webhook_trigger_crashed", error=str(e), exc_info=True)
            capture_exception()
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.post("/test")
async def test_webhook(
    request: WebhookTestRequest,
    dispatcher: WebhookDispatcher = Depends(get_webhook_dispatcher)
):
    """
    Send a sample payload once to check a webhook URL.

    No retries and no delivery rows; the receiver's answer is echoed back.
    """
    if not request.webhook_url:
        return JSONResponse(status_code=400, content={"error": "webhook_url is required"})

    try:
        config = WebhookConfig(
            enabled=True,
            url=request.webhook_url,
            method=request.webhook_method,
            headers=sanitize_headers(request.webhook_headers),
        )
    except ValidationError:
        return JSONResponse(
            status_code=400,
            content={"error": f"Invalid webhook method: {request.webhook_method}"}
        )

    if settings.WEBHOOK_ENFORCE_URL_POLICY and not validate_webhook_url(
        config.url, require_https=settings.WEBHOOK_REQUIRE_HTTPS
    ):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid webhook URL - security policy violation"}
        )

    test_payload = {
        "test": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sample_data": TEST_SAMPLE_DATA,
    }

    result = await dispatcher.send(config.url, config.method, config.headers, test_payload)

    if result.status_code is None:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": result.error}
        )

    return {
        "success": result.ok,
        "status": result.status_code,
        "statusText": result.reason,
        "response": result.body_text,
    }
