"""
Webhook delivery trigger.

Entry point called by the submission flow (over HTTP or from the worker):
loads the form and submission, short-circuits when webhooks are off and
otherwise hands the delivery to WebhookDeliveryService.
"""
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    WebhookTriggerError,
    MissingIdentifiersError,
    FormNotFoundError,
    SubmissionNotFoundError,
    UnsafeWebhookURLError,
    InvalidWebhookConfigError,
)
from app.logging_config import get_logger
from app.models.form import Form
from app.models.submission import FormSubmission
from app.schemas.webhook import TriggerResponse, WebhookConfig
from app.services.payload_builder import build_payload
from app.services.url_policy import validate_webhook_url
from app.services.webhook_service import WebhookDeliveryService


async def get_form(db: AsyncSession, form_id: str) -> Form | None:
    """Get form by ID."""
    stmt = select(Form).where(Form.id == form_id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_submission(db: AsyncSession, submission_id: str, form_id: str) -> FormSubmission | None:
    """Get a submission by ID, only if it belongs to the given form."""
    stmt = select(FormSubmission).where(
        FormSubmission.id == submission_id,
        FormSubmission.form_id == form_id
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def load_webhook_config(form: Form) -> WebhookConfig:
    """Snapshot the form's webhook settings, rejecting unsupported methods."""
    try:
        return WebhookConfig.from_form(form)
    except ValidationError:
        raise InvalidWebhookConfigError(
            f"Invalid webhook method: {form.webhook_method}"
        ) from None


async def _trigger(
    db: AsyncSession,
    service: WebhookDeliveryService,
    submission_id: str | None,
    form_id: str | None
) -> TriggerResponse:
    if not submission_id or not form_id:
        raise MissingIdentifiersError()

    log = get_logger(form_id=form_id, submission_id=submission_id)
    log.info("webhook_trigger_received")

    form = await get_form(db, form_id)
    if form is None:
        raise FormNotFoundError()

    if not form.webhook_enabled or not form.webhook_url:
        log.info("webhook_not_enabled")
        return TriggerResponse(status_code=200, body={"message": "Webhooks not enabled"})

    config = load_webhook_config(form)

    if settings.WEBHOOK_ENFORCE_URL_POLICY and not validate_webhook_url(
        config.url, require_https=settings.WEBHOOK_REQUIRE_HTTPS
    ):
        log.warning("webhook_url_rejected", webhook_url=config.url)
        raise UnsafeWebhookURLError()

    submission = await get_submission(db, submission_id, form_id)
    if submission is None:
        raise SubmissionNotFoundError()

    payload = build_payload(form, submission, use_field_labels=settings.WEBHOOK_USE_FIELD_LABELS)
    result = await service.deliver(config, payload)

    if result.success:
        return TriggerResponse(
            status_code=200,
            body={"message": "Webhook delivered successfully", "status": result.final_status_code},
        )

    return TriggerResponse(
        status_code=500,
        body={"error": "Webhook delivery failed", "details": result.error},
    )


async def trigger_webhook_delivery(
    db: AsyncSession,
    service: WebhookDeliveryService,
    submission_id: str | None,
    form_id: str | None
) -> TriggerResponse:
    """
    Deliver a submission's webhook and describe the outcome as an HTTP response.

    Request errors (missing ids, unknown form or submission, unsafe URL)
    come back as 4xx without contacting the endpoint. Delivery failures
    after all retries come back as 500.
    """
    try:
        return await _trigger(db, service, submission_id, form_id)
    except WebhookTriggerError as e:
        get_logger(form_id=form_id, submission_id=submission_id).warning(
            "webhook_trigger_rejected", status_code=e.status_code, error=e.message
        )
        return TriggerResponse(status_code=e.status_code, body={"error": e.message})
