"""
Webhook Service

Drives a submission's webhook through a bounded retry sequence with
exponential backoff, writing one audit row per attempt.
"""
import asyncio
import time

from app.config import settings
from app.logging_config import get_logger
from app.models.webhook import DeliveryStatus
from app.routes.metrics import track_webhook_attempt, track_webhook_delivery
from app.schemas.webhook import DeliveryResult, SubmissionPayload, WebhookConfig
from app.services.delivery_store import DeliveryRecordStore
from app.services.payload_builder import payload_to_json
from app.services.webhook_dispatcher import WebhookDispatcher


# Backoff: 1s, 2s, 4s with the default base delay
MAX_ATTEMPTS = 3
BASE_DELAY_MS = 1000


def backoff_delay_ms(attempt: int, base_delay_ms: int = BASE_DELAY_MS) -> int:
    """Wait before the attempt after `attempt` (1-based)."""
    return base_delay_ms * 2 ** (attempt - 1)


class WebhookDeliveryService:
    """
    Retry orchestrator for webhook deliveries.

    The store, dispatcher and sleep function are injected so tests can
    swap them out. Attempts are strictly sequential: attempt N is only
    sent after attempt N-1's audit row has been updated.
    """

    def __init__(
        self,
        store: DeliveryRecordStore,
        dispatcher: WebhookDispatcher,
        max_attempts: int | None = None,
        base_delay_ms: int | None = None,
        sleep=asyncio.sleep
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.max_attempts = max_attempts or settings.WEBHOOK_MAX_ATTEMPTS
        self.base_delay_ms = base_delay_ms if base_delay_ms is not None else settings.WEBHOOK_BASE_DELAY_MS
        self.sleep = sleep

    async def deliver(self, config: WebhookConfig, payload: SubmissionPayload) -> DeliveryResult:
        """
        Deliver a payload to the configured endpoint.

        Every failed attempt (4xx, 5xx, network error, timeout) is retried
        the same way until max_attempts is reached. Each failed attempt is
        marked failed as soon as its outcome is known.

        Returns:
            DeliveryResult with success flag, last status code and error
        """
        if not config.url:
            raise ValueError("Webhook config has no URL")

        form_id = payload.form_id
        submission_id = payload.submission_id
        body = payload_to_json(payload)
        started = time.monotonic()
        last_result = None

        for attempt in range(1, self.max_attempts + 1):
            log = get_logger(form_id=form_id, submission_id=submission_id, attempt=attempt)

            delivery_id = await self.store.create_attempt(
                form_id=form_id,
                submission_id=submission_id,
                webhook_url=config.url,
                attempt_count=attempt,
            )
            # None means this attempt has no audit row; it is still sent but never recorded

            last_result = await self.dispatcher.send(config.url, config.method, config.headers, body)

            if last_result.ok:
                if delivery_id is not None:
                    await self.store.mark_success(
                        delivery_id,
                        response_code=last_result.status_code,
                        response_body=last_result.body_text,
                    )
                track_webhook_attempt(DeliveryStatus.SUCCESS.value)
                track_webhook_delivery("success", time.monotonic() - started)
                log.info("webhook_delivered", status_code=last_result.status_code)
                return DeliveryResult(
                    success=True,
                    final_status_code=last_result.status_code,
                    attempts=attempt,
                )

            if delivery_id is not None:
                await self.store.mark_failed(
                    delivery_id,
                    response_code=last_result.status_code,
                    response_body=last_result.body_text,
                    error_message=last_result.error,
                )
            track_webhook_attempt(DeliveryStatus.FAILED.value)

            if attempt < self.max_attempts:
                delay_ms = backoff_delay_ms(attempt, self.base_delay_ms)
                log.warning(
                    "webhook_attempt_failed",
                    status_code=last_result.status_code,
                    error=last_result.error,
                    retry_in_ms=delay_ms
                )
                await self.sleep(delay_ms / 1000)

        log.error(
            "webhook_delivery_failed",
            attempts=self.max_attempts,
            status_code=last_result.status_code,
            error=last_result.error
        )
        track_webhook_delivery("failed", time.monotonic() - started)
        return DeliveryResult(
            success=False,
            final_status_code=last_result.status_code,
            error=f"Failed after {self.max_attempts} attempts (last error: {last_result.error})",
            attempts=self.max_attempts,
        )
