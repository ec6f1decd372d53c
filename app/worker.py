"""
ARQ Background Worker for FormHook.

Runs webhook deliveries off the request path so a form submitter never
waits on (or sees) the form owner's endpoint.
"""
import asyncio

import httpx
from arq import create_pool
from arq.connections import RedisSettings

from app.config import settings
from app.database import AsyncSessionLocal
from app.logging_config import get_logger
from app.services.delivery_store import DeliveryRecordStore
from app.services.webhook_dispatcher import WebhookDispatcher
from app.services.webhook_service import WebhookDeliveryService
from app.services.webhook_trigger import trigger_webhook_delivery


logger = get_logger(component="worker")


async def startup(ctx: dict):
    """Open one HTTP connection pool for the worker's lifetime."""
    ctx["http_client"] = httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT_SECONDS)


async def shutdown(ctx: dict):
    client = ctx.get("http_client")
    if client is not None:
        await client.aclose()


def build_delivery_service(ctx: dict) -> WebhookDeliveryService:
    """Wire the retry service to the worker's shared HTTP client."""
    return WebhookDeliveryService(
        store=DeliveryRecordStore(AsyncSessionLocal),
        dispatcher=WebhookDispatcher(client=ctx.get("http_client")),
    )


async def deliver_submission_webhook(ctx: dict, submission_id: str, form_id: str) -> dict:
    """Deliver one submission's webhook. Retries happen inside, not via ARQ."""
    log = logger.bind(submission_id=submission_id, form_id=form_id, job_try=ctx.get("job_try", 1))
    log.info("webhook_job_started")

    async with AsyncSessionLocal() as db:
        outcome = await trigger_webhook_delivery(
            db, build_delivery_service(ctx), submission_id, form_id
        )

    log.info("webhook_job_finished", status_code=outcome.status_code)
    return {"status_code": outcome.status_code, **outcome.body}


# Register functions for ARQ
ARQ_FUNCTIONS = [
    deliver_submission_webhook,
]


async def enqueue_webhook_delivery(submission_id: str, form_id: str) -> bool:
    """
    Queue a webhook delivery for a new submission.

    Returns False (and logs) if Redis is unavailable; the submission itself
    is already saved and is not affected.
    """
    try:
        redis = await create_pool(RedisSettings.from_dsn(settings.REDIS_URL))
        try:
            await redis.enqueue_job("deliver_submission_webhook", submission_id, form_id)
        finally:
            await redis.close()
    except Exception as e:
        logger.error("webhook_enqueue_failed", submission_id=submission_id, form_id=form_id, error=str(e))
        return False

    logger.info("webhook_enqueued", submission_id=submission_id, form_id=form_id)
    return True


async def main():
    """Run the worker using arq cli."""
    logger.info("worker_usage", command="arq app.worker.WorkerSettings", redis_url=settings.REDIS_URL)


class WorkerSettings:
    """Settings for ARQ worker - use with 'arq app.worker.WorkerSettings'"""
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    on_startup = startup
    on_shutdown = shutdown
    # Three attempts plus 7s of backoff, each bounded by the request timeout
    job_timeout = 120
    max_tries = 1
    functions = ARQ_FUNCTIONS


if __name__ == "__main__":
    asyncio.run(main())
