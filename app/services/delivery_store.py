"""
Delivery Record Store

Persists webhook delivery attempts to webhook_deliveries. Each attempt is
inserted as a pending row and later updated once, by its row id, to
success or failed. Nothing here deletes rows.

Writes are best-effort: a database error (or a database that cannot be
reached at all) is logged and reported back as None/False, and the
delivery carries on without its audit row.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.logging_config import get_logger
from app.models.webhook import WebhookDelivery, DeliveryStatus


# Drivers such as asyncpg raise plain OSError subclasses when the server is unreachable
STORE_ERRORS = (SQLAlchemyError, OSError)


def truncate_body(body: str | None, limit: int) -> str | None:
    """Keep the first `limit` characters of a response body."""
    if body is None:
        return None
    return body[:limit]


class DeliveryRecordStore:
    """SQLAlchemy-backed audit log of webhook delivery attempts."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        body_limit: int | None = None
    ):
        self.session_factory = session_factory
        self.body_limit = body_limit if body_limit is not None else settings.WEBHOOK_RESPONSE_BODY_LIMIT

    async def create_attempt(
        self,
        form_id: str,
        submission_id: str,
        webhook_url: str,
        attempt_count: int
    ) -> str | None:
        """
        Insert a pending row for an attempt that is about to start.

        Returns:
            The new row's id, or None if the write failed
        """
        log = get_logger(form_id=form_id, submission_id=submission_id, attempt=attempt_count)
        delivery_id = str(uuid.uuid4())
        delivery = WebhookDelivery(
            id=delivery_id,
            form_id=form_id,
            submission_id=submission_id,
            webhook_url=webhook_url,
            status=DeliveryStatus.PENDING,
            attempt_count=attempt_count,
        )
        try:
            async with self.session_factory() as db:
                db.add(delivery)
                await db.commit()
        except STORE_ERRORS:
            log.error("delivery_log_insert_failed", exc_info=True)
            return None
        return delivery_id

    async def _finish_attempt(self, delivery_id: str, **values) -> bool:
        # Only pending rows are touched, so a finished attempt never changes again.
        log = get_logger(delivery_id=delivery_id)
        stmt = (
            update(WebhookDelivery)
            .where(
                WebhookDelivery.id == delivery_id,
                WebhookDelivery.status == DeliveryStatus.PENDING,
            )
            .values(**values)
        )
        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                await db.commit()
        except STORE_ERRORS:
            log.error("delivery_log_update_failed", status=values.get("status"), exc_info=True)
            return False

        if result.rowcount == 0:
            log.warning("delivery_log_row_missing", status=values.get("status"))
            return False
        return True

    async def mark_success(
        self,
        delivery_id: str,
        response_code: int | None,
        response_body: str | None,
        delivered_at: datetime | None = None
    ) -> bool:
        """Record a delivered attempt."""
        return await self._finish_attempt(
            delivery_id,
            status=DeliveryStatus.SUCCESS,
            response_code=response_code,
            response_body=truncate_body(response_body, self.body_limit),
            delivered_at=delivered_at or datetime.now(timezone.utc),
        )

    async def mark_failed(
        self,
        delivery_id: str,
        response_code: int | None,
        response_body: str | None,
        error_message: str | None
    ) -> bool:
        """Record a failed attempt with whatever response details exist."""
        return await self._finish_attempt(
            delivery_id,
            status=DeliveryStatus.FAILED,
            response_code=response_code,
            response_body=truncate_body(response_body, self.body_limit),
            error_message=error_message,
        )

    async def list_for_submission(self, submission_id: str) -> list[WebhookDelivery]:
        """All attempts for a submission, in attempt order."""
        stmt = (
            select(WebhookDelivery)
            .where(WebhookDelivery.submission_id == submission_id)
            .order_by(WebhookDelivery.attempt_count)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def list_for_form(self, form_id: str, limit: int = 20) -> list[WebhookDelivery]:
        """Most recent attempts for a form, newest first."""
        stmt = (
            select(WebhookDelivery)
            .where(WebhookDelivery.form_id == form_id)
            .order_by(WebhookDelivery.created_at.desc(), WebhookDelivery.attempt_count.desc())
            .limit(limit)
        )
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())
