"""
Webhook Delivery Model

Audit log of outbound webhook delivery attempts. One row per HTTP attempt;
a delivery that retries leaves an ordered sequence of rows for the
submission, numbered by attempt_count.
"""
import enum
import uuid
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, Text, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin


class DeliveryStatus(str, enum.Enum):
    """Attempt status. Moves pending -> success or pending -> failed, once."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class WebhookDelivery(Base, TimestampMixin):
    """Webhook delivery attempt."""
    __tablename__ = "webhook_deliveries"
    __table_args__ = (
        UniqueConstraint("submission_id", "attempt_count", name="uq_webhook_deliveries_submission_attempt"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    form_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    submission_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    webhook_url: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[DeliveryStatus] = mapped_column(
        SQLEnum(DeliveryStatus, native_enum=False, length=20,
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DeliveryStatus.PENDING
    )
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    response_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    response_body: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return (
            f"<WebhookDelivery(submission_id={self.submission_id}, "
            f"attempt={self.attempt_count}, status={self.status})>"
        )
