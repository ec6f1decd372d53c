"""
Form model.

Only the columns the webhook pipeline reads are mapped here; the form
editor owns the rest of the row.
"""
import uuid
from sqlalchemy import String, Text, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base, TimestampMixin


class Form(Base, TimestampMixin):
    """A hosted form and its webhook settings."""
    __tablename__ = "forms"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    fields: Mapped[list | None] = mapped_column(JSON, nullable=True)  # [{id, label, type, ...}]

    webhook_enabled: Mapped[bool | None] = mapped_column(Boolean, default=False)
    webhook_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    webhook_method: Mapped[str | None] = mapped_column(String(10), nullable=True, default="POST")
    webhook_headers: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self):
        return f"<Form(id={self.id}, title={self.title}, webhook_enabled={self.webhook_enabled})>"
