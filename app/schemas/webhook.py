"""
Pydantic schemas for webhook delivery.

Covers the form's webhook configuration snapshot, the outbound wire
payload, dispatcher/orchestrator results and the API request/response
bodies.
"""
from datetime import datetime
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from app.services.url_policy import sanitize_headers


WebhookMethod = Literal["POST", "PUT", "PATCH"]


class FileReference(BaseModel):
    """Uploaded file answer. Storage keys (storagePath, publicUrl, ...) pass through as extras."""
    model_config = ConfigDict(extra="allow", frozen=True)

    name: str


# A submitter's raw answer. Anything else JSON-shaped is carried unchanged.
FieldValue = Union[str, list[str], FileReference, JsonValue]


class WebhookConfig(BaseModel):
    """
    Snapshot of a form's webhook settings.

    Loaded once when a delivery is triggered and reused for every attempt,
    so edits made to the form mid-delivery do not affect it.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    url: str | None = None
    method: WebhookMethod = "POST"
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, value):
        if not value:
            return "POST"
        return str(value).upper()

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.url)

    @classmethod
    def from_form(cls, form) -> "WebhookConfig":
        """Build a snapshot from a Form row."""
        return cls(
            enabled=bool(form.webhook_enabled),
            url=form.webhook_url or None,
            method=form.webhook_method or "POST",
            headers=sanitize_headers(form.webhook_headers or {}),
        )


class SubmissionPayload(BaseModel):
    """Body POSTed to the user's endpoint."""
    model_config = ConfigDict(frozen=True)

    form_id: str
    submission_id: str
    submitted_at: datetime
    form_title: str
    data: dict[str, FieldValue]


class DispatchResult(BaseModel):
    """Outcome of a single outbound HTTP call."""
    ok: bool
    status_code: int | None = None
    reason: str | None = None
    body_text: str | None = None
    error: str | None = None


class DeliveryResult(BaseModel):
    """Outcome of a full delivery sequence."""
    success: bool
    final_status_code: int | None = None
    error: str | None = None
    attempts: int = 0


# ============================================
# API request/response models
# ============================================

class DeliverWebhookRequest(BaseModel):
    """Request body for the delivery trigger. Both ids are checked by the trigger itself."""
    submission_id: str | None = None
    form_id: str | None = None


class WebhookTestRequest(BaseModel):
    """Request body for a one-off test delivery from the settings screen."""
    webhook_url: str | None = None
    webhook_method: str = "POST"
    webhook_headers: dict[str, str] = Field(default_factory=dict)


class WebhookDeliveryResponse(BaseModel):
    """One delivery attempt, as shown in the deliveries table."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    form_id: str
    submission_id: str
    webhook_url: str
    status: str
    attempt_count: int
    response_code: int | None = None
    response_body: str | None = None
    error_message: str | None = None
    delivered_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("status", mode="before")
    @classmethod
    def status_value(cls, value):
        return getattr(value, "value", value)


class TriggerResponse(BaseModel):
    """Status code and JSON body returned by the delivery trigger."""
    status_code: int
    body: dict
