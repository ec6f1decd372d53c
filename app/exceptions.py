"""
Client-facing errors raised while triggering a webhook delivery.

Each error carries the HTTP status and message returned to the caller.
None of them are retried and none of them write delivery rows.
"""


class WebhookTriggerError(Exception):
    """Base class for request errors at the delivery trigger."""
    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingIdentifiersError(WebhookTriggerError):
    default_message = "Missing submission_id or form_id"


class FormNotFoundError(WebhookTriggerError):
    status_code = 404
    default_message = "Form not found"


class SubmissionNotFoundError(WebhookTriggerError):
    status_code = 404
    default_message = "Submission not found"


class UnsafeWebhookURLError(WebhookTriggerError):
    default_message = "Invalid webhook URL - security policy violation"


class InvalidWebhookConfigError(WebhookTriggerError):
    default_message = "Invalid webhook configuration"
