"""
Webhook payload construction.

Maps a form + submission to the JSON body sent to the form owner's endpoint.
Pure: no I/O, and the same inputs always serialize to the same bytes.
"""
from app.models.form import Form
from app.models.submission import FormSubmission
from app.schemas.webhook import SubmissionPayload


def _field_labels(form: Form) -> dict[str, str]:
    """Map field id -> label for fields that have both."""
    labels = {}
    for field in form.fields if isinstance(form.fields, list) else []:
        if isinstance(field, dict) and field.get("id") and field.get("label"):
            labels[str(field["id"])] = str(field["label"])
    return labels


def build_payload(
    form: Form,
    submission: FormSubmission,
    use_field_labels: bool = False
) -> SubmissionPayload:
    """
    Build the outbound payload for a submission.

    Answers are copied as-is under their original keys. With
    use_field_labels, keys that match a form field id are replaced by that
    field's label (unknown keys are left alone); if two answers end up
    with the same label the later one wins.

    Args:
        form: Form the submission belongs to (form.id == submission.form_id)
        submission: Submission being delivered
        use_field_labels: Rename field ids to human-readable labels

    Returns:
        SubmissionPayload
    """
    answers = submission.submission_data or {}

    if use_field_labels:
        labels = _field_labels(form)
        data = {labels.get(key, key): value for key, value in answers.items()}
    else:
        data = dict(answers)

    return SubmissionPayload(
        form_id=str(form.id),
        submission_id=str(submission.id),
        submitted_at=submission.submitted_at,
        form_title=form.title or "",
        data=data,
    )


def payload_to_json(payload: SubmissionPayload) -> dict:
    """JSON-ready dict of the payload (datetimes as ISO-8601 strings)."""
    return payload.model_dump(mode="json")
