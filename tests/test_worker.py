"""Background delivery job and enqueueing."""
import httpx

import app.worker as worker

from conftest import FORM_ID, SUBMISSION_ID


async def test_job_delivers_with_shared_client(monkeypatch, session_factory, store, seed, form, submission):
    await seed(form, submission)
    monkeypatch.setattr(worker, "AsyncSessionLocal", session_factory)
    received = []

    def handler(request):
        received.append(request)
        return httpx.Response(200, text="ok")

    ctx = {"http_client": httpx.AsyncClient(transport=httpx.MockTransport(handler))}

    result = await worker.deliver_submission_webhook(ctx, SUBMISSION_ID, FORM_ID)

    assert result == {"status_code": 200, "message": "Webhook delivered successfully", "status": 200}
    assert len(received) == 1
    [row] = await store.list_for_submission(SUBMISSION_ID)
    assert row.status.value == "success"


async def test_job_for_disabled_form_is_a_noop(monkeypatch, session_factory, seed, form, submission):
    form.webhook_enabled = False
    await seed(form, submission)
    monkeypatch.setattr(worker, "AsyncSessionLocal", session_factory)

    result = await worker.deliver_submission_webhook({}, SUBMISSION_ID, FORM_ID)

    assert result == {"status_code": 200, "message": "Webhooks not enabled"}


async def test_enqueue_reports_redis_failure(monkeypatch):
    async def no_redis(*args, **kwargs):
        raise ConnectionError("redis down")

    monkeypatch.setattr(worker, "create_pool", no_redis)

    assert await worker.enqueue_webhook_delivery(SUBMISSION_ID, FORM_ID) is False


async def test_enqueue_queues_delivery_job(monkeypatch):
    queued = []

    class FakeRedis:
        async def enqueue_job(self, name, *args):
            queued.append((name, args))

        async def close(self):
            pass

    async def fake_pool(*args, **kwargs):
        return FakeRedis()

    monkeypatch.setattr(worker, "create_pool", fake_pool)

    assert await worker.enqueue_webhook_delivery(SUBMISSION_ID, FORM_ID) is True
    assert queued == [("deliver_submission_webhook", (SUBMISSION_ID, FORM_ID))]
