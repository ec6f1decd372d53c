"""HTTP boundary: delivery trigger, test send and delivery history."""
import httpx
import pytest

from app.database import get_db
from app.dependencies.webhooks import get_delivery_store, get_webhook_dispatcher, get_webhook_service
from app.main import app
from app.routes import webhooks as webhook_routes
from app.sentry_config import add_context
from app.services.webhook_dispatcher import WebhookDispatcher
from app.services.webhook_service import WebhookDeliveryService

from conftest import FORM_ID, SUBMISSION_ID, FakeDispatcher, http_error, ok


@pytest.fixture
def dispatcher():
    return FakeDispatcher([])


@pytest.fixture
async def client(session_factory, store, sleep, dispatcher):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_delivery_store] = lambda: store
    app.dependency_overrides[get_webhook_service] = lambda: WebhookDeliveryService(
        store=store, dispatcher=dispatcher, max_attempts=3, base_delay_ms=1000, sleep=sleep
    )

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_deliver_requires_both_ids(client):
    response = await client.post("/api/webhooks/deliver", json={"form_id": FORM_ID})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing submission_id or form_id"}


async def test_deliver_disabled_form(client, seed, form, submission):
    form.webhook_enabled = False
    await seed(form, submission)

    response = await client.post(
        "/api/webhooks/deliver", json={"submission_id": SUBMISSION_ID, "form_id": FORM_ID}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Webhooks not enabled"}


async def test_deliver_success_after_retries(client, seed, form, submission, dispatcher, sleep):
    await seed(form, submission)
    dispatcher.results = [http_error(500), http_error(500), ok(200)]

    response = await client.post(
        "/api/webhooks/deliver", json={"submission_id": SUBMISSION_ID, "form_id": FORM_ID}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Webhook delivered successfully", "status": 200}
    assert sleep.delays == [1.0, 2.0]


async def test_deliver_failure(client, seed, form, submission, dispatcher):
    await seed(form, submission)
    dispatcher.results = [http_error(503)] * 3

    response = await client.post(
        "/api/webhooks/deliver", json={"submission_id": SUBMISSION_ID, "form_id": FORM_ID}
    )

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Webhook delivery failed"
    assert "Failed after 3 attempts" in body["details"]


async def test_deliver_unexpected_error_is_500(client, seed, form, submission, store, sleep):
    class ExplodingDispatcher:
        async def send(self, url, method, headers, payload):
            raise RuntimeError("dispatcher exploded")

    await seed(form, submission)
    app.dependency_overrides[get_webhook_service] = lambda: WebhookDeliveryService(
        store=store, dispatcher=ExplodingDispatcher(), sleep=sleep
    )

    response = await client.post(
        "/api/webhooks/deliver", json={"submission_id": SUBMISSION_ID, "form_id": FORM_ID}
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


async def test_unexpected_error_is_reported_with_submission_context(client, seed, form, submission, store, sleep, monkeypatch):
    class ExplodingDispatcher:
        async def send(self, url, method, headers, payload):
            raise RuntimeError("dispatcher exploded")

    reported = []
    monkeypatch.setattr(
        webhook_routes, "capture_exception",
        lambda: reported.append(add_context({}, None))
    )
    await seed(form, submission)
    app.dependency_overrides[get_webhook_service] = lambda: WebhookDeliveryService(
        store=store, dispatcher=ExplodingDispatcher(), sleep=sleep
    )

    response = await client.post(
        "/api/webhooks/deliver", json={"submission_id": SUBMISSION_ID, "form_id": FORM_ID}
    )

    assert response.status_code == 500
    assert reported == [{"tags": {"form_id": FORM_ID, "submission_id": SUBMISSION_ID}}]


async def test_delivery_history_for_form(client, seed, form, submission, dispatcher):
    await seed(form, submission)
    dispatcher.results = [http_error(500), ok(200)]
    await client.post("/api/webhooks/deliver", json={"submission_id": SUBMISSION_ID, "form_id": FORM_ID})

    response = await client.get(f"/api/forms/{FORM_ID}/webhook-deliveries")

    assert response.status_code == 200
    rows = response.json()
    assert len(rows) == 2
    assert {row["status"] for row in rows} == {"failed", "success"}
    assert all(row["webhook_url"] == "https://example.com/hook" for row in rows)


async def test_delivery_history_limit_is_bounded(client):
    response = await client.get(f"/api/forms/{FORM_ID}/webhook-deliveries", params={"limit": 500})

    assert response.status_code == 422


async def test_test_webhook_requires_url(client):
    response = await client.post("/api/webhooks/test", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "webhook_url is required"}


async def test_test_webhook_sends_sample_once(client):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text="thanks")

    mock_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_webhook_dispatcher] = lambda: WebhookDispatcher(client=mock_client)

    response = await client.post("/api/webhooks/test", json={
        "webhook_url": "https://example.com/hook",
        "webhook_method": "POST",
        "webhook_headers": {"X-Token": "abc"},
    })

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": 200, "statusText": "OK", "response": "thanks"}
    assert len(seen) == 1
    assert seen[0].headers["x-token"] == "abc"
    assert b'"test": true' in seen[0].content


async def test_test_webhook_reports_transport_failure(client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    mock_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_webhook_dispatcher] = lambda: WebhookDispatcher(client=mock_client)

    response = await client.post("/api/webhooks/test", json={"webhook_url": "https://example.com/hook"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "connection refused"}


async def test_test_webhook_rejects_private_targets(client):
    response = await client.post("/api/webhooks/test", json={"webhook_url": "https://127.0.0.1/admin"})

    assert response.status_code == 400
