import os

# Point settings at SQLite before any app module builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.pop("SENTRY_DSN", None)

from datetime import datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.models.base import Base
from app.models.form import Form
from app.models.submission import FormSubmission
from app.models.webhook import WebhookDelivery  # noqa: F401
from app.schemas.webhook import DispatchResult
from app.services.delivery_store import DeliveryRecordStore


FORM_ID = "3f1c2a9e-7b1d-4c55-9a40-2c7f0d3e8b11"
SUBMISSION_ID = "a8d4e6b2-51c3-4f0e-8e2a-9b7c6d5e4f30"
SUBMITTED_AT = datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc)


class FakeDispatcher:
    """Returns queued DispatchResults in order and records every call."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = []

    async def send(self, url, method, headers, payload):
        self.calls.append({"url": url, "method": method, "headers": headers, "payload": payload})
        return self.results.pop(0)


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers the requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


class UnreachableSession:
    """
    Session factory stand-in for a database server that refuses connections.

    asyncpg raises a plain ConnectionRefusedError, not a SQLAlchemy error,
    the first time the session needs a connection.
    """

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def add(self, instance):
        pass

    async def _connect(self, *args, **kwargs):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 5432)")

    execute = _connect
    commit = _connect


def ok(status=200, body="ok"):
    return DispatchResult(ok=True, status_code=status, reason="OK", body_text=body)


def http_error(status=500, body="boom"):
    return DispatchResult(
        ok=False, status_code=status, reason="Internal Server Error",
        body_text=body, error=f"HTTP {status}: Internal Server Error"
    )


def network_error(message="[Errno -2] Name or service not known"):
    return DispatchResult(ok=False, error=message)


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'formhook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return DeliveryRecordStore(session_factory)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def form():
    return Form(
        id=FORM_ID,
        title="Lead capture",
        fields=[
            {"id": "f_name", "label": "Full name", "type": "text"},
            {"id": "f_topics", "label": "Topics", "type": "checkbox"},
        ],
        webhook_enabled=True,
        webhook_url="https://example.com/hook",
        webhook_method="POST",
        webhook_headers={"Authorization": "Bearer X"},
    )


@pytest.fixture
def submission():
    return FormSubmission(
        id=SUBMISSION_ID,
        form_id=FORM_ID,
        submission_data={
            "f_name": "Asha Rao",
            "f_topics": ["pricing", "demo"],
            "f_cv": {"name": "cv.pdf", "publicUrl": "https://cdn.example.com/cv.pdf"},
        },
        submitted_at=SUBMITTED_AT,
    )


@pytest.fixture
async def seed(session_factory):
    """Insert a form (and optionally its submission) into the test database."""
    async def _seed(form, submission=None):
        async with session_factory() as db:
            db.add(form)
            if submission is not None:
                db.add(submission)
            await db.commit()
    return _seed
