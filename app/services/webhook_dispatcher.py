"""
Webhook Dispatcher

Performs exactly one outbound HTTP call and classifies the outcome.
Retrying is the caller's job (see webhook_service).
"""
import json
import time

import httpx

from app.config import settings
from app.logging_config import get_logger
from app.schemas.webhook import DispatchResult


class WebhookDispatcher:
    """
    Single-shot HTTP sender for webhook payloads.

    Pass an httpx.AsyncClient to share a connection pool (or a MockTransport
    in tests); without one, a short-lived client is opened per call.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.WEBHOOK_TIMEOUT_SECONDS

    @staticmethod
    def build_headers(custom_headers: dict[str, str] | None) -> httpx.Headers:
        """Content-Type: application/json, overridden by a caller header of the same name."""
        headers = httpx.Headers({"Content-Type": "application/json"})
        for key, value in (custom_headers or {}).items():
            headers[key] = value
        return headers

    async def _request(self, method: str, url: str, headers: httpx.Headers, body: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(
                method, url, content=body, headers=headers,
                timeout=self.timeout, follow_redirects=False
            )

        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=False) as client:
            return await client.request(method, url, content=body, headers=headers)

    async def send(
        self,
        url: str,
        method: str,
        headers: dict[str, str] | None,
        payload: dict
    ) -> DispatchResult:
        """
        Send payload as JSON.

        ok is True for any status in [200, 400). Error responses, network
        failures and timeouts come back as ok=False; nothing is raised.
        """
        log = get_logger(webhook_url=url, method=method)
        request_headers = self.build_headers(headers)
        body = json.dumps(payload)
        start_time = time.time()

        try:
            response = await self._request(method, url, request_headers, body)
        except httpx.TimeoutException as e:
            log.warning("webhook_request_timeout", timeout=self.timeout, error=repr(e))
            return DispatchResult(ok=False, error=f"Request timed out after {self.timeout}s")
        except Exception as e:
            log.warning("webhook_request_error", error=str(e), error_type=type(e).__name__)
            return DispatchResult(ok=False, error=str(e) or type(e).__name__)

        duration_ms = round((time.time() - start_time) * 1000, 2)
        body_text = response.text
        ok = 200 <= response.status_code < 400

        log.info(
            "webhook_request_completed",
            status_code=response.status_code,
            duration_ms=duration_ms,
            ok=ok
        )

        return DispatchResult(
            ok=ok,
            status_code=response.status_code,
            reason=response.reason_phrase,
            body_text=body_text,
            error=None if ok else f"HTTP {response.status_code}: {response.reason_phrase}",
        )
