"""Outbound delivery to the external recommendation workflow webhooks."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from movienight.core.config import settings
from movienight.core.observability import CircuitOpenError, EventLogger, WebhookMonitor, redact_secrets

events = EventLogger("movienight.services.webhooks")
webhook_monitor = WebhookMonitor(circuit_threshold=settings.webhook_circuit_threshold)

CHAT = "chat"
LOG_MOVIE = "log_movie"
BLOCK_RECOMMENDATION = "block_recommendation"


class WebhookError(Exception):
    """Any failure reaching a webhook; the message is for server logs only."""


@dataclass(slots=True)
class WebhookResponse:
    status_code: int
    text: str

    def json(self) -> Any:
        """Decode the body; raises ValueError when it is not JSON."""
        return json.loads(self.text)


def webhook_url(target: str) -> str | None:
    return {
        CHAT: settings.chat_webhook_url,
        LOG_MOVIE: settings.log_movie_webhook_url,
        BLOCK_RECOMMENDATION: settings.block_recommendation_webhook_url,
    }.get(target)


async def _post(url: str, payload: dict[str, Any]) -> httpx.Response:
    # Only connection failures are retried; a slow or failing workflow is not re-run.
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(settings.webhook_max_attempts),
        wait=wait_exponential_jitter(initial=0.5, max=2),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    ):
        with attempt:
            async with httpx.AsyncClient(timeout=settings.webhook_timeout_seconds) as client:
                return await client.post(url, json=payload, headers={"Content-Type": "application/json"})
    raise WebhookError("Unreachable")


async def deliver(
    target: str,
    url: str,
    payload: dict[str, Any],
    *,
    monitor: WebhookMonitor | None = None,
) -> WebhookResponse:
    """POST a JSON payload to a webhook and return its body when the status is 2xx."""
    monitor = monitor or webhook_monitor
    payload_bytes = len(json.dumps(payload, default=str).encode("utf-8"))

    async def _call() -> WebhookResponse:
        try:
            response = await _post(url, payload)
        except httpx.HTTPError as exc:
            raise WebhookError(f"{exc.__class__.__name__}: {exc}") from exc
        text = response.text
        if not response.is_success:
            raise WebhookError(text or f"Webhook error: {response.status_code}")
        return WebhookResponse(status_code=response.status_code, text=text)

    events.debug("webhook_dispatch", target=target, url=redact_secrets(url), payload_bytes=payload_bytes)
    try:
        return await monitor.track(target, _call)
    except CircuitOpenError as exc:
        raise WebhookError(str(exc)) from exc
