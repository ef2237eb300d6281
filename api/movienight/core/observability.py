"""Structured event logging, secret redaction, and webhook call tracking."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, DefaultDict


LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"

_URL_USERINFO_RE = re.compile(r"([a-z][a-z0-9+.-]*://)([^@/\s]+)@", re.IGNORECASE)
_QUERY_SECRET_RE = re.compile(
    r"(?i)\b(token|secret|password|api_key|apikey|access_token|key|sig|signature)=([^&\s\"']+)"
)
_AUTH_SCHEME_RE = re.compile(r"(?i)\b(bearer|basic)(\s+)([A-Za-z0-9._~+/=-]+)")


def configure_logging(level: str = "INFO") -> None:
    """Apply a log level to the root logger."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def redact_secrets(text: str) -> str:
    """Redact credentials embedded in URLs, query strings, and auth headers."""
    if not text:
        return text
    redacted = _URL_USERINFO_RE.sub(r"\1***@", text)
    redacted = _QUERY_SECRET_RE.sub(r"\1=***", redacted)
    redacted = _AUTH_SCHEME_RE.sub(r"\1\2***", redacted)
    return redacted


class EventLogger:
    """Leveled, structured event sink writing one JSON object per event."""

    def __init__(self, name: str | logging.Logger) -> None:
        self.logger = name if isinstance(name, logging.Logger) else logging.getLogger(name)

    def emit(self, level: int, event: str, **fields: Any) -> None:
        if not self.logger.isEnabledFor(level):
            return
        payload = {"event": event, **fields}
        self.logger.log(level, redact_secrets(json.dumps(payload, default=str)))

    def debug(self, event: str, **fields: Any) -> None:
        self.emit(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self.emit(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.emit(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.emit(logging.ERROR, event, **fields)


class CircuitOpenError(Exception):
    """Raised when a webhook circuit is open and calls are temporarily blocked."""


@dataclass
class CircuitBreakerState:
    """Track per-webhook failure streaks and cooldown windows."""
    threshold: int = 3
    base_backoff_seconds: float = 15.0
    max_backoff_seconds: float = 300.0
    failure_streak: int = 0
    open_until: float = 0.0
    current_backoff: float = field(init=False)
    opened_count: int = 0

    def __post_init__(self) -> None:
        self.current_backoff = self.base_backoff_seconds

    def can_call(self) -> bool:
        return time.monotonic() >= self.open_until

    def remaining_cooldown(self) -> float:
        if self.can_call():
            return 0.0
        return self.open_until - time.monotonic()

    def record_success(self) -> None:
        self.failure_streak = 0
        self.open_until = 0.0
        self.current_backoff = self.base_backoff_seconds

    def record_failure(self) -> None:
        """Advance circuit state and open on threshold breaches."""
        self.failure_streak += 1
        if self.failure_streak < self.threshold:
            return
        self.open_until = time.monotonic() + self.current_backoff
        self.failure_streak = 0
        self.opened_count += 1
        self.current_backoff = min(self.current_backoff * 2, self.max_backoff_seconds)

    def snapshot(self) -> dict[str, Any]:
        return {
            "failure_streak": self.failure_streak,
            "open_until": self.open_until,
            "remaining_cooldown": self.remaining_cooldown(),
            "current_backoff": self.current_backoff,
            "opened_count": self.opened_count,
        }


@dataclass
class CallMetrics:
    """Aggregated counters for one webhook."""
    started: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    last_latency_ms: float | None = None
    last_error: str | None = None


class WebhookMonitor:
    """Track outbound webhook latency and failures and enforce circuit breaking.

    Implementation notes:
    - Metrics are process-local and only feed the health endpoint.
    - Error text is redacted before it is stored or logged.
    """

    def __init__(
        self,
        *,
        circuit_threshold: int = 3,
        base_backoff_seconds: float = 15.0,
        max_backoff_seconds: float = 300.0,
        events: EventLogger | None = None,
    ) -> None:
        self._metrics: DefaultDict[str, CallMetrics] = defaultdict(CallMetrics)
        self._circuits: DefaultDict[str, CircuitBreakerState] = defaultdict(
            lambda: CircuitBreakerState(
                threshold=circuit_threshold,
                base_backoff_seconds=base_backoff_seconds,
                max_backoff_seconds=max_backoff_seconds,
            )
        )
        self._lock = asyncio.Lock()
        self.events = events or EventLogger("movienight.webhooks")

    async def track(self, target: str, func: Callable[[], Awaitable[Any]]) -> Any:
        """Run a webhook call while recording metrics and circuit state."""
        async with self._lock:
            circuit = self._circuits[target]
            metrics = self._metrics[target]
            if not circuit.can_call():
                remaining = circuit.remaining_cooldown()
                metrics.skipped += 1
                self.events.warning("webhook_circuit_open", target=target, remaining_cooldown=round(remaining, 2))
                raise CircuitOpenError(f"{target} circuit open for {remaining:.2f}s")
            metrics.started += 1

        start = time.monotonic()
        try:
            result = await func()
        except Exception as exc:  # noqa: BLE001
            latency_ms = (time.monotonic() - start) * 1000
            error = redact_secrets(str(exc)) or exc.__class__.__name__
            async with self._lock:
                metrics = self._metrics[target]
                metrics.failed += 1
                metrics.last_latency_ms = latency_ms
                metrics.last_error = error
                self._circuits[target].record_failure()
                circuit_state = self._circuits[target].snapshot()
            self.events.warning(
                "webhook_failure",
                target=target,
                error=error,
                latency_ms=round(latency_ms, 2),
                circuit=circuit_state,
            )
            raise

        latency_ms = (time.monotonic() - start) * 1000
        async with self._lock:
            metrics = self._metrics[target]
            metrics.succeeded += 1
            metrics.last_latency_ms = latency_ms
            metrics.last_error = None
            self._circuits[target].record_success()
        self.events.info("webhook_success", target=target, latency_ms=round(latency_ms, 2))
        return result

    async def snapshot(self) -> dict[str, Any]:
        """Return a serializable view of every tracked webhook."""
        async with self._lock:
            return {
                target: {
                    "circuit": self._circuits[target].snapshot(),
                    "metrics": {
                        "started": metrics.started,
                        "succeeded": metrics.succeeded,
                        "failed": metrics.failed,
                        "skipped": metrics.skipped,
                        "last_latency_ms": metrics.last_latency_ms,
                        "last_error": metrics.last_error,
                    },
                }
                for target, metrics in self._metrics.items()
            }

    async def reset(self) -> None:
        async with self._lock:
            self._metrics.clear()
            self._circuits.clear()
