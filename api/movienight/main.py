"""FastAPI application entrypoint and health reporting utilities.

Invariants:
- Health detail is only exposed to authenticated callers or allowlisted hosts.
- Service errors reach clients as `{ok: false, error}` with a status derived from their kind.
"""

import ipaddress
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from movienight.api.deps import get_optional_identity
from movienight.api.router import api_router
from movienight.core.config import settings
from movienight.core.errors import ErrorKind, HouseholdNotFoundError, ServiceError
from movienight.core.observability import EventLogger, configure_logging
from movienight.core.security import Identity
from movienight.schema.base import ActionResult
from movienight.services.webhook_service import webhook_monitor

configure_logging(settings.log_level)
events = EventLogger("movienight.api")

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.MISSING_SCHEMA: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.WEBHOOK: status.HTTP_502_BAD_GATEWAY,
}

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_prefix)


@app.exception_handler(ServiceError)
async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        events.error("request_failed", path=request.url.path, kind=exc.kind.value, error=exc.message)
    body = ActionResult.failure(exc.message, exc.kind.value)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(HouseholdNotFoundError)
async def _household_missing_handler(request: Request, exc: HouseholdNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": "Household not found"})


def _summarize_webhooks(snapshot: dict[str, Any]) -> dict[str, Any]:
    """Condense webhook monitor state into health-friendly telemetry.

    Implementation notes:
    - Treat open circuits and repeated failures as degraded signals.
    - Preserve each webhook's last error to aid ops troubleshooting.
    """
    issues: list[dict[str, Any]] = []
    sources: dict[str, Any] = {}
    for source, payload in snapshot.items():
        circuit = payload.get("circuit", {})
        metrics = payload.get("metrics", {})
        remaining = float(circuit.get("remaining_cooldown") or 0.0)
        state = "ok"
        circuit_open = remaining > 0
        if circuit_open:
            issues.append({"source": source, "reason": "circuit_open", "remaining_cooldown": round(remaining, 2)})
            state = "degraded"
        last_error = metrics.get("last_error")
        if last_error:
            issues.append({"source": source, "reason": "last_error", "error": last_error})
            state = "degraded"
        failed = int(metrics.get("failed") or 0)
        if failed >= 3:
            issues.append({"source": source, "reason": "repeated_failures", "failed": failed})
            state = "degraded"
        sources[source] = {
            "state": state,
            "circuit_open": circuit_open,
            "circuit": circuit,
            "metrics": metrics,
        }
    return {"sources": sources, "issues": issues}


def _entry_matches(entry: str, candidate: str) -> bool:
    """Return True if an allowlist entry matches a candidate host/IP."""
    try:
        network = ipaddress.ip_network(entry, strict=False)
        return ipaddress.ip_address(candidate) in network
    except ValueError:
        return entry.casefold() == candidate.casefold()


def _ip_or_host_allowlisted(request: Request) -> bool:
    if not settings.health_allowlist:
        return False
    candidates: list[str] = []
    if request.client and request.client.host:
        candidates.append(request.client.host)
    host_header = request.headers.get("host")
    if host_header:
        candidates.append(host_header.split(":")[0])
    return any(
        entry and _entry_matches(entry, candidate)
        for candidate in candidates
        for entry in settings.health_allowlist
    )


def _can_view_health_detail(request: Request, identity: Identity | None) -> bool:
    if identity:
        return True
    return _ip_or_host_allowlisted(request)


@app.get("/health", tags=["internal"])
@app.get(f"{settings.api_prefix}/health", tags=["internal"])
async def health(request: Request, identity: Identity | None = Depends(get_optional_identity)) -> dict[str, Any]:
    """Return health status and optionally include webhook telemetry."""
    if not _can_view_health_detail(request, identity):
        return {"status": "ok"}

    snapshot = await webhook_monitor.snapshot()
    telemetry = _summarize_webhooks(snapshot)
    overall = "ok" if not telemetry["issues"] else "degraded"
    return {"status": overall, "webhooks": telemetry}
