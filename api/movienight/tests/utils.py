"""Shared helpers for API tests."""

from __future__ import annotations

import base64
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from movienight.core.config import settings
from movienight.core.security import Identity
from movienight.services import filter_service, household_service
from movienight.services.household_service import ActiveHouseholdContext


def basic_auth_headers(username: str | None = None, password: str | None = None) -> dict[str, str]:
    user = settings.basic_auth_user if username is None else username
    secret = settings.basic_auth_password if password is None else password
    token = base64.b64encode(f"{user}:{secret}".encode("utf-8")).decode("ascii")
    return {"Authorization": f"Basic {token}"}


def default_identity() -> Identity:
    return Identity(
        id=settings.basic_auth_default_user_id,
        email=settings.basic_auth_default_email,
        username=settings.basic_auth_user,
    )


async def create_household_for(
    session: AsyncSession,
    identity: Identity | None = None,
    *,
    name: str = "Test Family",
    display_name: str = "Parent",
    with_defaults: bool = False,
) -> ActiveHouseholdContext:
    """Create a household with the identity as its only member and return its resolved context."""
    identity = identity or default_identity()
    await household_service.create_household(session, name, identity=identity, display_name=display_name)
    context = await household_service.require_active_household(session, identity)
    if with_defaults:
        await filter_service.reset_filters(session, context.household_id)
    return context


class DummyAsyncClient:
    """Stand-in for httpx.AsyncClient that answers webhook posts from a queue of outcomes."""

    outcomes: list[Any] = []
    calls: list[dict[str, Any]] = []

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self.kwargs = kwargs

    async def __aenter__(self) -> "DummyAsyncClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def post(self, url: str, json: Any = None, headers: dict[str, str] | None = None) -> httpx.Response:
        DummyAsyncClient.calls.append({"url": url, "json": json, "headers": headers})
        outcome = DummyAsyncClient.outcomes.pop(0) if DummyAsyncClient.outcomes else (200, "{}")
        if isinstance(outcome, Exception):
            raise outcome
        status_code, body = outcome
        return httpx.Response(status_code, text=body, request=httpx.Request("POST", url))

    @classmethod
    def install(cls, monkeypatch, *outcomes: Any) -> type["DummyAsyncClient"]:
        cls.outcomes = list(outcomes)
        cls.calls = []
        monkeypatch.setattr("movienight.services.webhook_service.httpx.AsyncClient", cls)
        return cls
