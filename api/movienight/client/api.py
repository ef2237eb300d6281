"""Thin async HTTP client for the Movie Night API."""

from __future__ import annotations

from datetime import date
from typing import Any

import httpx

from movienight.core.observability import EventLogger
from movienight.schema.base import ActionResult
from movienight.schema.chat import ChatHistory, ChatReply, HistoryEntry
from movienight.schema.household import HouseholdContextRead, HouseholdMemberRead
from movienight.schema.preferences import FilterView, PreferencesView
from movienight.schema.views import HomeView

NETWORK_ERROR = "Could not reach the Movie Night service"


class ApiError(Exception):
    """Non-2xx response from a read endpoint or from chat."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text or f"Request failed ({response.status_code})"


class MovieNightClient:
    """Wrap every API endpoint; mutations answer with an ActionResult instead of raising."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        username: str | None = None,
        password: str | None = None,
        api_prefix: str = "/api",
        timeout: float = 20.0,
        http_client: httpx.AsyncClient | None = None,
        events: EventLogger | None = None,
    ) -> None:
        auth = httpx.BasicAuth(username, password) if username is not None else None
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, auth=auth, timeout=timeout)
        self.api_prefix = api_prefix.rstrip("/")
        self.events = events or EventLogger("movienight.client.api")

    async def __aenter__(self) -> "MovieNightClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.api_prefix}{path}"

    async def _get(self, path: str, *, headers: dict[str, str] | None = None) -> httpx.Response:
        response = await self._http.get(self._url(path), headers=headers)
        if response.status_code == httpx.codes.NOT_MODIFIED:
            return response
        if not response.is_success:
            raise ApiError(response.status_code, _error_text(response))
        return response

    async def _action(self, method: str, path: str, payload: dict[str, Any] | None = None) -> ActionResult:
        try:
            response = await self._http.request(method, self._url(path), json=payload)
        except httpx.HTTPError as exc:
            self.events.error("request_failed", method=method, path=path, error=str(exc))
            return ActionResult.failure(NETWORK_ERROR)
        if not response.is_success:
            error = _error_text(response)
            self.events.warning("action_rejected", method=method, path=path, status=response.status_code, error=error)
            return ActionResult.failure(error)
        try:
            return ActionResult.model_validate(response.json())
        except ValueError:
            return ActionResult.success()

    async def get_preferences(self, *, etag: str | None = None) -> tuple[PreferencesView | None, str | None]:
        """Fetch the preferences view; returns (None, etag) when it is unchanged."""
        headers = {"If-None-Match": etag} if etag else None
        response = await self._get("/preferences", headers=headers)
        new_etag = response.headers.get("etag", etag)
        if response.status_code == httpx.codes.NOT_MODIFIED:
            return None, new_etag
        return PreferencesView.model_validate(response.json()), new_etag

    async def update_filter(self, label_key: str, max_intensity: float, hard_no: bool) -> ActionResult:
        return await self._action(
            "PUT",
            "/preferences/filters",
            {"labelKey": label_key, "maxIntensity": max_intensity, "hardNo": hard_no},
        )

    async def add_filters(self, labels: list[str]) -> ActionResult:
        return await self._action("POST", "/preferences/filters", {"labels": labels})

    async def remove_filters(self, labels: list[str]) -> ActionResult:
        return await self._action("POST", "/preferences/filters/remove", {"labels": labels})

    async def reset_filters(self) -> ActionResult:
        return await self._action("POST", "/preferences/filters/reset")

    async def get_home(self) -> HomeView:
        response = await self._get("/home")
        return HomeView.model_validate(response.json())

    async def get_household(self) -> HouseholdContextRead:
        response = await self._get("/households/me")
        return HouseholdContextRead.model_validate(response.json())

    async def list_members(self) -> list[HouseholdMemberRead]:
        response = await self._get("/households/me/members")
        return [HouseholdMemberRead.model_validate(item) for item in response.json()]

    async def chat_history(self) -> ChatHistory:
        response = await self._get("/chat/history")
        return ChatHistory.model_validate(response.json())

    async def chat(
        self,
        message: str,
        *,
        household_id: str | None = None,
        filters: list[FilterView] | None = None,
        history: list[HistoryEntry] | None = None,
    ) -> ChatReply:
        payload: dict[str, Any] = {"message": message, "householdId": household_id}
        if filters is not None:
            payload["filters"] = [item.model_dump(by_alias=True) for item in filters]
        if history is not None:
            payload["history"] = [item.model_dump(by_alias=True) for item in history]
        response = await self._http.post(self._url("/chat"), json=payload)
        if not response.is_success:
            raise ApiError(response.status_code, _error_text(response))
        return ChatReply.model_validate(response.json())

    async def log_movie(
        self,
        movie_id: str,
        *,
        watch_date: date | None = None,
        watched_by: list[str] | None = None,
        rating: float | None = None,
        household_id: str | None = None,
    ) -> ActionResult:
        return await self._action(
            "POST",
            "/log-movie",
            {
                "movieId": movie_id,
                "watchDate": watch_date.isoformat() if watch_date else None,
                "watchedBy": watched_by,
                "rating": rating,
                "householdId": household_id,
            },
        )

    async def block_recommendation(self, movie_id: str, *, household_id: str | None = None) -> ActionResult:
        return await self._action(
            "POST",
            "/recommendations/do-not-recommend",
            {"movieId": movie_id, "householdId": household_id},
        )
