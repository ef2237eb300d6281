from __future__ import annotations

import pytest
from sqlalchemy import func, select

from movienight.core.config import settings
from movienight.models.watch import HouseholdBlockedMovie, HouseholdWatchLog
from movienight.services import watch_service
from movienight.tests.utils import DummyAsyncClient, create_household_for


@pytest.mark.asyncio
async def test_log_movie_records_watch(auth_client, session):
    context = await create_household_for(session)

    response = await auth_client.post(
        "/api/log-movie",
        json={"movieId": "tt0120630", "watchDate": "2025-10-17", "watchedBy": ["Mom", "Kai"], "rating": 8.5},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    entry = (await session.execute(select(HouseholdWatchLog))).scalar_one()
    assert entry.household_id == context.household_id
    assert entry.movie_id == "tt0120630"
    assert entry.watched_by == ["Mom", "Kai"]
    assert entry.rating == 8.5
    assert entry.logged_by == settings.basic_auth_default_user_id


@pytest.mark.asyncio
async def test_log_movie_requires_movie_id(auth_client, session):
    await create_household_for(session)

    response = await auth_client.post("/api/log-movie", json={"rating": 4})

    assert response.status_code == 400
    assert response.json()["error"] == "movieId is required"


@pytest.mark.asyncio
async def test_log_movie_rejects_out_of_range_rating(auth_client, session):
    await create_household_for(session)

    response = await auth_client.post("/api/log-movie", json={"movieId": "tt1", "rating": 11})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_log_movie_forwards_to_webhook(auth_client, session, monkeypatch):
    context = await create_household_for(session)
    monkeypatch.setattr(settings, "log_movie_webhook_url", "https://hooks.example.com/log")
    dummy = DummyAsyncClient.install(monkeypatch, (200, "logged"))

    response = await auth_client.post("/api/log-movie", json={"movieId": "tt1", "watchedBy": ["Kai"]})

    assert response.status_code == 200
    sent = dummy.calls[0]["json"]
    assert sent["movieId"] == "tt1"
    assert sent["householdId"] == str(context.household_id)
    assert sent["watchedBy"] == ["Kai"]


@pytest.mark.asyncio
async def test_log_movie_webhook_failure_is_generic(auth_client, session, monkeypatch):
    await create_household_for(session)
    monkeypatch.setattr(settings, "log_movie_webhook_url", "https://hooks.example.com/log")
    DummyAsyncClient.install(monkeypatch, (500, "stack trace with secrets"))

    response = await auth_client.post("/api/log-movie", json={"movieId": "tt1"})

    assert response.status_code == 502
    assert response.json() == {"ok": False, "error": "Unable to log the movie right now", "kind": "webhook"}
    count = await session.scalar(select(func.count()).select_from(HouseholdWatchLog))
    assert count == 0


@pytest.mark.asyncio
async def test_block_recommendation_is_idempotent(auth_client, session):
    context = await create_household_for(session)

    for _ in range(2):
        response = await auth_client.post(
            "/api/recommendations/do-not-recommend",
            json={"movieId": "tt0317219", "householdId": str(context.household_id)},
        )
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    rows = (await session.execute(select(HouseholdBlockedMovie))).scalars().all()
    assert [(row.movie_id, row.household_id) for row in rows] == [("tt0317219", context.household_id)]
    assert await watch_service.list_blocked(session, context.household_id) == ["tt0317219"]


@pytest.mark.asyncio
async def test_block_recommendation_webhook_failure(auth_client, session, monkeypatch):
    await create_household_for(session)
    monkeypatch.setattr(settings, "block_recommendation_webhook_url", "https://hooks.example.com/block")
    DummyAsyncClient.install(monkeypatch, (404, "no such workflow"))

    response = await auth_client.post("/api/recommendations/do-not-recommend", json={"movieId": "tt1"})

    assert response.status_code == 502
    assert response.json()["error"] == "Unable to update preferences"


@pytest.mark.asyncio
async def test_block_requires_movie_id(auth_client, session):
    await create_household_for(session)

    response = await auth_client.post("/api/recommendations/do-not-recommend", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "movieId is required"
