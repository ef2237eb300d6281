from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from movienight.client.api import MovieNightClient
from movienight.client.chat import BLOCK_FAILED, LOG_FAILED, LOG_SAVED, SEND_FAILED, ChatSession
from movienight.client.preferences import PreferencesSession
from movienight.client.sync import SyncState
from movienight.schema.chat import ChatMessageRead, RecommendationMovie
from movienight.schema.preferences import FilterView
from movienight.services import filter_service
from movienight.tests.utils import create_household_for


def _texts(notifier) -> list[tuple[str, str]]:
    return [(toast.kind, toast.text) for toast in notifier.history]


def _mock_client(handler) -> MovieNightClient:
    transport = httpx.MockTransport(handler)
    return MovieNightClient(http_client=httpx.AsyncClient(transport=transport, base_url="http://testserver"))


@pytest.mark.asyncio
async def test_preferences_refresh_uses_etag(auth_client, session):
    await create_household_for(session, name="Park Family", with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))

    assert await prefs.refresh() is True
    assert prefs.household_name == "Park Family"
    assert len(prefs.items) == 6
    assert prefs.filters.state is SyncState.SETTLED

    assert await prefs.refresh() is False


@pytest.mark.asyncio
async def test_save_filter_commits_local_edit(auth_client, session):
    context = await create_household_for(session, with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))
    await prefs.refresh()

    prefs.set_intensity("scary", 12)
    assert next(item for item in prefs.items if item.label_key == "scary").max_intensity == 10
    prefs.set_intensity("scary", 2)

    assert await prefs.save_filter("scary") is True
    assert _texts(prefs.notifier) == [("success", "Scary saved")]
    assert next(item for item in prefs.filters.settled if item.label_key == "scary").max_intensity == 2

    rows = await filter_service.list_filters(session, context.household_id)
    assert {row.label_key: row.max_intensity for row in rows}["scary"] == 2


@pytest.mark.asyncio
async def test_hard_no_toggle_remembers_intensity(auth_client, session):
    await create_household_for(session, with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))
    await prefs.refresh()
    prefs.set_intensity("violence", 7)

    prefs.toggle_hard_no("violence", True)
    violence = next(item for item in prefs.items if item.label_key == "violence")
    assert (violence.max_intensity, violence.hard_no) == (0, True)

    prefs.toggle_hard_no("violence", False)
    violence = next(item for item in prefs.items if item.label_key == "violence")
    assert (violence.max_intensity, violence.hard_no) == (7, False)


@pytest.mark.asyncio
async def test_hard_no_release_without_memory_uses_settled_value(auth_client, session):
    await create_household_for(session, with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))
    await prefs.refresh()
    prefs.toggle_hard_no("substance", True)
    await prefs.save_filter("substance")
    await prefs.refresh()

    fresh = PreferencesSession(MovieNightClient(http_client=auth_client))
    await fresh.refresh()
    fresh.toggle_hard_no("substance", False)

    substance = next(item for item in fresh.items if item.label_key == "substance")
    assert (substance.max_intensity, substance.hard_no) == (5, False)


@pytest.mark.asyncio
async def test_add_validates_locally_then_commits(auth_client, session):
    await create_household_for(session, with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))
    await prefs.refresh()

    assert await prefs.add(" , \n") is False
    assert await prefs.add("Language, LANGUAGE") is False
    assert await prefs.add("Gore, gore\nLanguage") is True

    assert _texts(prefs.notifier) == [
        ("error", "Add at least one filter label"),
        ("error", "Those filters already exist"),
        ("success", "Filters added"),
    ]
    assert "gore" in {item.label_key for item in prefs.filters.settled}
    assert await prefs.refresh() is True
    assert len(prefs.items) == 7


@pytest.mark.asyncio
async def test_remove_and_reset(auth_client, session):
    await create_household_for(session, with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))
    await prefs.refresh()

    assert await prefs.remove_filters([]) is False
    assert await prefs.remove_filters(["language", "scary"]) is True
    assert {item.label_key for item in prefs.items} == {"mature_themes", "sex_nudity", "substance", "violence"}

    assert await prefs.reset() is True
    assert len(prefs.items) == 6
    await prefs.refresh()
    assert len(prefs.items) == 6
    assert _texts(prefs.notifier) == [
        ("error", "Choose filters to remove"),
        ("success", "Filters removed"),
        ("success", "Filters reset to defaults"),
    ]


@pytest.mark.asyncio
async def test_rejected_save_rolls_back_with_server_error(auth_client, session):
    await create_household_for(session, with_defaults=True)
    prefs = PreferencesSession(MovieNightClient(http_client=auth_client))
    await prefs.refresh()
    settled = prefs.filters.settled
    prefs.filters.edit(prefs.items + [FilterView(label_key="!!!", max_intensity=3)])

    assert await prefs.save_filter("!!!") is False

    assert prefs.items == settled
    assert _texts(prefs.notifier) == [("error", "Label is required")]


@pytest.mark.asyncio
async def test_chat_send_replaces_placeholder(auth_client, session):
    context = await create_household_for(session)
    chat = ChatSession(MovieNightClient(http_client=auth_client), household_id=str(context.household_id))

    assert await chat.send("   ") is False
    assert await chat.send("hi") is True

    roles = [(message.role, message.pending) for message in chat.items]
    assert roles == [("user", False), ("assistant", False)]
    assert "hi" in chat.items[1].content
    assert _texts(chat.notifier) == [("success", "Reply received")]

    assert await chat.refresh() is True
    assert [message.content for message in chat.items][0] == "hi"


@pytest.mark.asyncio
async def test_chat_send_failure_keeps_user_message():
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="Internal Server Error")

    chat = ChatSession(_mock_client(_handler))

    assert await chat.send("Anything with dinosaurs?") is False

    assert [(message.role, message.content) for message in chat.items] == [("user", "Anything with dinosaurs?")]
    assert _texts(chat.notifier) == [("error", SEND_FAILED)]


@pytest.mark.asyncio
async def test_message_ids_are_numbered_per_session():
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down")

    first = ChatSession(_mock_client(_handler))
    second = ChatSession(_mock_client(_handler))

    await first.send("one")
    await first.send("two")
    await second.send("three")

    assert [message.id for message in first.items] == ["user-1", "user-2"]
    assert [message.id for message in second.items] == ["user-1"]


@pytest.mark.asyncio
async def test_chat_sends_last_eight_messages_as_history():
    captured: list[dict] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured.append(json.loads(request.content))
        return httpx.Response(200, json={"message": "Sure", "id": "reply-1"})

    chat = ChatSession(_mock_client(_handler), household_id="h-1")
    now = datetime.now(timezone.utc)
    chat.messages.receive(
        ChatMessageRead(id=f"m{i}", role="user" if i % 2 == 0 else "assistant", content=f"turn {i}", created_at=now)
        for i in range(10)
    )

    assert await chat.send("next") is True

    history = captured[0]["history"]
    assert len(history) == 8
    assert history[0] == {"role": "user", "content": "turn 2"}
    assert captured[0]["householdId"] == "h-1"
    assert chat.items[-1].id == "reply-1"


@pytest.mark.asyncio
async def test_log_and_block_toasts(auth_client, session):
    await create_household_for(session)
    chat = ChatSession(MovieNightClient(http_client=auth_client))

    assert await chat.log_movie("tt4468740", rating=9) is True
    movie = RecommendationMovie(title="Paddington 2", movie_id="tt4468740")
    assert await chat.block_recommendation(movie) is True
    assert await chat.block_recommendation(RecommendationMovie(title="No id")) is False

    assert _texts(chat.notifier) == [
        ("success", LOG_SAVED),
        ("success", "We'll skip Paddington 2 going forward."),
        ("error", BLOCK_FAILED),
    ]


@pytest.mark.asyncio
async def test_log_failure_toast_is_generic():
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"ok": False, "error": "Unable to log the movie right now"})

    chat = ChatSession(_mock_client(_handler))

    assert await chat.log_movie("tt1") is False
    assert _texts(chat.notifier) == [("error", LOG_FAILED)]
