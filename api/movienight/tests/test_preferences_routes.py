from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from movienight.models.preferences import HouseholdFilterLimit
from movienight.services import view_service
from movienight.tests.utils import create_household_for


@pytest.mark.asyncio
async def test_preferences_view_lists_filters_with_revision(auth_client, session):
    context = await create_household_for(session, name="Lee Household", with_defaults=True)

    response = await auth_client.get("/api/preferences")
    assert response.status_code == 200
    payload = response.json()
    assert payload["householdId"] == str(context.household_id)
    assert payload["householdName"] == "Lee Household"
    assert [item["labelKey"] for item in payload["filters"]] == [
        "language",
        "mature_themes",
        "scary",
        "sex_nudity",
        "substance",
        "violence",
    ]
    assert payload["filters"][3] == {"labelKey": "sex_nudity", "maxIntensity": 4, "hardNo": False}
    assert payload["revision"] >= 1
    assert response.headers["etag"] == f'W/"{context.household_id}:{payload["revision"]}"'


@pytest.mark.asyncio
async def test_preferences_view_honours_if_none_match(auth_client, session):
    await create_household_for(session, with_defaults=True)

    first = await auth_client.get("/api/preferences")
    etag = first.headers["etag"]

    unchanged = await auth_client.get("/api/preferences", headers={"If-None-Match": etag})
    assert unchanged.status_code == 304

    saved = await auth_client.put(
        "/api/preferences/filters", json={"labelKey": "scary", "maxIntensity": 2, "hardNo": False}
    )
    assert saved.status_code == 200

    changed = await auth_client.get("/api/preferences", headers={"If-None-Match": etag})
    assert changed.status_code == 200
    assert changed.headers["etag"] != etag


@pytest.mark.asyncio
async def test_update_filter_endpoint(auth_client, session):
    await create_household_for(session)

    response = await auth_client.put(
        "/api/preferences/filters", json={"labelKey": "Violence", "maxIntensity": 13.7, "hardNo": False}
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    view = (await auth_client.get("/api/preferences")).json()
    assert view["filters"] == [{"labelKey": "violence", "maxIntensity": 10, "hardNo": False}]

    hard_no = await auth_client.put(
        "/api/preferences/filters", json={"labelKey": "violence", "maxIntensity": 6, "hardNo": True}
    )
    assert hard_no.json() == {"ok": True}
    view = (await auth_client.get("/api/preferences")).json()
    assert view["filters"] == [{"labelKey": "violence", "maxIntensity": 0, "hardNo": True}]


@pytest.mark.asyncio
async def test_update_filter_without_label_is_rejected(auth_client, session):
    await create_household_for(session)

    response = await auth_client.put("/api/preferences/filters", json={"maxIntensity": 4, "hardNo": False})

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Label is required", "kind": "validation"}


@pytest.mark.asyncio
async def test_add_remove_and_reset_endpoints(auth_client, session):
    await create_household_for(session)

    added = await auth_client.post("/api/preferences/filters", json={"labels": ["Gore", "  Jump Scares!! "]})
    assert added.status_code == 200
    assert added.json() == {"ok": True}

    duplicate = await auth_client.post("/api/preferences/filters", json={"labels": ["gore"]})
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "Those filters already exist"

    removed = await auth_client.post("/api/preferences/filters/remove", json={"labels": ["gore"]})
    assert removed.json() == {"ok": True}
    view = (await auth_client.get("/api/preferences")).json()
    assert [item["labelKey"] for item in view["filters"]] == ["jump_scares"]

    empty = await auth_client.post("/api/preferences/filters/remove", json={"labels": []})
    assert empty.status_code == 400
    assert empty.json()["error"] == "Select at least one filter to remove"

    reset = await auth_client.post("/api/preferences/filters/reset")
    assert reset.json() == {"ok": True}
    view = (await auth_client.get("/api/preferences")).json()
    assert len(view["filters"]) == 6


@pytest.mark.asyncio
async def test_persistence_failures_surface_the_store_message(auth_client, session, monkeypatch):
    await create_household_for(session)

    async def _broken(*args, **kwargs):
        raise OperationalError("UPDATE households", {}, Exception("disk I/O error"))

    monkeypatch.setattr(view_service, "invalidate_household_views", _broken)

    response = await auth_client.post("/api/preferences/filters/reset")
    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "disk I/O error", "kind": "persistence"}


@pytest.mark.asyncio
async def test_missing_table_on_write_is_reported_as_missing_schema(auth_client, session):
    await create_household_for(session)
    await session.commit()
    async with session.bind.begin() as conn:
        await conn.run_sync(HouseholdFilterLimit.__table__.drop)

    response = await auth_client.put(
        "/api/preferences/filters", json={"labelKey": "scary", "maxIntensity": 3, "hardNo": False}
    )

    assert response.status_code == 500
    assert response.json()["ok"] is False
    assert response.json()["kind"] == "missing_schema"


@pytest.mark.asyncio
async def test_home_view_bundles_household_state(auth_client, session):
    context = await create_household_for(session, display_name="Dad", with_defaults=True)

    response = await auth_client.get("/api/home")
    assert response.status_code == 200
    payload = response.json()
    assert payload["household"]["householdId"] == str(context.household_id)
    assert len(payload["filters"]) == 6
    assert [member["displayName"] for member in payload["members"]] == ["Dad"]
    assert payload["messages"] == []
    assert payload["revision"] >= 1
