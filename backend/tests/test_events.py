"""
Tests for event endpoints: CRUD, schedule modes, status and tenant isolation.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from venue_calendar.api.deps import get_now
from venue_calendar.api.routes import events as events_routes
from venue_calendar.main import app
from venue_calendar.models.band import EventInstanceBand
from venue_calendar.models.event_instance import EventInstance
from venue_calendar.services import cache_service

ONE_OFF = {
    "title": "Album Release Night",
    "starts_at": "2024-01-20T20:00:00Z",
    "ends_at": "2024-01-20T23:30:00Z",
}
WEEKLY = {
    "title": "Open Mic Mondays",
    "is_weekly": True,
    "day_of_week": 1,
    "start_time": "19:30:00",
    "end_time": "23:00:00",
}


@pytest.mark.asyncio
async def test_create_one_off_event(client, auth_headers, events_url, org_id):
    """Test creating a one-off event."""
    response = await client.post(events_url + "/", json=ONE_OFF, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Album Release Night"
    assert data["org_id"] == org_id
    assert data["is_weekly"] is False
    assert data["day_of_week"] is None
    assert data["status"] == "live"
    assert data["status_override"] is None


@pytest.mark.asyncio
async def test_create_weekly_event(client, auth_headers, events_url):
    """Test creating a weekly template."""
    response = await client.post(events_url + "/", json=WEEKLY, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["is_weekly"] is True
    assert data["day_of_week"] == 1
    assert data["start_time"] == "19:30:00"
    assert data["starts_at"] is None


@pytest.mark.asyncio
async def test_weekly_event_keeps_only_time_of_day(client, auth_headers, events_url):
    """Concrete timestamps sent for a template are reduced to their times."""
    payload = {
        "title": "Quiz Night",
        "is_weekly": True,
        "day_of_week": 2,
        "starts_at": "2024-01-02T20:00:00Z",
        "ends_at": "2024-01-02T22:00:00Z",
    }
    response = await client.post(events_url + "/", json=payload, headers=auth_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["starts_at"] is None
    assert data["start_time"] == "20:00:00"
    assert data["end_time"] == "22:00:00"


@pytest.mark.asyncio
async def test_weekly_event_requires_day_of_week(client, auth_headers, events_url):
    """Test weekly event without a weekday fails."""
    response = await client.post(
        events_url + "/", json={"title": "Mystery Night", "is_weekly": True}, headers=auth_headers
    )
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_day_of_week_out_of_range(client, auth_headers, events_url):
    """Test day_of_week outside 0..6 fails validation."""
    response = await client.post(
        events_url + "/", json={**WEEKLY, "day_of_week": 7}, headers=auth_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_one_off_requires_dates(client, auth_headers, events_url):
    """Test one-off event without an end fails."""
    response = await client.post(
        events_url + "/",
        json={"title": "Half Planned", "starts_at": "2024-01-20T20:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_end_before_start_rejected(client, auth_headers, events_url):
    response = await client.post(
        events_url + "/",
        json={**ONE_OFF, "ends_at": "2024-01-20T19:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_publish_window_order_validated(client, auth_headers, events_url):
    payload = {
        **ONE_OFF,
        "publish_start_at": "2024-01-10T00:00:00Z",
        "publish_end_at": "2024-01-05T00:00:00Z",
    }
    response = await client.post(events_url + "/", json=payload, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_blank_title_rejected(client, auth_headers, events_url):
    response = await client.post(events_url + "/", json={**ONE_OFF, "title": "   "}, headers=auth_headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_events(client, auth_headers, events_url, weekly_event, one_off_event):
    """Test listing events; dated events first, templates after."""
    response = await client.get(events_url + "/", headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["cached"] is False
    assert [e["id"] for e in data["events"]] == [one_off_event.id, weekly_event.id]


@pytest.mark.asyncio
async def test_list_is_scoped_to_org(client, multi_org_headers, other_org_id, weekly_event):
    response = await client.get(f"/api/v1/orgs/{other_org_id}/events/", headers=multi_org_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_get_event(client, auth_headers, events_url, weekly_event):
    """Test getting a single event."""
    response = await client.get(f"{events_url}/{weekly_event.id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Jazz Wednesdays"


@pytest.mark.asyncio
async def test_get_nonexistent_event(client, auth_headers, events_url):
    """Test 404 for missing event."""
    response = await client.get(f"{events_url}/99999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_event_of_other_org_is_not_found(client, multi_org_headers, other_org_id, weekly_event):
    """An event is invisible through another org's URL, even to a member of both."""
    url = f"/api/v1/orgs/{other_org_id}/events/{weekly_event.id}"
    assert (await client.get(url, headers=multi_org_headers)).status_code == 404
    assert (await client.patch(url, json={"title": "Hijacked"}, headers=multi_org_headers)).status_code == 404
    assert (await client.delete(url, headers=multi_org_headers)).status_code == 404


@pytest.mark.asyncio
async def test_requires_token(client, events_url):
    """Test unauthenticated request fails."""
    response = await client.get(events_url + "/")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token(client, events_url):
    response = await client.get(events_url + "/", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_non_member_is_forbidden(client, auth_headers, other_org_id):
    """Test a caller outside the org gets 403."""
    response = await client.get(f"/api/v1/orgs/{other_org_id}/events/", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_title(client, auth_headers, events_url, weekly_event):
    response = await client.patch(
        f"{events_url}/{weekly_event.id}", json={"title": "Late Jazz"}, headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Late Jazz"
    assert data["day_of_week"] == 3


@pytest.mark.asyncio
async def test_null_title_rejected(client, auth_headers, events_url, weekly_event):
    response = await client.patch(
        f"{events_url}/{weekly_event.id}", json={"title": None}, headers=auth_headers
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_switch_weekly_to_one_off(client, auth_headers, events_url, weekly_event):
    """Switching mode clears the weekday and requires concrete dates."""
    url = f"{events_url}/{weekly_event.id}"
    response = await client.patch(url, json={"is_weekly": False}, headers=auth_headers)
    assert response.status_code == 400

    response = await client.patch(url, json={"is_weekly": False, **{
        k: v for k, v in ONE_OFF.items() if k != "title"
    }}, headers=auth_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["is_weekly"] is False
    assert data["day_of_week"] is None
    assert data["start_time"] is None


@pytest.mark.asyncio
async def test_draft_hides_open_window(client, auth_headers, events_url):
    payload = {**ONE_OFF, "status": "draft", "publish_start_at": "2023-12-01T00:00:00Z"}
    response = await client.post(events_url + "/", json=payload, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["status"] == "draft"
    assert response.json()["status_override"] == "draft"


@pytest.mark.asyncio
async def test_future_window_is_scheduled(client, auth_headers, events_url):
    payload = {**ONE_OFF, "publish_start_at": "2024-01-10T00:00:00Z"}
    response = await client.post(events_url + "/", json=payload, headers=auth_headers)
    assert response.json()["status"] == "scheduled"


@pytest.mark.asyncio
async def test_expired_window_is_past(client, auth_headers, events_url):
    payload = {**ONE_OFF, "publish_end_at": "2023-12-31T00:00:00Z"}
    response = await client.post(events_url + "/", json=payload, headers=auth_headers)
    assert response.json()["status"] == "past"


@pytest.mark.asyncio
async def test_going_live_publishes_now(client, auth_headers, events_url):
    """Asking for live on a scheduled event pulls publish_start_at back to now."""
    payload = {**ONE_OFF, "publish_start_at": "2024-02-01T00:00:00Z"}
    created = (await client.post(events_url + "/", json=payload, headers=auth_headers)).json()
    assert created["status"] == "scheduled"

    response = await client.patch(
        f"{events_url}/{created['id']}", json={"status": "live"}, headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "live"
    assert data["publish_start_at"].startswith("2024-01-01T12:00:00")


@pytest.mark.asyncio
async def test_clearing_draft_restores_derived_status(client, auth_headers, events_url):
    payload = {**ONE_OFF, "status": "draft"}
    created = (await client.post(events_url + "/", json=payload, headers=auth_headers)).json()

    response = await client.patch(
        f"{events_url}/{created['id']}", json={"status": "scheduled"}, headers=auth_headers
    )
    data = response.json()
    # No window: derivation says live whatever was asked for
    assert data["status"] == "live"
    assert data["status_override"] is None


@pytest.mark.asyncio
async def test_draft_survives_unrelated_update(client, auth_headers, events_url):
    created = (await client.post(events_url + "/", json={**ONE_OFF, "status": "draft"}, headers=auth_headers)).json()
    response = await client.patch(
        f"{events_url}/{created['id']}", json={"title": "Renamed"}, headers=auth_headers
    )
    assert response.json()["status"] == "draft"


@pytest.mark.asyncio
async def test_archive_event(client, auth_headers, events_url, weekly_event):
    response = await client.post(f"{events_url}/{weekly_event.id}/archive", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "archived"

    response = await client.get(f"{events_url}/{weekly_event.id}", headers=auth_headers)
    assert response.json()["status"] == "archived"


@pytest.mark.asyncio
async def test_delete_event_cascades(client, auth_headers, events_url, weekly_event, bands, db_session):
    """Deleting a template removes its occurrences and their lineups."""
    url = f"{events_url}/{weekly_event.id}"
    materialized = await client.post(
        url + "/instances/materialize",
        json={"start_date": "2024-01-01", "end_date": "2024-01-31"},
        headers=auth_headers,
    )
    instance_id = materialized.json()["instances"][0]["id"]
    await client.put(
        f"{url}/instances/{instance_id}/bands",
        json={"band_ids": [bands[0].id]},
        headers=auth_headers,
    )

    response = await client.delete(url, headers=auth_headers)
    assert response.status_code == 204
    assert (await client.get(url, headers=auth_headers)).status_code == 404

    instances = await db_session.scalar(select(func.count()).select_from(EventInstance))
    lineup_rows = await db_session.scalar(select(func.count()).select_from(EventInstanceBand))
    assert instances == 0
    assert lineup_rows == 0


@pytest.mark.asyncio
async def test_template_lineup_endpoints(client, auth_headers, events_url, weekly_event, bands):
    b1, b2, b3 = bands
    url = f"{events_url}/{weekly_event.id}/bands"

    response = await client.put(url, json={"band_ids": [b2.id, b3.id, b1.id]}, headers=auth_headers)
    assert response.status_code == 200
    assert [(row["band_id"], row["order"]) for row in response.json()] == [(b2.id, 0), (b3.id, 1), (b1.id, 2)]

    response = await client.get(url, headers=auth_headers)
    assert [row["band"]["name"] for row in response.json()] == ["Brass Tacks", "Low Tide Trio", "The Quiet Storm"]


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_weekly_time_edited_through_starts_at(client, auth_headers, events_url):
    """A new starts_at on a template replaces the stored time of day."""
    created = (await client.post(
        events_url + "/",
        json={"title": "Late Set", "is_weekly": True, "day_of_week": 5, "starts_at": "2024-01-05T20:00:00Z"},
        headers=auth_headers,
    )).json()
    assert created["start_time"] == "20:00:00"

    url = f"{events_url}/{created['id']}"
    response = await client.patch(
        url, json={"starts_at": "2024-01-05T22:30:00Z", "ends_at": "2024-01-06T01:00:00Z"}, headers=auth_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["start_time"] == "22:30:00"
    assert data["end_time"] == "01:00:00"
    assert data["starts_at"] is None

    # An explicit start_time in the same request wins
    response = await client.patch(
        url, json={"starts_at": "2024-01-05T18:00:00Z", "start_time": "19:15:00"}, headers=auth_headers
    )
    assert response.json()["start_time"] == "19:15:00"

    # Unrelated edits keep the stored time
    response = await client.patch(url, json={"title": "Later Set"}, headers=auth_headers)
    assert response.json()["start_time"] == "19:15:00"


@pytest.mark.asyncio
async def test_cached_listing_status_is_rederived(client, auth_headers, events_url, monkeypatch):
    """A listing cached while scheduled reads as live once the window opens."""
    stored = {}

    async def fake_set_cached_events(org_id, data):
        stored[org_id] = data

    async def fake_get_cached_events(org_id):
        return stored.get(org_id)

    monkeypatch.setattr(events_routes, "set_cached_events", fake_set_cached_events)
    monkeypatch.setattr(events_routes, "get_cached_events", fake_get_cached_events)

    payload = {**ONE_OFF, "publish_start_at": "2024-01-02T00:00:00Z"}
    assert (await client.post(events_url + "/", json=payload, headers=auth_headers)).status_code == 201

    first = (await client.get(events_url + "/", headers=auth_headers)).json()
    assert first["cached"] is False
    assert first["events"][0]["status"] == "scheduled"

    app.dependency_overrides[get_now] = lambda: datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)
    second = (await client.get(events_url + "/", headers=auth_headers)).json()
    assert second["cached"] is True
    assert second["events"][0]["status"] == "live"


@pytest.mark.asyncio
async def test_health_check_pings_redis(client, monkeypatch):
    """Health reports a reachable cache with one PING and no INFO call."""

    class FakeRedis:
        def __init__(self):
            self.calls = []

        async def ping(self):
            self.calls.append("ping")
            return True

        async def info(self, section=None):
            self.calls.append("info")
            return {}

    fake = FakeRedis()

    async def fake_get_redis():
        return fake

    monkeypatch.setattr(cache_service, "get_redis", fake_get_redis)

    response = await client.get("/health")
    assert response.json()["cache"] == {"status": "connected"}
    assert fake.calls == ["ping"]
