"""
API contract tests: every JSON endpoint answers with the standard envelope
(success, timestamp, request_id, data/message/error_code).
"""
import pytest

from spoticue.api.spotify import SpotifyAuthError
from spoticue.app import create_app
from spoticue.services.service_manager import ServiceManager, set_service_manager

from .conftest import TRACK_A


@pytest.fixture
def manager(scheduler, parked_monitor):
    manager = ServiceManager(scheduler=scheduler, start_clock=False, token_provider=lambda: "token")
    yield manager
    set_service_manager(None)


@pytest.fixture
def client(manager):
    app = create_app(manager)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client


def _create(client, **overrides):
    body = {"time": "07:00", "track_uri": TRACK_A, "volume": 70, "track_name": "Morning Song"}
    body.update(overrides)
    return client.post("/api/schedules", json=body)


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json()["ok"] is True
    assert response.headers["X-App-Version"]


def test_add_schedule_returns_201(client):
    response = _create(client)
    payload = response.get_json()

    assert response.status_code == 201
    assert payload["success"] is True
    assert payload["request_id"] == response.headers["X-Request-ID"]
    assert payload["data"]["time"] == "07:00"
    assert payload["data"]["volume"] == 70
    assert payload["data"]["triggered"] is False
    assert payload["message"] == "Scheduled Morning Song at 07:00"


def test_add_schedule_validation_error(client):
    response = _create(client, time="25:00")
    payload = response.get_json()

    assert response.status_code == 400
    assert payload["success"] is False
    assert payload["error_code"] == "time"


def test_add_schedule_rejects_non_object_body(client):
    response = client.post("/api/schedules", json=["07:00"])

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "invalid_body"


def test_list_includes_next_fire(client):
    _create(client)
    _create(client, time="09:30", playback_duration_seconds=30, track_duration_seconds=200)

    payload = client.get("/api/schedules").get_json()

    assert payload["data"]["count"] == 2
    first, second = payload["data"]["schedules"]
    # fixture clock is 06:59:50
    assert first["next_fire"] == "in 0m"
    assert first["next_fire_iso"].startswith("2025-03-10T07:00:00")
    assert second["partial_play"] is True


def test_toggle_and_delete(client):
    schedule_id = _create(client).get_json()["data"]["id"]

    toggled = client.post(f"/api/schedules/{schedule_id}/toggle").get_json()
    assert toggled["data"]["enabled"] is False
    assert toggled["data"]["next_fire"] is None
    assert toggled["message"] == "Schedule disabled"

    assert client.delete(f"/api/schedules/{schedule_id}").status_code == 200
    missing = client.delete(f"/api/schedules/{schedule_id}")
    assert missing.status_code == 404
    assert missing.get_json()["error_code"] == "NOT_FOUND"


def test_trigger_now_and_active_status(client, player):
    schedule_id = _create(client, playback_duration_seconds=30, track_duration_seconds=200).get_json()["data"]["id"]

    response = client.post(f"/api/schedules/{schedule_id}/trigger")

    assert response.status_code == 200
    assert response.get_json()["data"]["remaining_seconds"] == 30
    assert [name for name, _ in player.commands()] == ["pause", "set_volume", "play"]

    active = client.get("/api/schedules/active").get_json()["data"]
    assert active["active"]["schedule_id"] == schedule_id
    assert len(active["all"]) == 1


def test_trigger_unknown_schedule(client):
    assert client.post("/api/schedules/nope/trigger").status_code == 404


def test_trigger_auth_failure_is_401(client, player):
    schedule_id = _create(client).get_json()["data"]["id"]
    player.failures["set_volume"] = SpotifyAuthError("Spotify authentication required")

    response = client.post(f"/api/schedules/{schedule_id}/trigger")

    assert response.status_code == 401
    assert response.get_json()["error_code"] == "AUTH_REQUIRED"

    notifications = client.get("/api/notifications?limit=5").get_json()["data"]["notifications"]
    assert notifications[0]["kind"] == "auth_required"


def test_search_tracks(client, player):
    response = client.get("/api/tracks/search?q=morning&limit=3")

    assert response.status_code == 200
    assert response.get_json()["data"]["tracks"][0]["uri"] == TRACK_A
    assert ("search_tracks", {"query": "morning", "limit": 3}) in player.commands()


def test_search_requires_query(client):
    response = client.get("/api/tracks/search")

    assert response.status_code == 400
    assert response.get_json()["error_code"] == "MISSING_QUERY"


def test_devices_report_active_device(client):
    data = client.get("/api/devices").get_json()["data"]

    assert data["count"] == 2
    assert data["active"]["name"] == "Desk"


def test_auth_status_with_token(client):
    response = client.get("/api/spotify/auth-status")

    assert response.status_code == 200
    assert response.get_json()["data"]["authenticated"] is True


def test_auth_status_without_token(scheduler, parked_monitor):
    manager = ServiceManager(scheduler=scheduler, start_clock=False, token_provider=lambda: None)
    try:
        app = create_app(manager)
        response = app.test_client().get("/api/spotify/auth-status")
        health = app.test_client().get("/api/health")
    finally:
        set_service_manager(None)

    assert response.status_code == 401
    assert response.get_json()["error_code"] == "AUTH_REQUIRED"
    assert health.status_code == 503


def test_health_detail(client):
    response = client.get("/api/health")
    data = response.get_json()["data"]

    assert response.status_code == 200
    assert data["overall_healthy"] is True
    assert data["services"]["schedule"]["status"]["clock_running"] is False


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.get_json()["error_code"] == "not_found"
