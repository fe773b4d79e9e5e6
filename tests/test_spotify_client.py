"""
Unit tests for the Spotify player client and its HTTP session:
- Retry configuration for transient statuses
- Status code mapping (204, 401, 404, NO_ACTIVE_DEVICE)
- Circuit breaker after repeated transport failures
- Request payloads for play and volume
"""
from unittest.mock import Mock

import pytest
import requests

from spoticue.api.http import RETRY_STATUSES, build_retry_configuration, build_session
from spoticue.api.spotify import (API_BASE, NoActiveDeviceError,
                                  SpotifyApiError, SpotifyAuthError,
                                  SpotifyPlayerClient)

from .conftest import PLAYLIST, TRACK_A


def _response(status, payload=None):
    response = Mock()
    response.status_code = status
    if payload is None:
        response.json.side_effect = ValueError("no body")
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def unauthorized():
    return Mock()


@pytest.fixture
def client(session, unauthorized):
    return SpotifyPlayerClient(token_provider=lambda: "token", session=session, on_unauthorized=unauthorized)


class TestHttpSession:

    def test_retry_covers_transient_statuses(self):
        retry = build_retry_configuration()

        assert list(retry.status_forcelist) == list(RETRY_STATUSES)
        assert retry.respect_retry_after_header is True
        assert "PUT" in retry.allowed_methods

    def test_retry_total_from_environment(self, monkeypatch):
        monkeypatch.setenv("SPOTICUE_HTTP_RETRY_TOTAL", "7")
        assert build_retry_configuration().total == 7

    def test_session_mounts_retrying_adapter(self):
        session = build_session()
        adapter = session.get_adapter("https://api.spotify.com")

        assert adapter.max_retries.total == build_retry_configuration().total
        assert session.headers["Accept"] == "application/json"
        assert session.headers["User-Agent"].startswith("SpotiCue/")


class TestPlaybackState:

    def test_204_means_nothing_playing(self, client, session):
        session.request.return_value = _response(204)
        assert client.get_playback_state() is None

    def test_state_is_parsed(self, client, session):
        session.request.return_value = _response(200, {
            "is_playing": True,
            "progress_ms": 42000,
            "item": {"uri": TRACK_A, "name": "Morning Song", "duration_ms": 200000},
            "context": {"uri": PLAYLIST},
            "device": {"id": "dev1", "volume_percent": 35},
        })

        state = client.get_playback_state()

        assert state.is_playing is True
        assert state.track_uri == TRACK_A
        assert state.context_uri == PLAYLIST
        assert state.volume_percent == 35
        snapshot = state.to_snapshot()
        assert snapshot.progress_ms == 42000
        assert snapshot.was_playing is True

        method, url = session.request.call_args.args
        assert (method, url) == ("GET", f"{API_BASE}/me/player")
        assert session.request.call_args.kwargs["headers"] == {"Authorization": "Bearer token"}


class TestErrors:

    def test_missing_token_raises_auth_error(self, session):
        client = SpotifyPlayerClient(token_provider=lambda: None, session=session)

        with pytest.raises(SpotifyAuthError):
            client.pause()
        session.request.assert_not_called()

    def test_401_invalidates_token(self, client, session, unauthorized):
        session.request.return_value = _response(401)

        with pytest.raises(SpotifyAuthError):
            client.set_volume(50)
        unauthorized.assert_called_once()

    def test_404_maps_to_no_active_device(self, client, session):
        session.request.return_value = _response(404, {"error": {"status": 404, "message": "Device not found"}})

        with pytest.raises(NoActiveDeviceError):
            client.play(uris=[TRACK_A])

    def test_no_active_device_reason(self, client, session):
        session.request.return_value = _response(403, {"error": {"reason": "NO_ACTIVE_DEVICE"}})

        with pytest.raises(NoActiveDeviceError):
            client.pause()

    def test_other_status_is_generic_error(self, client, session):
        session.request.return_value = _response(500)

        with pytest.raises(SpotifyApiError) as excinfo:
            client.set_volume(20)
        assert excinfo.value.status == 500
        assert not isinstance(excinfo.value, NoActiveDeviceError)

    def test_breaker_opens_after_repeated_network_errors(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("down")

        for _ in range(3):
            with pytest.raises(SpotifyApiError):
                client.get_playback_state()
        assert session.request.call_count == 3

        with pytest.raises(SpotifyApiError, match="circuit breaker"):
            client.get_playback_state()
        assert session.request.call_count == 3


class TestCommands:

    def test_play_tracks(self, client, session):
        session.request.return_value = _response(204)

        client.play(uris=[TRACK_A])

        kwargs = session.request.call_args.kwargs
        assert session.request.call_args.args == ("PUT", f"{API_BASE}/me/player/play")
        assert kwargs["json"] == {"uris": [TRACK_A]}

    def test_play_context_at_position(self, client, session):
        session.request.return_value = _response(202)

        client.play(context_uri=PLAYLIST, position_ms=42000)

        assert session.request.call_args.kwargs["json"] == {"context_uri": PLAYLIST, "position_ms": 42000}

    def test_volume_is_clamped(self, client, session):
        session.request.return_value = _response(204)

        client.set_volume(180, device_id="dev1")

        assert session.request.call_args.kwargs["params"] == {"volume_percent": 100, "device_id": "dev1"}

    def test_search_returns_summaries(self, client, session):
        session.request.return_value = _response(200, {"tracks": {"items": [{
            "uri": TRACK_A,
            "name": "Morning Song",
            "duration_ms": 200500,
            "artists": [{"name": "Band"}, {"name": "Guest"}],
            "album": {"name": "Sunrise", "images": [{"url": "https://img"}]},
        }]}})

        results = client.search_tracks("morning", limit=3)

        assert results == [{
            "uri": TRACK_A,
            "name": "Morning Song",
            "artist": "Band, Guest",
            "album": "Sunrise",
            "image_url": "https://img",
            "duration_ms": 200500,
            "duration_seconds": 200,
        }]
        assert session.request.call_args.kwargs["params"] == {"q": "morning", "type": "track", "limit": 3}

    def test_devices(self, client, session):
        session.request.return_value = _response(200, {"devices": [
            {"id": "dev1", "name": "Desk", "type": "Computer", "is_active": True, "volume_percent": 60},
        ]})

        assert client.get_devices() == [
            {"id": "dev1", "name": "Desk", "type": "Computer", "is_active": True, "volume_percent": 60},
        ]

    def test_empty_search_skips_request(self, client, session):
        assert client.search_tracks("   ") == []
        session.request.assert_not_called()

    def test_unknown_track_lookup(self, client, session):
        session.request.return_value = _response(404)
        assert client.get_track(TRACK_A) is None
        assert session.request.call_args.args[1].endswith("/tracks/4uLU6hMCjMI75M1A2tKUQC")
