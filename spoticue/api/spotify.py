#!/usr/bin/env python3
"""
🎵 Spotify Web API player client for SpotiCue
Thin wrapper around the /me/player endpoints the scheduler needs:
- Current playback state (with 204 "nothing playing" mapped to None)
- Start playback of a track list or a context at a position
- Pause and volume control
- Device listing, track search and track lookup for the web UI

Failures raise ``SpotifyApiError`` subclasses so callers can decide
whether a failure is fatal (play, volume) or ignorable (pause).
"""

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import requests

from ..core.models import PlaybackSnapshot
from .auth import get_access_token, invalidate_access_token
from .http import get_http_session

API_BASE = "https://api.spotify.com/v1"

logger = logging.getLogger("spoticue.spotify")


class SpotifyApiError(Exception):
    """A Spotify Web API call failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class SpotifyAuthError(SpotifyApiError):
    """No usable access token (missing credentials or rejected token)."""


class NoActiveDeviceError(SpotifyApiError):
    """Spotify has no active device to control."""


@dataclass(frozen=True)
class PlaybackState:
    """Normalized view of GET /me/player."""
    is_playing: bool
    track_uri: Optional[str] = None
    track_name: Optional[str] = None
    duration_ms: Optional[int] = None
    progress_ms: int = 0
    context_uri: Optional[str] = None
    volume_percent: Optional[int] = None
    device_id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "PlaybackState":
        item = payload.get("item") or {}
        context = payload.get("context") or {}
        device = payload.get("device") or {}
        return cls(
            is_playing=bool(payload.get("is_playing")),
            track_uri=item.get("uri"),
            track_name=item.get("name"),
            duration_ms=item.get("duration_ms"),
            progress_ms=int(payload.get("progress_ms") or 0),
            context_uri=context.get("uri"),
            volume_percent=device.get("volume_percent"),
            device_id=device.get("id"),
        )

    def to_snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            context_uri=self.context_uri,
            track_uri=self.track_uri,
            progress_ms=self.progress_ms,
            volume_percent=self.volume_percent,
            was_playing=self.is_playing,
        )


class _CircuitBreaker:
    """Short-circuits requests after repeated transport failures."""

    def __init__(self, threshold: int, cooldown: float):
        self.threshold = threshold
        self.cooldown = cooldown
        self.consecutive_failures = 0
        self.open_until = 0.0
        self._lock = threading.Lock()

    def is_open(self) -> bool:
        return time.time() < self.open_until

    def on_success(self) -> None:
        with self._lock:
            self.consecutive_failures = 0
            self.open_until = 0.0

    def on_failure(self) -> None:
        with self._lock:
            self.consecutive_failures += 1
            if self.consecutive_failures >= self.threshold:
                self.open_until = time.time() + self.cooldown


class SpotifyPlayerClient:
    """Spotify player operations authenticated through a token provider."""

    def __init__(
        self,
        token_provider: Callable[[], Optional[str]] = get_access_token,
        session: Optional[requests.Session] = None,
        on_unauthorized: Optional[Callable[[], None]] = invalidate_access_token,
    ):
        self._token_provider = token_provider
        self._session = session
        self._on_unauthorized = on_unauthorized
        self._breaker = _CircuitBreaker(
            threshold=int(os.getenv("SPOTICUE_BREAKER_THRESHOLD", "3")),
            cooldown=float(os.getenv("SPOTICUE_BREAKER_COOLDOWN", "30")),
        )

    @property
    def session(self) -> requests.Session:
        return self._session or get_http_session()

    def _headers(self) -> Dict[str, str]:
        token = self._token_provider()
        if not token:
            raise SpotifyAuthError("Spotify authentication required")
        return {"Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        timeout: Optional[Union[float, Tuple[float, float]]] = None,
    ) -> requests.Response:
        if self._breaker.is_open():
            raise SpotifyApiError("Spotify API temporarily unavailable (circuit breaker open)")

        method_upper = method.upper()
        url = f"{API_BASE}{path}"
        start = time.perf_counter()
        try:
            response = self.session.request(
                method_upper,
                url,
                headers=self._headers(),
                params=params,
                json=json,
                timeout=timeout,
            )
        except requests.exceptions.RequestException as exc:
            self._breaker.on_failure()
            logger.warning(
                "spotify.request.error",
                extra={
                    "method": method_upper,
                    "url": url,
                    "elapsed": round(time.perf_counter() - start, 3),
                    "error": exc.__class__.__name__,
                },
            )
            raise SpotifyApiError(f"Spotify request failed: {exc.__class__.__name__}") from exc

        self._breaker.on_success()

        if response.status_code == 401:
            if self._on_unauthorized:
                self._on_unauthorized()
            raise SpotifyAuthError("Spotify rejected the access token", status=401)
        return response

    @staticmethod
    def _error_from(response: requests.Response, action: str) -> SpotifyApiError:
        reason = ""
        try:
            body = response.json()
            error = body.get("error") if isinstance(body, dict) else None
            if isinstance(error, dict):
                reason = str(error.get("reason") or error.get("message") or "")
        except ValueError:
            pass

        if response.status_code == 404 or reason == "NO_ACTIVE_DEVICE":
            return NoActiveDeviceError(f"{action} failed: no active Spotify device", status=response.status_code)
        detail = f" ({reason})" if reason else ""
        return SpotifyApiError(f"{action} failed with HTTP {response.status_code}{detail}", status=response.status_code)

    # ------------------------------------------------------------------
    # Player
    # ------------------------------------------------------------------

    def get_playback_state(self) -> Optional[PlaybackState]:
        """Return the current playback state, or None when nothing is active."""
        response = self._request("GET", "/me/player")
        if response.status_code == 204:
            return None
        if response.status_code != 200:
            raise self._error_from(response, "Playback state")
        try:
            payload = response.json()
        except ValueError:
            return None
        if not payload:
            return None
        return PlaybackState.from_api(payload)

    def play(
        self,
        uris: Optional[List[str]] = None,
        context_uri: Optional[str] = None,
        position_ms: Optional[int] = None,
        device_id: Optional[str] = None,
    ) -> None:
        """Start playback of explicit track URIs or of a context."""
        payload: Dict[str, Any] = {}
        if context_uri:
            payload["context_uri"] = context_uri
        elif uris:
            payload["uris"] = list(uris)
        if position_ms is not None:
            payload["position_ms"] = max(0, int(position_ms))
        params = {"device_id": device_id} if device_id else None

        response = self._request("PUT", "/me/player/play", params=params, json=payload or None)
        if response.status_code in (200, 202, 204):
            logger.info("▶️ Playback started", extra={"event": "spotify.play.ok", "device_id": device_id})
            return
        logger.warning(
            "spotify.play.failed",
            extra={"status": response.status_code, "device_id": device_id, "payload_keys": sorted(payload)},
        )
        raise self._error_from(response, "Play")

    def pause(self, device_id: Optional[str] = None) -> None:
        params = {"device_id": device_id} if device_id else None
        response = self._request("PUT", "/me/player/pause", params=params)
        if response.status_code in (200, 202, 204):
            return
        logger.debug("spotify.pause.failed", extra={"status": response.status_code, "device_id": device_id})
        raise self._error_from(response, "Pause")

    def set_volume(self, volume_percent: int, device_id: Optional[str] = None) -> None:
        params: Dict[str, Any] = {"volume_percent": max(0, min(100, int(volume_percent)))}
        if device_id:
            params["device_id"] = device_id

        response = self._request("PUT", "/me/player/volume", params=params)
        if response.status_code in (200, 202, 204):
            return
        logger.warning(
            "spotify.volume.failed",
            extra={
                "status": response.status_code,
                "device_id": device_id,
                "requested_volume": params["volume_percent"],
            },
        )
        raise self._error_from(response, "Set volume")

    def get_devices(self) -> List[Dict[str, Any]]:
        response = self._request("GET", "/me/player/devices")
        if response.status_code != 200:
            raise self._error_from(response, "Device list")
        devices = response.json().get("devices", [])
        return [
            {
                "id": device.get("id"),
                "name": device.get("name"),
                "type": device.get("type"),
                "is_active": bool(device.get("is_active")),
                "volume_percent": device.get("volume_percent"),
            }
            for device in devices
        ]

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    @staticmethod
    def _track_summary(item: Dict[str, Any]) -> Dict[str, Any]:
        artists = item.get("artists") or []
        album = item.get("album") or {}
        images = album.get("images") or []
        duration_ms = item.get("duration_ms")
        return {
            "uri": item.get("uri"),
            "name": item.get("name"),
            "artist": ", ".join(a.get("name", "") for a in artists if a.get("name")),
            "album": album.get("name"),
            "image_url": images[0].get("url") if images else None,
            "duration_ms": duration_ms,
            "duration_seconds": int(duration_ms // 1000) if duration_ms else None,
        }

    def search_tracks(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Search tracks by free text and return display-ready summaries."""
        query = (query or "").strip()
        if not query:
            return []
        response = self._request(
            "GET",
            "/search",
            params={"q": query, "type": "track", "limit": max(1, min(50, int(limit)))},
        )
        if response.status_code != 200:
            raise self._error_from(response, "Search")
        items = (response.json().get("tracks") or {}).get("items") or []
        return [self._track_summary(item) for item in items if item]

    def get_track(self, track_id: str) -> Optional[Dict[str, Any]]:
        """Look up one track by id or spotify:track URI; None if unknown."""
        track_id = track_id.rsplit(":", 1)[-1]
        response = self._request("GET", f"/tracks/{track_id}")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise self._error_from(response, "Track lookup")
        return self._track_summary(response.json())


__all__ = [
    "API_BASE",
    "NoActiveDeviceError",
    "PlaybackState",
    "SpotifyApiError",
    "SpotifyAuthError",
    "SpotifyPlayerClient",
]
