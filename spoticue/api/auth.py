#!/usr/bin/env python3
"""
🎟️ Spotify access token provider for SpotiCue
Refreshes the access token from a long-lived refresh token and caches it
until shortly before expiry. The scheduler only ever calls
``get_access_token()``; re-login flows belong to the surrounding app.
"""

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import requests
from dotenv import load_dotenv

from .http import get_http_session

TOKEN_ENDPOINT = "https://accounts.spotify.com/api/token"
EXPIRY_BUFFER_SECONDS = 5 * 60

logger = logging.getLogger("spoticue.auth")


def _get_env_path() -> str:
    app_name = os.getenv("SPOTICUE_APP_NAME", "spoticue")
    return os.path.join(os.path.expanduser(f"~/.{app_name}"), ".env")


@dataclass
class TokenResponse:
    """Normalized token refresh response from Spotify."""
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    received_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.received_at + max(0, int(self.expires_in))

    @property
    def is_expired(self) -> bool:
        return time.time() >= (self.expires_at - EXPIRY_BUFFER_SECONDS)


@dataclass
class SpotifyCredentials:
    client_id: Optional[str]
    client_secret: Optional[str]
    refresh_token: Optional[str]

    @classmethod
    def from_env(cls) -> "SpotifyCredentials":
        env_path = _get_env_path()
        if os.path.exists(env_path):
            load_dotenv(dotenv_path=env_path)
        # Project-root .env may supply overrides in dev setups
        load_dotenv()
        return cls(
            client_id=os.getenv("SPOTIFY_CLIENT_ID"),
            client_secret=os.getenv("SPOTIFY_CLIENT_SECRET"),
            refresh_token=os.getenv("SPOTIFY_REFRESH_TOKEN"),
        )

    @property
    def complete(self) -> bool:
        return all([self.client_id, self.client_secret, self.refresh_token])


def refresh_with_credentials(credentials: SpotifyCredentials) -> Optional[TokenResponse]:
    """Exchange the refresh token for a new access token.

    Returns None when credentials are missing or Spotify rejects them;
    network errors propagate to the caller.
    """
    if not credentials.complete:
        logger.warning("token.refresh.credentials_missing")
        return None

    response = get_http_session().post(
        TOKEN_ENDPOINT,
        data={"grant_type": "refresh_token", "refresh_token": credentials.refresh_token},
        auth=(credentials.client_id, credentials.client_secret),
    )
    if response.status_code in (400, 401):
        logger.error("token.refresh.rejected", extra={"status": response.status_code})
        return None
    response.raise_for_status()

    payload = response.json()
    token = payload.get("access_token")
    if not token:
        logger.error("token.refresh.missing_access_token")
        return None

    logger.info("token.refresh.ok")
    return TokenResponse(
        access_token=token,
        expires_in=int(payload.get("expires_in", 3600)),
        refresh_token=payload.get("refresh_token"),
        scope=payload.get("scope"),
    )


class TokenCache:
    """Thread-safe access token cache with refresh-on-demand."""

    def __init__(self, refresh_function: Callable[[], Optional[TokenResponse]]):
        self._refresh_function = refresh_function
        self._cached: Optional[TokenResponse] = None
        self._lock = threading.Lock()
        self._metrics = {'cache_hits': 0, 'refreshes': 0, 'refresh_failures': 0}

    def get_valid_token(self) -> Optional[str]:
        """Return a valid access token, refreshing if necessary; None on failure."""
        with self._lock:
            if self._cached and not self._cached.is_expired:
                self._metrics['cache_hits'] += 1
                return self._cached.access_token

            self._metrics['refreshes'] += 1
            try:
                refreshed = self._refresh_function()
            except requests.exceptions.RequestException as exc:
                logger.warning("token.refresh.network_error", extra={"error": str(exc)})
                refreshed = None

            if refreshed is None:
                self._metrics['refresh_failures'] += 1
                return None
            self._cached = refreshed
            return refreshed.access_token

    def invalidate(self) -> None:
        """Drop the cached token so the next call refreshes (used after a 401)."""
        with self._lock:
            self._cached = None

    def info(self) -> dict:
        with self._lock:
            return {
                **self._metrics,
                "has_token": self._cached is not None,
                "expires_in": int(self._cached.expires_at - time.time()) if self._cached else None,
            }


_token_cache: Optional[TokenCache] = None
_token_cache_lock = threading.Lock()


def get_token_cache() -> TokenCache:
    """Return the process-wide token cache backed by environment credentials."""
    global _token_cache
    with _token_cache_lock:
        if _token_cache is None:
            credentials = SpotifyCredentials.from_env()
            _token_cache = TokenCache(lambda: refresh_with_credentials(credentials))
        return _token_cache


def get_access_token() -> Optional[str]:
    """Get a valid access token or None if unavailable."""
    return get_token_cache().get_valid_token()


def invalidate_access_token() -> None:
    get_token_cache().invalidate()
