"""
🎵 Spotify Service - Track lookup and authentication status
==========================================================
"""

from datetime import datetime
from typing import Optional

from . import BaseService, ServiceResult
from ..api.auth import get_access_token, get_token_cache
from ..api.spotify import SpotifyApiError, SpotifyAuthError, SpotifyPlayerClient


class SpotifyService(BaseService):
    """Service for Spotify track search and authentication checks."""

    def __init__(self, player: SpotifyPlayerClient, token_provider=get_access_token):
        super().__init__("spotify")
        self.player = player
        self._token_provider = token_provider
        self._last_token_check: Optional[datetime] = None

    def get_authentication_status(self) -> ServiceResult:
        try:
            token = self._token_provider()
        except Exception as e:
            return self._handle_error(e, "get_authentication_status")

        self._last_token_check = datetime.now()
        if not token:
            return self._error_result(
                "Spotify authentication required. Please configure your credentials.",
                error_code="AUTH_REQUIRED"
            )
        return self._success_result(
            data={
                "authenticated": True,
                "token_cache": get_token_cache().info(),
                "last_check": self._last_token_check.isoformat(),
            },
            message="Spotify authentication successful"
        )

    def search_tracks(self, query: str, limit: int = 5) -> ServiceResult:
        if not query or not query.strip():
            return self._error_result("Search query is required", error_code="MISSING_QUERY")
        try:
            tracks = self.player.search_tracks(query, limit=limit)
        except SpotifyAuthError:
            return self._error_result(
                "Spotify authentication required. Please configure your credentials.",
                error_code="AUTH_REQUIRED"
            )
        except SpotifyApiError as e:
            return self._error_result(str(e), error_code="SPOTIFY_ERROR")
        return self._success_result(data={"tracks": tracks, "count": len(tracks), "query": query.strip()})

    def get_devices(self) -> ServiceResult:
        try:
            devices = self.player.get_devices()
        except SpotifyAuthError:
            return self._error_result(
                "Spotify authentication required. Please configure your credentials.",
                error_code="AUTH_REQUIRED"
            )
        except SpotifyApiError as e:
            return self._error_result(str(e), error_code="SPOTIFY_ERROR")
        active = next((d for d in devices if d.get("is_active")), None)
        return self._success_result(data={"devices": devices, "count": len(devices), "active": active})

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        try:
            has_token = bool(self._token_provider())
        except Exception:
            has_token = False
        return self._success_result(data={
            "status": "healthy" if has_token else "degraded",
            "service": self.name,
            "authenticated": has_token,
        })
