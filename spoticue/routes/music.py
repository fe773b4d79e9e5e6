"""
🎵 Music Routes Blueprint
Track search, device list and auth status used when setting up a schedule.
"""

from flask import Blueprint, request

from ..services.service_manager import get_service
from .helpers import api_error_handler, service_response

music_bp = Blueprint("music", __name__)


@music_bp.route("/api/tracks/search")
@api_error_handler
def search_tracks():
    query = request.args.get("q", "")
    limit = request.args.get("limit", default=5, type=int)
    return service_response(get_service("spotify").search_tracks(query, limit=limit))


@music_bp.route("/api/devices")
@api_error_handler
def devices():
    return service_response(get_service("spotify").get_devices())


@music_bp.route("/api/spotify/auth-status")
@api_error_handler
def auth_status():
    return service_response(get_service("spotify").get_authentication_status())
