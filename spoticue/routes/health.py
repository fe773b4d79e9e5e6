"""
🩺 Health & Status Routes Blueprint
"""

from flask import Blueprint, jsonify

from ..services.service_manager import get_service_manager
from ..version import VERSION, get_app_info
from .helpers import api_error_handler, api_response

health_bp = Blueprint("health", __name__)


@health_bp.route("/healthz")
def healthz():
    """Basic health check endpoint."""
    return jsonify({"ok": True, "version": str(VERSION)})


@health_bp.route("/api/health")
@api_error_handler
def health_detail():
    result = get_service_manager().health_check_all()
    data = {**(result.data or {}), "app": get_app_info()}
    status = 200 if data.get("overall_healthy") else 503
    return api_response(result.success, data=data, message=result.message or "", status=status)
