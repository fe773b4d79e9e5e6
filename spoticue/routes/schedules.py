"""
🎼 Schedule Routes Blueprint
CRUD, manual trigger and status endpoints for track schedules.
"""

import logging

from flask import Blueprint, request

from ..services.service_manager import get_service
from .helpers import api_error, api_error_handler, service_response

schedules_bp = Blueprint("schedules", __name__)
logger = logging.getLogger("spoticue.routes.schedules")


def _schedule_service():
    return get_service("schedule")


@schedules_bp.route("/api/schedules", methods=["GET"])
@api_error_handler
def list_schedules():
    return service_response(_schedule_service().list_schedules())


@schedules_bp.route("/api/schedules", methods=["POST"])
@api_error_handler
def add_schedule():
    if request.is_json:
        payload = request.get_json(silent=True)
    else:
        payload = request.form.to_dict()
    if not isinstance(payload, dict):
        return api_error("Request body must be a JSON object", error_code="invalid_body")
    return service_response(_schedule_service().add_schedule(payload), success_status=201)


@schedules_bp.route("/api/schedules/active", methods=["GET"])
@api_error_handler
def active_schedule():
    return service_response(_schedule_service().get_active_status())


@schedules_bp.route("/api/schedules/<schedule_id>", methods=["DELETE"])
@api_error_handler
def remove_schedule(schedule_id: str):
    return service_response(_schedule_service().remove_schedule(schedule_id))


@schedules_bp.route("/api/schedules/<schedule_id>/toggle", methods=["POST"])
@api_error_handler
def toggle_schedule(schedule_id: str):
    return service_response(_schedule_service().toggle_schedule(schedule_id))


@schedules_bp.route("/api/schedules/<schedule_id>/trigger", methods=["POST"])
@api_error_handler
def trigger_schedule(schedule_id: str):
    return service_response(_schedule_service().trigger_now(schedule_id))


@schedules_bp.route("/api/notifications", methods=["GET"])
@api_error_handler
def notifications():
    limit = request.args.get("limit", default=20, type=int)
    return service_response(_schedule_service().get_notifications(max(1, min(limit, 50))))
