"""
🎼 Schedule Service - Business Logic for Track Schedules
=======================================================

Adds, removes, toggles and fires schedules through the TrackScheduler and
reports what is currently playing because of a schedule.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from . import BaseService, ServiceResult
from ..api.spotify import SpotifyApiError, SpotifyAuthError
from ..core.cue_scheduler import TrackScheduler
from ..core.models import Schedule
from ..core.scheduler import format_time_until, next_occurrence
from ..utils.validation import ValidationError


class ScheduleService(BaseService):
    """Service for managing scheduled track cues."""

    def __init__(self, scheduler: TrackScheduler, start_clock: bool = True):
        super().__init__("schedule")
        self.scheduler = scheduler
        self._start_clock = start_clock

    def initialize(self) -> ServiceResult:
        try:
            self.scheduler.initialize(start_clock=self._start_clock)
        except Exception as e:
            self.logger.error(f"Failed to start scheduler: {e}", exc_info=True)
            return self._error_result("Failed to start scheduler", error_code="INIT_FAILED")
        return super().initialize()

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        super().shutdown()

    def _describe(self, schedule: Schedule, reference: Optional[datetime] = None) -> Dict[str, Any]:
        reference = reference or self.scheduler.clock.now()
        data = schedule.to_dict()
        next_fire = next_occurrence(schedule.time, reference)
        data["next_fire"] = format_time_until(schedule.time, reference) if schedule.enabled else None
        data["next_fire_iso"] = next_fire.isoformat() if (next_fire and schedule.enabled) else None
        data["partial_play"] = schedule.has_partial_duration
        return data

    def list_schedules(self) -> ServiceResult:
        try:
            now = self.scheduler.clock.now()
            schedules = [self._describe(s, now) for s in self.scheduler.list_schedules()]
            return self._success_result(
                data={"schedules": schedules, "count": len(schedules)},
                message="Schedules retrieved successfully"
            )
        except Exception as e:
            return self._handle_error(e, "list_schedules")

    def add_schedule(self, form_data: Dict[str, Any]) -> ServiceResult:
        try:
            schedule = self.scheduler.add_schedule(**form_data)
        except ValidationError as e:
            return self._error_result(e.message, error_code=e.field_name)
        except Exception as e:
            return self._handle_error(e, "add_schedule")

        self.logger.info(
            "Schedule added: Time=%s Track=%s Volume=%s%% Restore=%s Repeat=%s",
            schedule.time, schedule.track_uri, schedule.volume,
            schedule.restore_playback, schedule.repeat_daily,
        )
        return self._success_result(
            data=self._describe(schedule),
            message=f"Scheduled {schedule.track_name} at {schedule.time}"
        )

    def remove_schedule(self, schedule_id: str) -> ServiceResult:
        try:
            if not self.scheduler.remove_schedule(schedule_id):
                return self._error_result(f"Schedule {schedule_id} not found", error_code="NOT_FOUND")
            return self._success_result(data={"id": schedule_id}, message="Schedule removed")
        except Exception as e:
            return self._handle_error(e, "remove_schedule")

    def toggle_schedule(self, schedule_id: str) -> ServiceResult:
        try:
            schedule = self.scheduler.toggle_schedule(schedule_id)
            if schedule is None:
                return self._error_result(f"Schedule {schedule_id} not found", error_code="NOT_FOUND")
            state = "enabled" if schedule.enabled else "disabled"
            return self._success_result(data=self._describe(schedule), message=f"Schedule {state}")
        except Exception as e:
            return self._handle_error(e, "toggle_schedule")

    def trigger_now(self, schedule_id: str) -> ServiceResult:
        try:
            active = self.scheduler.trigger_now(schedule_id)
        except KeyError:
            return self._error_result(f"Schedule {schedule_id} not found", error_code="NOT_FOUND")
        except SpotifyAuthError:
            return self._error_result(
                "Spotify authentication required. Please configure your credentials.",
                error_code="AUTH_REQUIRED"
            )
        except SpotifyApiError as e:
            return self._error_result(str(e), error_code="SPOTIFY_ERROR")
        except Exception as e:
            return self._handle_error(e, "trigger_now")

        if active is None:
            return self._error_result("Playback could not be started", error_code="TRIGGER_FAILED")
        return self._success_result(
            data=active.status(self.scheduler.clock.monotonic()),
            message=f"Now playing: {active.schedule.track_name}"
        )

    def get_active_status(self) -> ServiceResult:
        try:
            return self._success_result(data={
                "active": self.scheduler.active_status(),
                "all": self.scheduler.active_statuses(),
            })
        except Exception as e:
            return self._handle_error(e, "get_active_status")

    def get_notifications(self, limit: int = 20) -> ServiceResult:
        try:
            items = [n.to_dict() for n in self.scheduler.bus.recent(limit)]
            return self._success_result(data={"notifications": items, "count": len(items)})
        except Exception as e:
            return self._handle_error(e, "get_notifications")

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        clock_running = self.scheduler.trigger_clock.running
        return self._success_result(data={
            "status": "healthy" if (clock_running or not self._start_clock) else "degraded",
            "service": self.name,
            "schedules": len(self.scheduler.store),
            "active_triggers": len(self.scheduler.registry),
            "clock_running": clock_running,
        })
