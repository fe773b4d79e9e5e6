#!/usr/bin/env python3
"""
🎬 Trigger execution
Runs the command sequence for one schedule: capture the current playback
(when a restore is wanted), pause, settle, set the volume, play the track,
then hand the cue to its completion monitor.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..api.spotify import SpotifyApiError, SpotifyAuthError
from ..utils.logger import log_structured
from .active import ActiveTriggerRegistry
from .models import ActiveTrigger, PlaybackSnapshot, Schedule, select_strategy
from .monitor import CompletionMonitor
from .notifications import KIND_AUTH_REQUIRED, NotificationBus
from .store import ScheduleStore

logger = logging.getLogger("spoticue.executor")


class TriggerExecutor:
    def __init__(
        self,
        player,
        store: ScheduleStore,
        registry: ActiveTriggerRegistry,
        monitor: CompletionMonitor,
        bus: NotificationBus,
        clock,
        pause_settle_seconds: float = 0.5,
        stop_event: Optional[threading.Event] = None,
    ):
        self._player = player
        self._store = store
        self._registry = registry
        self._monitor = monitor
        self._bus = bus
        self._clock = clock
        self.pause_settle_seconds = pause_settle_seconds
        self._stop_event = stop_event or threading.Event()

    def _capture(self, schedule: Schedule) -> Optional[PlaybackSnapshot]:
        try:
            state = self._player.get_playback_state()
        except SpotifyApiError as exc:
            logger.warning(f"⚠️ Could not capture playback before {schedule.id}: {exc}")
            return None
        if state is None:
            logger.info(f"ℹ️ Nothing was playing before {schedule.id}")
            return None
        return state.to_snapshot()

    def fire(self, schedule: Schedule, force: bool = False) -> Optional[ActiveTrigger]:
        """Fire ``schedule`` and start its monitor.

        Without ``force`` the schedule is re-read from the store and skipped
        when it was removed, disabled or already fired today. Returns the
        ActiveTrigger, or None when skipped or failed.

        Raises:
            SpotifyAuthError: When Spotify needs a new login.
        """
        if not force:
            current = self._store.get(schedule.id)
            if current is None or not current.enabled or current.triggered:
                logger.debug(f"⏭️ Skipping {schedule.id}: no longer due")
                return None
            schedule = current

        if self._stop_event.is_set():
            return None

        logger.info(f"🎬 Firing schedule {schedule.id} at {schedule.time}: {schedule.track_name}",
                    extra={"event": "trigger.fire", "schedule_id": schedule.id, "forced": force})

        captured = self._capture(schedule) if schedule.restore_playback else None

        try:
            self._player.pause()
        except SpotifyApiError as exc:
            logger.debug(f"Pause before {schedule.id} failed (ignored): {exc}")

        if self._clock.wait(self._stop_event, self.pause_settle_seconds):
            logger.info(f"⏹️ Shutdown while firing {schedule.id}")
            return None

        try:
            self._player.set_volume(schedule.volume)
            self._player.play(uris=[schedule.track_uri])
        except SpotifyAuthError as exc:
            self._registry.clear(schedule.id)
            logger.error(f"🔐 Authentication needed to fire {schedule.id}: {exc}",
                         extra={"event": "trigger.auth_required", "schedule_id": schedule.id})
            self._bus.error("Spotify authentication required", schedule_id=schedule.id, kind=KIND_AUTH_REQUIRED)
            raise
        except SpotifyApiError as exc:
            self._registry.clear(schedule.id)
            logger.error(f"❌ Failed to fire {schedule.id}: {exc}",
                         extra={"event": "trigger.failed", "schedule_id": schedule.id})
            self._bus.error(f"Error: {exc}", schedule_id=schedule.id)
            return None

        now = self._clock.now()
        try:
            self._store.mark_triggered(schedule.id, now.date())
        except OSError as exc:
            logger.warning(f"⚠️ Could not persist fired state of {schedule.id}: {exc}",
                           extra={"event": "trigger.persist_failed", "schedule_id": schedule.id})
        if self._stop_event.is_set():
            logger.info(f"⏹️ Shutdown while firing {schedule.id}, not monitoring it")
            return None

        active = ActiveTrigger(
            schedule=schedule,
            started_at=now,
            started_monotonic=self._clock.monotonic(),
            strategy=select_strategy(schedule),
            captured_state=captured,
        )
        self._registry.register(active)
        log_structured(logger, logging.INFO, "▶️ Trigger fired", schedule_id=schedule.id,
                       volume=schedule.volume, strategy=active.strategy.value,
                       will_restore=active.will_restore)
        self._bus.info(f"Now playing: {schedule.track_name}", schedule_id=schedule.id)
        self._monitor.start(active)
        return active
