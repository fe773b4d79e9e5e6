#!/usr/bin/env python3
"""
👀 Completion monitoring for fired schedules
Each fired schedule gets one monitor thread that polls the player until the
cue is over, then pauses and/or restores as the schedule's strategy demands.
Every strategy hands its ActiveTrigger back through ``on_finished`` last.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..api.spotify import PlaybackState, SpotifyApiError
from .models import ActiveTrigger, MonitorStrategy
from .restore import RestoreAgent

logger = logging.getLogger("spoticue.monitor")

_POLL_FAILED = object()


class CompletionMonitor:
    """Runs the strategy selected for an ActiveTrigger."""

    def __init__(
        self,
        player,
        restore_agent: RestoreAgent,
        clock,
        poll_seconds: float = 1.0,
        restore_settle_seconds: float = 1.0,
        max_monitor_seconds: float = 600,
        track_end_tolerance_ms: int = 1000,
        on_finished: Optional[Callable[[ActiveTrigger], None]] = None,
        stop_event: Optional[threading.Event] = None,
    ):
        self._player = player
        self._restore_agent = restore_agent
        self._clock = clock
        self.poll_seconds = poll_seconds
        self.restore_settle_seconds = restore_settle_seconds
        self.max_monitor_seconds = max_monitor_seconds
        self.track_end_tolerance_ms = track_end_tolerance_ms
        self._on_finished = on_finished
        self._stop_event = stop_event or threading.Event()

    def start(self, active: ActiveTrigger) -> threading.Thread:
        thread = threading.Thread(
            target=self.run,
            args=(active,),
            name=f"CueMonitor-{active.schedule_id}",
            daemon=True,
        )
        thread.start()
        return thread

    def run(self, active: ActiveTrigger) -> None:
        logger.debug(f"👀 Monitoring {active.schedule_id} ({active.strategy.value})")
        try:
            if self._stop_event.is_set():
                logger.info(f"⏹️ Scheduler stopped, not monitoring {active.schedule_id}")
                active.cancel()
                return
            if active.strategy is MonitorStrategy.DURATION_CAPPED:
                self._run_duration_capped(active)
            elif active.strategy is MonitorStrategy.NATURAL_END_RESTORE:
                self._run_natural_end(active)
            else:
                self._run_fire_and_forget(active)
        except Exception as exc:
            logger.error(f"❌ Monitor for {active.schedule_id} crashed: {exc}", exc_info=True)
        finally:
            if self._on_finished:
                self._on_finished(active)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _elapsed(self, active: ActiveTrigger) -> float:
        return self._clock.monotonic() - active.started_monotonic

    def _poll(self, active: ActiveTrigger):
        """Current playback state, or ``_POLL_FAILED`` on a transient error."""
        try:
            return self._player.get_playback_state()
        except SpotifyApiError as exc:
            logger.warning(f"⚠️ Playback poll failed for {active.schedule_id}: {exc}",
                           extra={"event": "monitor.poll.failed"})
            return _POLL_FAILED

    def _is_scheduled_track(self, active: ActiveTrigger, state: Optional[PlaybackState]) -> bool:
        return state is not None and state.track_uri == active.schedule.track_uri

    def _restore(self, active: ActiveTrigger) -> None:
        if not active.schedule.restore_playback:
            return
        if active.captured_state is None:
            logger.info(f"ℹ️ No captured playback for {active.schedule_id}, skipping restore")
            return
        self._restore_agent.restore(active.captured_state, active.cancel_event, schedule_id=active.schedule_id)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _run_duration_capped(self, active: ActiveTrigger) -> None:
        cap = float(active.schedule.playback_duration_seconds)

        while True:
            remaining = cap - self._elapsed(active)
            if remaining <= 0:
                break
            if self._clock.wait(active.cancel_event, min(self.poll_seconds, remaining)):
                return
            if self._elapsed(active) >= cap:
                break
            state = self._poll(active)
            if state is _POLL_FAILED:
                continue
            if not self._is_scheduled_track(active, state):
                logger.info(f"🔀 Playback moved on from {active.schedule_id}, stopping monitor")
                return

        state = self._poll(active)
        while state is _POLL_FAILED:
            if self._elapsed(active) >= cap + self.max_monitor_seconds:
                logger.warning(f"⏱️ Could not read playback for {active.schedule_id} at its cap, giving up")
                return
            if self._clock.wait(active.cancel_event, self.poll_seconds):
                return
            state = self._poll(active)
        if not self._is_scheduled_track(active, state):
            logger.info(f"🔀 {active.schedule_id} no longer playing at its cap, leaving playback alone")
            return

        try:
            self._player.pause()
        except SpotifyApiError as exc:
            logger.warning(f"⚠️ Could not pause {active.schedule_id} at its cap: {exc}")
            return
        logger.info(f"⏸️ Paused {active.schedule_id} after {int(cap)}s")

        if not active.schedule.restore_playback:
            return
        if self._clock.wait(active.cancel_event, self.restore_settle_seconds):
            return
        self._restore(active)

    def _run_natural_end(self, active: ActiveTrigger) -> None:
        while self._elapsed(active) < self.max_monitor_seconds:
            if self._clock.wait(active.cancel_event, self.poll_seconds):
                return
            state = self._poll(active)
            if state is _POLL_FAILED:
                continue

            if state is None or not state.is_playing:
                logger.info(f"🏁 {active.schedule_id} stopped, restoring")
                self._restore(active)
                return
            if state.track_uri and state.track_uri != active.schedule.track_uri:
                logger.info(f"🔀 Different track playing, not restoring {active.schedule_id}")
                return
            if state.duration_ms and state.progress_ms >= state.duration_ms - self.track_end_tolerance_ms:
                logger.info(f"🏁 {active.schedule_id} reached the end of the track, restoring")
                self._restore(active)
                return

        logger.warning(f"⏱️ Monitor for {active.schedule_id} hit the {int(self.max_monitor_seconds)}s limit")

    def _run_fire_and_forget(self, active: ActiveTrigger) -> None:
        while self._elapsed(active) < self.max_monitor_seconds:
            if self._clock.wait(active.cancel_event, self.poll_seconds):
                return
            state = self._poll(active)
            if state is _POLL_FAILED:
                continue
            if state is None or not state.is_playing or state.track_uri != active.schedule.track_uri:
                logger.debug(f"🏁 {active.schedule_id} finished")
                return
