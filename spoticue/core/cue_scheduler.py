#!/usr/bin/env python3
"""
🎼 TrackScheduler - owns the schedule engine
Wires the store, tick clock, executor, completion monitors and restore agent
together and exposes the operations used by the service layer.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from ..api.spotify import SpotifyAuthError, SpotifyPlayerClient
from ..config import load_settings, resolve_schedules_path
from ..config_schema import SchedulerSettings
from ..utils.validation import validate_schedule_fields
from .active import ActiveTriggerRegistry
from .clock import SystemClock
from .executor import TriggerExecutor
from .models import ActiveTrigger, Schedule
from .monitor import CompletionMonitor
from .notifications import NotificationBus
from .restore import RestoreAgent
from .store import JsonFileBlobStore, ScheduleStore
from .trigger_clock import TriggerClock

_logger = logging.getLogger("spoticue.scheduler")


class TrackScheduler:
    """Schedules Spotify tracks at times of day.

    All collaborators are injectable; ``get_cue_scheduler()`` builds the
    production wiring from settings.
    """

    def __init__(
        self,
        player,
        blob_store,
        settings: Optional[SchedulerSettings] = None,
        clock=None,
        bus: Optional[NotificationBus] = None,
    ):
        self.settings = settings or SchedulerSettings()
        self.player = player
        self.clock = clock or SystemClock()
        self.bus = bus or NotificationBus()
        self.store = ScheduleStore(blob_store)
        self.registry = ActiveTriggerRegistry()

        self._stop_event = threading.Event()
        self._lock = threading.RLock()
        self._pool: Optional[ThreadPoolExecutor] = None
        self._initialized = False

        self.restore_agent = RestoreAgent(
            player, self.bus, self.clock, settle_seconds=self.settings.restore_settle_seconds
        )
        self.monitor = CompletionMonitor(
            player,
            self.restore_agent,
            self.clock,
            poll_seconds=self.settings.monitor_poll_seconds,
            restore_settle_seconds=self.settings.restore_settle_seconds,
            max_monitor_seconds=self.settings.max_monitor_seconds,
            track_end_tolerance_ms=self.settings.track_end_tolerance_ms,
            on_finished=self.registry.release,
            stop_event=self._stop_event,
        )
        self.executor = TriggerExecutor(
            player,
            self.store,
            self.registry,
            self.monitor,
            self.bus,
            self.clock,
            pause_settle_seconds=self.settings.pause_settle_seconds,
            stop_event=self._stop_event,
        )
        self.trigger_clock = TriggerClock(
            self.store,
            self.clock,
            self._submit_batch,
            check_interval_seconds=self.settings.check_interval_seconds,
            trigger_window_seconds=self.settings.trigger_window_seconds,
            catchup_policy=self.settings.catchup_policy,
            catchup_grace_seconds=self.settings.catchup_grace_seconds,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, start_clock: bool = True) -> None:
        """Load schedules and start the tick thread."""
        with self._lock:
            if self._initialized:
                return
            self._stop_event.clear()
            self.store.load(self.clock.now().date())
            self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="CueFire")
            if start_clock:
                self.trigger_clock.start()
            self._initialized = True
            _logger.info(f"🎼 TrackScheduler ready with {len(self.store)} schedule(s)")

    def shutdown(self) -> None:
        """Stop ticking, cancel every monitor and drop queued fires."""
        with self._lock:
            self._stop_event.set()
            self.registry.cancel_all()
            self.trigger_clock.stop()
            if self._pool is not None:
                self._pool.shutdown(wait=False, cancel_futures=True)
                self._pool = None
            self._initialized = False
        _logger.info("⏹️ TrackScheduler stopped")

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def _submit_batch(self, batch: List[Schedule]) -> None:
        with self._lock:
            pool = self._pool
        if pool is None or self._stop_event.is_set():
            _logger.debug("Ignoring due batch while stopped")
            return
        pool.submit(self.run_batch, batch)

    def run_batch(self, batch: List[Schedule]) -> List[ActiveTrigger]:
        """Fire ``batch`` sequentially in order; failures do not stop the batch."""
        fired: List[ActiveTrigger] = []
        for schedule in batch:
            if self._stop_event.is_set():
                break
            try:
                active = self.executor.fire(schedule)
            except SpotifyAuthError:
                _logger.error(f"🔐 Skipping {schedule.id}: Spotify authentication required")
                continue
            except Exception as exc:
                _logger.error(f"❌ Unexpected error firing {schedule.id}: {exc}", exc_info=True)
                continue
            if active is not None:
                fired.append(active)
        return fired

    def trigger_now(self, schedule_id: str) -> Optional[ActiveTrigger]:
        """Fire a schedule immediately regardless of its time or flags.

        The fire is queued on the same single worker as due batches and
        this call blocks until it has run.

        Raises:
            KeyError: Unknown schedule id.
            SpotifyAuthError: Spotify needs a new login.
        """
        schedule = self.store.get(schedule_id)
        if schedule is None:
            raise KeyError(schedule_id)
        _logger.info(f"⚡ Manual trigger for {schedule_id}")
        with self._lock:
            pool = self._pool
            future = None
            if pool is not None and not self._stop_event.is_set():
                future = pool.submit(self.executor.fire, schedule, True)
        if future is None:
            return self.executor.fire(schedule, force=True)
        return future.result()

    # ------------------------------------------------------------------
    # Schedule management
    # ------------------------------------------------------------------

    def add_schedule(self, **fields: Any) -> Schedule:
        """Validate ``fields`` and store a new schedule.

        Raises:
            ValidationError: When a field is missing or malformed.
        """
        return self.store.add(validate_schedule_fields(fields))

    def remove_schedule(self, schedule_id: str) -> bool:
        removed = self.store.remove(schedule_id)
        if removed:
            self.registry.clear(schedule_id)
        return removed

    def toggle_schedule(self, schedule_id: str) -> Optional[Schedule]:
        return self.store.toggle(schedule_id)

    def list_schedules(self) -> List[Schedule]:
        return self.store.list()

    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        return self.store.get(schedule_id)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def active_status(self) -> Optional[Dict[str, Any]]:
        """Status of the most recently started in-flight trigger."""
        active = self.registry.latest()
        if active is None:
            return None
        return active.status(self.clock.monotonic())

    def active_statuses(self) -> List[Dict[str, Any]]:
        now = self.clock.monotonic()
        return [active.status(now) for active in self.registry.all()]


_scheduler_instance: Optional[TrackScheduler] = None
_scheduler_lock = threading.Lock()


def build_default_scheduler(settings: Optional[SchedulerSettings] = None) -> TrackScheduler:
    settings = settings or load_settings()
    blob_store = JsonFileBlobStore(resolve_schedules_path(settings))
    return TrackScheduler(SpotifyPlayerClient(), blob_store, settings=settings)


def get_cue_scheduler() -> TrackScheduler:
    global _scheduler_instance
    with _scheduler_lock:
        if _scheduler_instance is None:
            _scheduler_instance = build_default_scheduler()
        return _scheduler_instance
