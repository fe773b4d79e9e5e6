"""Tick loop deciding which schedules are due.

- Wakes every ``check_interval_seconds`` and compares local wall-clock time
  against each enabled, not yet fired schedule
- A schedule is due during the first ``trigger_window_seconds`` of its minute
- Applies the daily reset when the calendar date changes
- Detects stalls (suspend, clock jumps) and fires missed schedules according
  to the configured catch-up policy
- Hands each tick's due schedules to ``dispatch`` as one batch so the loop
  itself never blocks on Spotify
"""
from __future__ import annotations

import datetime as _dt
import logging
import threading
from typing import Callable, Dict, List, Optional, Set, Tuple

from .models import Schedule
from .scheduler import is_in_trigger_window, missed_occurrence
from .store import ScheduleStore

_logger = logging.getLogger("spoticue.trigger_clock")

DispatchKey = Tuple[str, str, str]


class TriggerClock:
    def __init__(
        self,
        store: ScheduleStore,
        clock,
        dispatch: Callable[[List[Schedule]], None],
        check_interval_seconds: float = 1.0,
        trigger_window_seconds: int = 2,
        catchup_policy: str = "latest",
        catchup_grace_seconds: float = 600,
    ):
        self._store = store
        self._clock = clock
        self._dispatch = dispatch
        self.check_interval_seconds = check_interval_seconds
        self.trigger_window_seconds = trigger_window_seconds
        self.catchup_policy = catchup_policy
        self.catchup_grace_seconds = catchup_grace_seconds

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.RLock()
        self._running = False
        self._last_tick: Optional[_dt.datetime] = None
        self._last_date: Optional[_dt.date] = None
        self._dispatched: Set[DispatchKey] = set()

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run_loop, name="TriggerClock", daemon=True)
            self._running = True
            self._thread.start()
            _logger.info("⏰ TriggerClock started")

    def stop(self, timeout: Optional[float] = 2.0) -> None:
        self._stop_event.set()
        with self._lock:
            thread = self._thread
            self._thread = None
            self._running = False
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as exc:
                _logger.error(f"❌ Tick failed: {exc}", exc_info=True)
            if self._clock.wait(self._stop_event, self.check_interval_seconds):
                break
        _logger.info("⏹️ TriggerClock stopped")

    def _roll_over_if_needed(self, now: _dt.datetime) -> None:
        today = now.date()
        if self._last_date is not None and today != self._last_date:
            self._store.roll_over(today)
            yesterday = (today - _dt.timedelta(days=1)).isoformat()
            self._dispatched = {key for key in self._dispatched if key[1] >= yesterday}
        self._last_date = today

    def _collect_missed(
        self, candidates: List[Schedule], last_tick: _dt.datetime, now: _dt.datetime
    ) -> Dict[str, _dt.datetime]:
        missed: Dict[str, _dt.datetime] = {}
        for schedule in candidates:
            occurrence = missed_occurrence(schedule.time, last_tick, now, self.catchup_grace_seconds)
            if occurrence is not None:
                missed[schedule.id] = occurrence
        if missed and self.catchup_policy == "latest":
            most_recent = max(missed.values())
            missed = {sid: occ for sid, occ in missed.items() if occ == most_recent}
        return missed

    def tick(self, now: Optional[_dt.datetime] = None) -> List[Schedule]:
        """Evaluate schedules once; returns (and dispatches) the due batch."""
        now = now or self._clock.now()
        with self._lock:
            self._roll_over_if_needed(now)
            last_tick = self._last_tick
            self._last_tick = now

            candidates = [s for s in self._store.list() if s.enabled and not s.triggered]

            occurrences: Dict[str, _dt.datetime] = {}
            for schedule in candidates:
                if is_in_trigger_window(schedule.time, now, self.trigger_window_seconds):
                    occurrences[schedule.id] = now.replace(second=0, microsecond=0)

            gap = (now - last_tick).total_seconds() if last_tick else 0.0
            if last_tick and gap > 2 * self.check_interval_seconds and self.catchup_policy != "none":
                pending = [s for s in candidates if s.id not in occurrences]
                missed = self._collect_missed(pending, last_tick, now)
                if missed:
                    _logger.info(
                        f"⏪ Tick gap of {gap:.1f}s, catching up {len(missed)} schedule(s) "
                        f"(policy={self.catchup_policy})"
                    )
                occurrences.update(missed)

            batch: List[Schedule] = []
            for schedule in candidates:
                occurrence = occurrences.get(schedule.id)
                if occurrence is None:
                    continue
                key = (schedule.id, occurrence.date().isoformat(), schedule.time)
                if key in self._dispatched:
                    continue
                self._dispatched.add(key)
                batch.append(schedule)

        if batch:
            _logger.info(f"🔔 {len(batch)} schedule(s) due at {now.strftime('%H:%M:%S')}",
                         extra={"event": "clock.due", "schedule_ids": [s.id for s in batch]})
            self._dispatch(batch)
        return batch
