#!/usr/bin/env python3
"""
💾 Durable schedule collection
Schedules are kept in memory and written through to a blob store on every
mutation. The blob is a JSON document; a corrupt or unreadable blob degrades
to an empty collection.
"""

from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from .models import Schedule

logger = logging.getLogger("spoticue.store")

STORE_FORMAT_VERSION = 1


class JsonFileBlobStore:
    """Blob store backed by a single JSON file, replaced atomically on save."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load_all(self) -> Optional[bytes]:
        try:
            return self.path.read_bytes()
        except FileNotFoundError:
            return None

    def save_all(self, blob: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("wb") as handle:
            handle.write(blob)
        os.replace(tmp_path, self.path)


class MemoryBlobStore:
    """In-process blob store; used when persistence is not wanted."""

    def __init__(self, blob: Optional[bytes] = None):
        self.blob = blob
        self.save_count = 0

    def load_all(self) -> Optional[bytes]:
        return self.blob

    def save_all(self, blob: bytes) -> None:
        self.blob = blob
        self.save_count += 1


def _decode_records(blob: bytes) -> List[Dict[str, Any]]:
    payload = json.loads(blob.decode("utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("schedules", [])
    if not isinstance(payload, list):
        raise ValueError("schedule payload must be a list")
    return [record for record in payload if isinstance(record, dict)]


class ScheduleStore:
    """Ordered collection of schedules with write-through persistence."""

    def __init__(self, blob_store):
        self._blob_store = blob_store
        self._schedules: List[Schedule] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self, today: Optional[_dt.date] = None) -> List[Schedule]:
        """Read schedules from the blob store and apply the daily rollover."""
        today = today or _dt.date.today()
        with self._lock:
            self._schedules = self._read()
            if self._apply_rollover(today):
                self.save()
            logger.info(f"📋 Loaded {len(self._schedules)} schedule(s)")
            return self.list()

    def _read(self) -> List[Schedule]:
        try:
            blob = self._blob_store.load_all()
        except OSError as exc:
            logger.warning(f"⚠️ Could not read schedules, starting empty: {exc}")
            return []
        if not blob:
            return []

        try:
            records = _decode_records(blob)
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning(f"⚠️ Schedule data is corrupt, starting empty: {exc}")
            return []

        schedules: List[Schedule] = []
        seen_ids = set()
        for record in records:
            try:
                schedule = Schedule(**record)
            except (ModelValidationError, TypeError) as exc:
                logger.warning(f"⚠️ Skipping invalid schedule record {record.get('id')!r}: {exc}")
                continue
            if schedule.id in seen_ids:
                logger.warning(f"⚠️ Skipping duplicate schedule id {schedule.id!r}")
                continue
            seen_ids.add(schedule.id)
            schedules.append(schedule)
        return schedules

    def save(self) -> None:
        with self._lock:
            payload = {
                "version": STORE_FORMAT_VERSION,
                "schedules": [schedule.to_dict() for schedule in self._schedules],
            }
            blob = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
            self._blob_store.save_all(blob)

    def _apply_rollover(self, today: _dt.date) -> bool:
        today_iso = today.isoformat()
        changed = False
        kept: List[Schedule] = []
        for schedule in self._schedules:
            if schedule.triggered and not schedule.repeat_daily:
                logger.info(f"🧹 Dropping fired one-shot schedule {schedule.id} ({schedule.time})")
                changed = True
                continue
            if schedule.triggered and schedule.last_triggered_date != today_iso:
                schedule.triggered = False
                changed = True
            kept.append(schedule)
        self._schedules = kept
        return changed

    def roll_over(self, today: _dt.date) -> bool:
        """Apply the day-boundary reset; returns True when anything changed."""
        with self._lock:
            changed = self._apply_rollover(today)
            if changed:
                self.save()
                logger.info(f"🌅 Daily reset applied for {today.isoformat()}")
            return changed

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, fields: Dict[str, Any]) -> Schedule:
        """Create a schedule with a fresh id and default flags.

        Raises:
            OSError: The schedules could not be written; nothing is kept.
        """
        data = dict(fields)
        data.pop("id", None)
        data.setdefault("triggered", False)
        data.setdefault("enabled", True)
        data.setdefault("repeat_daily", True)
        schedule = Schedule(id=uuid.uuid4().hex[:12], **data)
        with self._lock:
            self._schedules.append(schedule)
            try:
                self.save()
            except OSError:
                self._schedules.pop()
                raise
        logger.info(f"➕ Added schedule {schedule.id} at {schedule.time} ({schedule.track_name})")
        return schedule.model_copy(deep=True)

    def remove(self, schedule_id: str) -> bool:
        with self._lock:
            for index, schedule in enumerate(self._schedules):
                if schedule.id == schedule_id:
                    del self._schedules[index]
                    try:
                        self.save()
                    except OSError:
                        self._schedules.insert(index, schedule)
                        raise
                    logger.info(f"➖ Removed schedule {schedule_id}")
                    return True
        return False

    def toggle(self, schedule_id: str) -> Optional[Schedule]:
        """Flip ``enabled``; returns the updated copy or None if unknown."""
        with self._lock:
            schedule = self._find(schedule_id)
            if schedule is None:
                return None
            schedule.enabled = not schedule.enabled
            try:
                self.save()
            except OSError:
                schedule.enabled = not schedule.enabled
                raise
            return schedule.model_copy(deep=True)

    def mark_triggered(self, schedule_id: str, day: _dt.date) -> Optional[Schedule]:
        with self._lock:
            schedule = self._find(schedule_id)
            if schedule is None:
                return None
            previous = (schedule.triggered, schedule.last_triggered_date)
            schedule.triggered = True
            schedule.last_triggered_date = day.isoformat()
            try:
                self.save()
            except OSError:
                schedule.triggered, schedule.last_triggered_date = previous
                raise
            return schedule.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _find(self, schedule_id: str) -> Optional[Schedule]:
        for schedule in self._schedules:
            if schedule.id == schedule_id:
                return schedule
        return None

    def get(self, schedule_id: str) -> Optional[Schedule]:
        with self._lock:
            schedule = self._find(schedule_id)
            return schedule.model_copy(deep=True) if schedule else None

    def list(self) -> List[Schedule]:
        """Deep copies of all schedules in insertion order."""
        with self._lock:
            return [schedule.model_copy(deep=True) for schedule in self._schedules]

    def __len__(self) -> int:
        with self._lock:
            return len(self._schedules)
