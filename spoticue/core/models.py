"""Domain types shared by the scheduler components."""

from __future__ import annotations

import datetime as _dt
import enum
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from ..constants import DEFAULT_ARTIST_NAME, DEFAULT_TRACK_NAME, DEFAULT_VOLUME


def _clamp_volume(value: Any) -> int:
    try:
        volume = int(value)
    except (TypeError, ValueError):
        return DEFAULT_VOLUME
    return max(0, min(100, volume))


class Schedule(BaseModel):
    """A persisted rule mapping a time of day to a playback cue."""

    id: str
    time: str = Field(pattern=r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$", description="Local time in HH:MM format")
    track_uri: str = Field(min_length=1, description="Spotify URI of the track to play")
    track_name: str = Field(default=DEFAULT_TRACK_NAME, description="Display only")
    artist_name: str = Field(default=DEFAULT_ARTIST_NAME, description="Display only")
    volume: int = Field(default=DEFAULT_VOLUME, description="Playback volume (0-100), clamped")
    restore_playback: bool = False
    repeat_daily: bool = True
    triggered: bool = False
    last_triggered_date: Optional[str] = None
    enabled: bool = True
    playback_duration_seconds: Optional[int] = None
    track_duration_seconds: Optional[int] = None

    model_config = {
        "extra": "ignore",
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator('volume', mode='before')
    @classmethod
    def clamp_volume(cls, v: Any) -> int:
        return _clamp_volume(v)

    @field_validator('playback_duration_seconds', 'track_duration_seconds', mode='before')
    @classmethod
    def empty_duration_is_none(cls, v: Any) -> Optional[int]:
        if v in (None, "", 0):
            return None
        return v

    @property
    def has_partial_duration(self) -> bool:
        """True when the cue should be cut short before the track ends."""
        return (
            self.playback_duration_seconds is not None
            and self.track_duration_seconds is not None
            and self.playback_duration_seconds < self.track_duration_seconds
        )

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Pre-trigger playback state captured for a later restore."""
    context_uri: Optional[str] = None
    track_uri: Optional[str] = None
    progress_ms: int = 0
    volume_percent: Optional[int] = None
    was_playing: bool = False


class MonitorStrategy(str, enum.Enum):
    DURATION_CAPPED = "duration_capped"
    NATURAL_END_RESTORE = "natural_end_restore"
    FIRE_AND_FORGET = "fire_and_forget"


def select_strategy(schedule: Schedule) -> MonitorStrategy:
    """Pick exactly one completion strategy from the schedule's fields."""
    if schedule.has_partial_duration:
        return MonitorStrategy.DURATION_CAPPED
    if schedule.restore_playback:
        return MonitorStrategy.NATURAL_END_RESTORE
    return MonitorStrategy.FIRE_AND_FORGET


@dataclass
class ActiveTrigger:
    """In-flight state of one fired schedule, owned by its monitor."""
    schedule: Schedule
    started_at: _dt.datetime
    started_monotonic: float
    strategy: MonitorStrategy
    captured_state: Optional[PlaybackSnapshot] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def schedule_id(self) -> str:
        return self.schedule.id

    @property
    def will_restore(self) -> bool:
        return self.schedule.restore_playback and self.captured_state is not None

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def status(self, now_monotonic: Optional[float] = None) -> Dict[str, Any]:
        now_monotonic = time.monotonic() if now_monotonic is None else now_monotonic
        elapsed = max(0, int(now_monotonic - self.started_monotonic))
        remaining = None
        if self.schedule.playback_duration_seconds:
            remaining = max(0, self.schedule.playback_duration_seconds - elapsed)
        return {
            "schedule": self.schedule.to_dict(),
            "schedule_id": self.schedule.id,
            "started_at": self.started_at.isoformat(),
            "elapsed_seconds": elapsed,
            "remaining_seconds": remaining,
            "will_restore": self.will_restore,
            "strategy": self.strategy.value,
        }
