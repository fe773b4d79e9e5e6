"""Shared pytest fixtures for the SpotiCue test suite."""

from __future__ import annotations

import datetime
import threading
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import pytest

from spoticue.api.spotify import PlaybackState
from spoticue.config_schema import SchedulerSettings
from spoticue.core.cue_scheduler import TrackScheduler
from spoticue.core.store import MemoryBlobStore

TZ = ZoneInfo("Europe/Vienna")

TRACK_A = "spotify:track:4uLU6hMCjMI75M1A2tKUQC"
TRACK_B = "spotify:track:7GhIk7Il098yCjg4BQjzvb"
PLAYLIST = "spotify:playlist:37i9dQZF1DXcBWIGoYBM5M"


class FakeClock:
    """Deterministic clock: ``wait`` advances time instead of sleeping."""

    def __init__(self, start: datetime.datetime):
        self._now = start
        self._monotonic = 1000.0
        self._lock = threading.Lock()
        self.waits: List[float] = []

    def now(self) -> datetime.datetime:
        with self._lock:
            return self._now

    def monotonic(self) -> float:
        with self._lock:
            return self._monotonic

    def advance(self, seconds: float) -> None:
        with self._lock:
            self._now += datetime.timedelta(seconds=seconds)
            self._monotonic += seconds

    def set(self, when: datetime.datetime) -> None:
        with self._lock:
            self._monotonic += (when - self._now).total_seconds()
            self._now = when

    def wait(self, event: threading.Event, seconds: float) -> bool:
        if event.is_set():
            return True
        self.waits.append(seconds)
        self.advance(seconds)
        return event.is_set()


class FakePlayer:
    """Records commands and simulates a single Spotify device."""

    def __init__(self, clock: FakeClock, state: Optional[PlaybackState] = None):
        self.clock = clock
        self.state = state
        self.calls: List[Tuple[str, Dict[str, Any], float]] = []
        self.failures: Dict[str, Exception] = {}
        self.track_duration_ms = 180_000
        self.scripted_states: List[Any] = []

    def _record(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs, self.clock.monotonic()))
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def names(self) -> List[str]:
        return [name for name, _, _ in self.calls]

    def commands(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Calls excluding state polls."""
        return [(name, kwargs) for name, kwargs, _ in self.calls if name != "get_playback_state"]

    def get_playback_state(self) -> Optional[PlaybackState]:
        self._record("get_playback_state")
        if self.scripted_states:
            item = self.scripted_states.pop(0)
            if isinstance(item, Exception):
                raise item
            self.state = item
        return self.state

    def pause(self, device_id: Optional[str] = None) -> None:
        self._record("pause")
        if self.state is not None:
            self.state = PlaybackState(
                is_playing=False,
                track_uri=self.state.track_uri,
                duration_ms=self.state.duration_ms,
                progress_ms=self.state.progress_ms,
                context_uri=self.state.context_uri,
                volume_percent=self.state.volume_percent,
            )

    def set_volume(self, volume_percent: int, device_id: Optional[str] = None) -> None:
        self._record("set_volume", volume_percent=volume_percent)

    def play(self, uris=None, context_uri=None, position_ms=None, device_id=None) -> None:
        kwargs: Dict[str, Any] = {}
        if uris is not None:
            kwargs["uris"] = uris
        if context_uri is not None:
            kwargs["context_uri"] = context_uri
        if position_ms is not None:
            kwargs["position_ms"] = position_ms
        self._record("play", **kwargs)
        self.state = PlaybackState(
            is_playing=True,
            track_uri=uris[0] if uris else None,
            duration_ms=self.track_duration_ms,
            progress_ms=position_ms or 0,
            context_uri=context_uri,
        )

    def get_devices(self) -> List[Dict[str, Any]]:
        self._record("get_devices")
        return [
            {"id": "dev1", "name": "Kitchen", "type": "Speaker", "is_active": False, "volume_percent": 40},
            {"id": "dev2", "name": "Desk", "type": "Computer", "is_active": True, "volume_percent": 60},
        ]

    def search_tracks(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        self._record("search_tracks", query=query, limit=limit)
        return [{"uri": TRACK_A, "name": "Morning Song", "artist": "Band", "duration_seconds": 200}]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.datetime(2025, 3, 10, 6, 59, 50, tzinfo=TZ))


@pytest.fixture
def player(clock) -> FakePlayer:
    return FakePlayer(clock)


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def settings() -> SchedulerSettings:
    return SchedulerSettings()


@pytest.fixture
def scheduler(player, blob_store, settings, clock):
    """Scheduler with its tick thread stopped; tests drive ``tick`` directly."""
    instance = TrackScheduler(player, blob_store, settings=settings, clock=clock)
    instance.initialize(start_clock=False)
    yield instance
    instance.shutdown()


@pytest.fixture
def inline_monitor(scheduler):
    """Run completion monitors synchronously inside ``fire``."""
    scheduler.monitor.start = scheduler.monitor.run
    return scheduler


@pytest.fixture
def parked_monitor(scheduler):
    """Record started monitors without running them."""
    started = []
    scheduler.monitor.start = started.append
    return started
