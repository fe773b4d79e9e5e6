"""Replays a captured playback snapshot after a cue has finished."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..api.spotify import SpotifyApiError
from .models import PlaybackSnapshot
from .notifications import NotificationBus

logger = logging.getLogger("spoticue.restore")


class RestoreAgent:
    def __init__(self, player, bus: NotificationBus, clock, settle_seconds: float = 1.0):
        self._player = player
        self._bus = bus
        self._clock = clock
        self._settle_seconds = settle_seconds

    def restore(
        self,
        snapshot: PlaybackSnapshot,
        cancel_event: Optional[threading.Event] = None,
        schedule_id: Optional[str] = None,
    ) -> bool:
        """Return the device to ``snapshot``; one attempt, no retry.

        Returns False when cancelled during the settle delay or when a
        command failed.
        """
        cancel_event = cancel_event or threading.Event()
        if self._clock.wait(cancel_event, self._settle_seconds):
            logger.info("⏹️ Restore cancelled before it started")
            return False

        try:
            if snapshot.volume_percent is not None:
                self._player.set_volume(snapshot.volume_percent)

            if snapshot.context_uri:
                self._player.play(context_uri=snapshot.context_uri, position_ms=snapshot.progress_ms)
            elif snapshot.track_uri:
                self._player.play(uris=[snapshot.track_uri], position_ms=snapshot.progress_ms)
            else:
                self._bus.info("Previous playback restored (was paused)", schedule_id=schedule_id)
                return True
        except SpotifyApiError as exc:
            logger.warning(f"⚠️ Restore failed: {exc}", extra={"event": "restore.failed"})
            self._bus.error("Could not restore previous playback", schedule_id=schedule_id)
            return False

        logger.info("🔁 Previous playback restored",
                    extra={"event": "restore.ok", "context_uri": snapshot.context_uri})
        self._bus.info("Restored previous playback", schedule_id=schedule_id)
        return True
