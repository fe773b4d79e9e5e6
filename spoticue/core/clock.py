"""Wall-clock and monotonic time source used by the scheduler threads."""

from __future__ import annotations

import datetime
import threading
import time
from typing import Optional

from ..utils.timezone import get_local_timezone


class SystemClock:
    """Real time; tests substitute a clock whose ``wait`` advances time."""

    def __init__(self, tzinfo: Optional[datetime.tzinfo] = None):
        self._tzinfo = tzinfo

    @property
    def tzinfo(self) -> datetime.tzinfo:
        return self._tzinfo or get_local_timezone()

    def now(self) -> datetime.datetime:
        return datetime.datetime.now(tz=self.tzinfo)

    def monotonic(self) -> float:
        return time.monotonic()

    def wait(self, event: threading.Event, seconds: float) -> bool:
        """Block up to ``seconds``; True if ``event`` was set."""
        return event.wait(max(0.0, seconds))
