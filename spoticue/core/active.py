"""Registry of in-flight triggers keyed by schedule id."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from .models import ActiveTrigger


class ActiveTriggerRegistry:
    def __init__(self):
        self._active: Dict[str, ActiveTrigger] = {}
        self._lock = threading.RLock()

    def register(self, active: ActiveTrigger) -> Optional[ActiveTrigger]:
        """Store ``active``; a previous trigger of the same schedule is cancelled and returned."""
        with self._lock:
            previous = self._active.get(active.schedule_id)
            self._active[active.schedule_id] = active
        if previous is not None and previous is not active:
            previous.cancel()
            return previous
        return None

    def release(self, active: ActiveTrigger) -> None:
        """Remove ``active`` unless a newer trigger replaced it."""
        with self._lock:
            if self._active.get(active.schedule_id) is active:
                del self._active[active.schedule_id]

    def clear(self, schedule_id: str) -> None:
        with self._lock:
            active = self._active.pop(schedule_id, None)
        if active is not None:
            active.cancel()

    def get(self, schedule_id: str) -> Optional[ActiveTrigger]:
        with self._lock:
            return self._active.get(schedule_id)

    def all(self) -> List[ActiveTrigger]:
        """Active triggers, oldest first."""
        with self._lock:
            items = list(self._active.values())
        return sorted(items, key=lambda a: a.started_monotonic)

    def latest(self) -> Optional[ActiveTrigger]:
        items = self.all()
        return items[-1] if items else None

    def cancel_all(self) -> None:
        with self._lock:
            items = list(self._active.values())
            self._active.clear()
        for active in items:
            active.cancel()

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)
