#!/usr/bin/env python3
"""
🔔 User-facing notifications
The scheduler publishes short messages ("Now playing: ...", restore results,
errors) here; listeners (UI bridges, logs) subscribe without the scheduler
knowing about them.
"""

from __future__ import annotations

import datetime as _dt
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger("spoticue.notifications")

KIND_INFO = "info"
KIND_ERROR = "error"
KIND_AUTH_REQUIRED = "auth_required"


@dataclass(frozen=True)
class Notification:
    message: str
    is_error: bool = False
    kind: str = KIND_INFO
    schedule_id: Optional[str] = None
    created_at: _dt.datetime = field(default_factory=lambda: _dt.datetime.now(_dt.timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "is_error": self.is_error,
            "kind": self.kind,
            "schedule_id": self.schedule_id,
            "created_at": self.created_at.isoformat(),
        }


Listener = Callable[[Notification], None]


class NotificationBus:
    """Thread-safe publish/subscribe hub with a bounded history."""

    def __init__(self, history_size: int = 50):
        self._listeners: List[Listener] = []
        self._history: Deque[Notification] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, notification: Notification) -> None:
        with self._lock:
            self._history.append(notification)
            listeners = list(self._listeners)

        log_level = logging.WARNING if notification.is_error else logging.INFO
        logger.log(log_level, f"🔔 {notification.message}",
                   extra={"event": f"notification.{notification.kind}", "schedule_id": notification.schedule_id})

        for listener in listeners:
            try:
                listener(notification)
            except Exception as exc:
                logger.error(f"❌ Notification listener failed: {exc}", exc_info=True)

    def info(self, message: str, schedule_id: Optional[str] = None) -> None:
        self.publish(Notification(message, is_error=False, kind=KIND_INFO, schedule_id=schedule_id))

    def error(self, message: str, schedule_id: Optional[str] = None, kind: str = KIND_ERROR) -> None:
        self.publish(Notification(message, is_error=True, kind=kind, schedule_id=schedule_id))

    def recent(self, limit: int = 20) -> List[Notification]:
        """Most recent notifications, newest first."""
        with self._lock:
            items = list(self._history)
        items.reverse()
        return items[:max(0, limit)]
