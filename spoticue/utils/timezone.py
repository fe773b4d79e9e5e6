#!/usr/bin/env python3
"""Centralised timezone utilities."""

from __future__ import annotations

import datetime
import logging
import os
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_LOGGER = logging.getLogger("spoticue.timezone")


def _resolve_timezone_name() -> Optional[str]:
    env_tz = os.getenv("SPOTICUE_TIMEZONE")
    if env_tz and env_tz.strip():
        return env_tz.strip()
    from ..config import load_settings
    try:
        return load_settings().timezone
    except Exception as exc:  # pragma: no cover - config is validated upstream
        _LOGGER.debug("Could not load settings for timezone resolution: %s", exc)
        return None


@lru_cache(maxsize=1)
def get_timezone_name() -> Optional[str]:
    """Return the configured timezone name (None = system local) with caching."""
    return _resolve_timezone_name()


@lru_cache(maxsize=8)
def _zoneinfo_cached(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def get_local_timezone() -> datetime.tzinfo:
    """Return the configured ZoneInfo, or the system's local tzinfo."""
    tz_name = get_timezone_name()
    if tz_name:
        try:
            return _zoneinfo_cached(tz_name)
        except ZoneInfoNotFoundError:
            _LOGGER.warning("Unknown timezone '%s' – falling back to system local time", tz_name)
    local = datetime.datetime.now().astimezone().tzinfo
    return local if local is not None else datetime.timezone.utc
