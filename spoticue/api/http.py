#!/usr/bin/env python3
"""Shared HTTP session for Spotify Web API access (retries, timeouts, pooling)."""

import logging
import os
import platform
from threading import RLock
from typing import Any, Callable, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from ..version import VERSION

TimeoutValue = Union[float, Tuple[float, float]]

_LOGGER = logging.getLogger("spoticue.http")
_SESSION_LOCK = RLock()
_SESSION: Optional[requests.Session] = None

RETRY_STATUSES = (429, 500, 502, 503, 504)


def _float_env(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Player endpoints answer quickly; a short read timeout keeps the poll loops responsive
DEFAULT_TIMEOUT: Tuple[float, float] = (
    _float_env("SPOTICUE_HTTP_CONNECT_TIMEOUT", 4.0, 0.5),
    _float_env("SPOTICUE_HTTP_READ_TIMEOUT", 10.0, 1.0),
)


def _coerce_timeout(value: TimeoutValue) -> Tuple[float, float]:
    """Normalise timeout values to a tuple of (connect, read)."""
    if isinstance(value, tuple):
        if len(value) == 2:
            return max(0.5, float(value[0])), max(1.0, float(value[1]))
        raise ValueError("Timeout tuples must be length 2 (connect, read)")
    numeric = max(0.5, float(value))
    return numeric, numeric


def _with_default_timeout(
    request_func: Callable[..., requests.Response],
    timeout: Tuple[float, float],
) -> Callable[..., requests.Response]:
    """Wrap session.request to inject default timeouts."""

    def wrapper(method: str, url: str, **kwargs: Any) -> requests.Response:
        provided = kwargs.get("timeout")
        if provided is None:
            kwargs["timeout"] = timeout
        else:
            try:
                kwargs["timeout"] = _coerce_timeout(provided)
            except (TypeError, ValueError):
                kwargs["timeout"] = timeout
        return request_func(method, url, **kwargs)

    return wrapper


def build_retry_configuration() -> Retry:
    """Retry transient statuses, honouring Spotify's Retry-After on 429."""
    return Retry(
        total=_int_env("SPOTICUE_HTTP_RETRY_TOTAL", 3),
        connect=_int_env("SPOTICUE_HTTP_RETRY_CONNECT", 2),
        read=_int_env("SPOTICUE_HTTP_RETRY_READ", 2),
        backoff_factor=_float_env("SPOTICUE_HTTP_BACKOFF_FACTOR", 0.5, 0.0),
        status_forcelist=list(RETRY_STATUSES),
        allowed_methods=["GET", "POST", "PUT", "DELETE"],
        respect_retry_after_header=True,
        raise_on_status=False,
    )


def build_session() -> requests.Session:
    """Create a configured requests.Session with retries and timeouts."""
    session = requests.Session()

    adapter = HTTPAdapter(
        max_retries=build_retry_configuration(),
        pool_connections=_int_env("SPOTICUE_HTTP_POOL_CONNECTIONS", 4),
        pool_maxsize=_int_env("SPOTICUE_HTTP_POOL_MAXSIZE", 8),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Connection": "keep-alive",
            "Accept": "application/json",
            "User-Agent": f"SpotiCue/{VERSION} (Python {platform.python_version()}; Requests {requests.__version__})",
        }
    )
    session.request = _with_default_timeout(session.request, DEFAULT_TIMEOUT)  # type: ignore[method-assign]

    _LOGGER.debug(
        "HTTP session configured",
        extra={
            "http.timeout_connect": DEFAULT_TIMEOUT[0],
            "http.timeout_read": DEFAULT_TIMEOUT[1],
            "http.retry_total": adapter.max_retries.total,
        },
    )
    return session


def get_http_session() -> requests.Session:
    """Return the shared HTTP session, creating it if necessary."""
    global _SESSION
    if _SESSION is None:
        with _SESSION_LOCK:
            if _SESSION is None:
                _SESSION = build_session()
    return _SESSION


__all__ = ["DEFAULT_TIMEOUT", "RETRY_STATUSES", "build_retry_configuration", "build_session",
           "get_http_session"]
