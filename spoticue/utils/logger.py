#!/usr/bin/env python3
"""
🔍 Centralized Logging System for SpotiCue
Logs all activities to console and rotating files
Supports structured JSON logging for production observability
"""

import json
import logging
import logging.handlers
import os
import platform
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import psutil

IS_DEV_MODE = '--dev' in sys.argv or os.getenv('SPOTICUE_DEV') == '1'
IS_PRODUCTION = os.getenv('SPOTICUE_ENV') == 'production'

ENABLE_JSON_LOGS = os.getenv('SPOTICUE_JSON_LOGS', '0') == '1'

if IS_PRODUCTION and not IS_DEV_MODE:
    LOG_LEVEL = logging.WARNING
    ENABLE_FILE_LOGGING = False
    ENABLE_ERROR_LOGS = True
    MAX_LOG_SIZE = 1 * 1024 * 1024
    BACKUP_COUNT = 1
    ENABLE_SYSTEM_INFO = False
    if os.getenv('SPOTICUE_JSON_LOGS') is None:
        ENABLE_JSON_LOGS = True
else:
    LOG_LEVEL = logging.INFO
    ENABLE_FILE_LOGGING = True
    ENABLE_ERROR_LOGS = True
    MAX_LOG_SIZE = 10 * 1024 * 1024
    BACKUP_COUNT = 5
    ENABLE_SYSTEM_INFO = True


def _get_app_log_dir() -> Path:
    """Get application log directory path-agnostically"""
    env_log_dir = os.getenv('SPOTICUE_LOG_DIR')
    if env_log_dir:
        return Path(env_log_dir)
    app_name = os.getenv("SPOTICUE_APP_NAME", "spoticue")
    return Path.home() / f".{app_name}" / "logs"


LOG_DIR = _get_app_log_dir()

# ---- Environment overrides (systemd friendly) ----
_env_level = os.getenv('SPOTICUE_LOG_LEVEL')
if _env_level:
    LOG_LEVEL = getattr(logging, _env_level.upper(), LOG_LEVEL)

if os.getenv('SPOTICUE_FORCE_FILE_LOG') == '1':
    ENABLE_FILE_LOGGING = True
if os.getenv('SPOTICUE_DISABLE_FILE_LOG') == '1':
    ENABLE_FILE_LOGGING = False
    ENABLE_ERROR_LOGS = False

if ENABLE_FILE_LOGGING or ENABLE_ERROR_LOGS:
    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
    except OSError:
        # Console-only logging if the directory is not writable
        ENABLE_FILE_LOGGING = False
        ENABLE_ERROR_LOGS = False

_FILE_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s'

_RESERVED_RECORD_KEYS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'no_color',
))


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        if getattr(record, 'no_color', False):
            return super().format(record)

        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        original = record.levelname
        record.levelname = f"{color}{original}{reset}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class JSONFormatter(logging.Formatter):
    """Structured JSON formatter for production observability.

    Example output:
        {"timestamp": "2026-01-04T07:00:00.123Z", "level": "INFO",
         "logger": "spoticue.executor", "message": "trigger.fired",
         "schedule_id": "1767506400000", "track_uri": "spotify:track:abc"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.levelno >= logging.WARNING:
            log_data['source'] = f"{record.filename}:{record.lineno}"
            log_data['function'] = record.funcName

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Fields passed via logger.info("msg", extra={...})
        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_KEYS:
                continue
            try:
                json.dumps(value)
                log_data[key] = value
            except (TypeError, ValueError):
                log_data[key] = str(value)

        try:
            return json.dumps(log_data, ensure_ascii=True, sort_keys=True)
        except (TypeError, ValueError) as e:
            safe_data = {k: str(v) for k, v in log_data.items()}
            safe_data['_json_error'] = str(e)
            return json.dumps(safe_data, ensure_ascii=True, sort_keys=True)


def _rotating_handler(filename: str, level: int) -> Optional[logging.Handler]:
    """Rotating file handler under LOG_DIR, or None if the file cannot be opened."""
    try:
        handler = logging.handlers.RotatingFileHandler(
            LOG_DIR / filename,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
            encoding='utf-8'
        )
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if ENABLE_JSON_LOGS else logging.Formatter(_FILE_FORMAT))
    return handler


def _console_formatter() -> logging.Formatter:
    if ENABLE_JSON_LOGS:
        return JSONFormatter()
    if IS_PRODUCTION and not IS_DEV_MODE:
        return logging.Formatter('%(asctime)s | %(levelname)s | %(message)s')
    return ColoredFormatter('%(asctime)s | %(name)s | %(levelname)s | %(message)s')


def setup_logger(name: str) -> logging.Logger:
    """Attach console and rotating file handlers to ``name`` once.

    Child loggers such as ``spoticue.executor`` propagate to the configured
    ``spoticue`` logger, so the app only has to call this for the root name.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(_console_formatter())
    logger.addHandler(console_handler)

    wanted = []
    if ENABLE_FILE_LOGGING:
        wanted.append(("spoticue.log", LOG_LEVEL))
    if ENABLE_ERROR_LOGS:
        wanted.append(("spoticue_errors.log", logging.ERROR))
    for filename, level in wanted:
        handler = _rotating_handler(filename, level)
        if handler is not None:
            logger.addHandler(handler)

    return logger


def log_startup(module_name: str) -> None:
    """Log startup information for a module.

    Only shows detailed system info in development mode.
    """
    logger = logging.getLogger(module_name)
    logger.info(f"🎵 Starting {module_name}")

    if not ENABLE_SYSTEM_INFO:
        logger.info(f"📂 Logs: {LOG_DIR}")
        return

    try:
        logger.info("=" * 50)
        logger.info(f"🖥️  Platform: {platform.platform()}")
        logger.info(f"🐍 Python: {platform.python_version()}")
        memory_gb = psutil.virtual_memory().available / (1024**3)
        logger.info(f"💾 Memory: {memory_gb:.1f}GB available")
        logger.info(f"📂 Log Directory: {LOG_DIR}")
        logger.info("=" * 50)
    except Exception as e:
        logger.warning(f"Could not gather system info: {e}")


def log_shutdown(logger: logging.Logger, component_name: str) -> None:
    """Log component shutdown and flush handlers."""
    logger.info(f"🛑 Shutting down {component_name}")
    for handler in logger.handlers:
        handler.flush()


def log_structured(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Log a message with structured context fields.

    In JSON mode, context fields appear as separate JSON keys. In traditional
    mode, they're appended to the message.

    Example:
        >>> log_structured(logger, logging.INFO, "Trigger fired",
        ...                schedule_id="1767506400000", volume=80)
    """
    if ENABLE_JSON_LOGS:
        logger.log(level, message, extra=context)
    elif context:
        context_str = " ".join(f"{k}={v}" for k, v in context.items())
        logger.log(level, f"{message} | {context_str}")
    else:
        logger.log(level, message)
