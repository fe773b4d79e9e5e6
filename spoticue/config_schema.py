"""
Pydantic models for SpotiCue configuration validation

This module provides type-safe configuration schemas with automatic validation,
preventing runtime errors from malformed config files.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import (CATCHUP_POLICIES, MAX_MONITOR_SECONDS,
                        TRACK_END_TOLERANCE_MS, TRIGGER_WINDOW_SECONDS)


class SchedulerSettings(BaseModel):
    """Complete SpotiCue configuration schema.

    Timing values are seconds unless the field name says otherwise.

    Example:
        >>> settings = SchedulerSettings(**json.load(open("config/production.json")))
        >>> settings.check_interval_seconds
        1.0
    """

    # Trigger clock
    check_interval_seconds: float = Field(default=1.0, gt=0, le=30, description="Clock tick interval")
    trigger_window_seconds: int = Field(default=TRIGGER_WINDOW_SECONDS, ge=1, le=59, description="Seconds into the minute a schedule may still fire")
    catchup_policy: str = Field(default="latest", description="What to fire after a missed tick gap: latest, all or none")
    catchup_grace_seconds: int = Field(default=600, ge=0, le=3600, description="Oldest missed occurrence still fired on catch-up")

    # Trigger executor / restore
    pause_settle_seconds: float = Field(default=0.5, ge=0, le=10, description="Wait after pausing before new commands")
    restore_settle_seconds: float = Field(default=1.0, ge=0, le=10, description="Wait before replaying the captured state")

    # Completion monitor
    monitor_poll_seconds: float = Field(default=1.0, gt=0, le=30, description="Playback state poll interval")
    max_monitor_seconds: int = Field(default=MAX_MONITOR_SECONDS, ge=10, le=7200, description="Hard bound for a monitor loop")
    track_end_tolerance_ms: int = Field(default=TRACK_END_TOLERANCE_MS, ge=0, le=10000, description="Progress margin that counts as track end")

    # Storage
    schedules_path: str = Field(default="", description="JSON file holding the schedules (empty = ~/.spoticue/schedules.json)")

    # Runtime settings
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$", description="Logging level")
    timezone: Optional[str] = Field(default=None, description="IANA timezone; None uses the system local time")
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=5001, ge=1, le=65535, description="HTTP port")

    model_config = {
        "extra": "allow",  # Allow extra fields for forward compatibility
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator('catchup_policy')
    @classmethod
    def validate_catchup_policy(cls, v: str) -> str:
        value = v.lower()
        if value not in CATCHUP_POLICIES:
            raise ValueError(f"Invalid catchup_policy: {v}. Must be one of {', '.join(CATCHUP_POLICIES)}")
        return value

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Validate timezone string."""
        if not v:
            return None
        try:
            ZoneInfo(v)
            return v
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {v}. Must be a valid IANA timezone (e.g., 'Europe/Vienna')")

    @model_validator(mode='after')
    def validate_intervals(self) -> 'SchedulerSettings':
        """A tick slower than the trigger window could skip a whole window."""
        if self.check_interval_seconds > self.trigger_window_seconds:
            raise ValueError(
                "check_interval_seconds must not exceed trigger_window_seconds "
                f"({self.check_interval_seconds} > {self.trigger_window_seconds})"
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return self.model_dump(mode='json')


def validate_settings_dict(config_dict: Dict[str, Any]) -> tuple[SchedulerSettings, list[str]]:
    """Validate a config dictionary against the schema.

    Returns:
        Tuple of (validated_settings, warnings_list)

    Raises:
        ValueError: If config is invalid with detailed error messages
    """
    warnings = []
    unknown = sorted(k for k in config_dict if k not in SchedulerSettings.model_fields and not k.startswith("_"))
    if unknown:
        warnings.append(f"Unknown config keys ignored: {', '.join(unknown)}")

    try:
        validated = SchedulerSettings(**{k: v for k, v in config_dict.items() if not k.startswith("_")})
        return validated, warnings
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {str(e)}")
