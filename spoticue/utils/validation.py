#!/usr/bin/env python3
"""
🛡️ Input Validation Module for SpotiCue
Validates user supplied schedule fields before they reach the scheduler:
- Time formats (HH:MM)
- Spotify track URIs
- Volume levels (clamped to 0-100)
- Optional playback / track durations
- Boolean flags
"""

import datetime
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..constants import DEFAULT_VOLUME


@dataclass
class ValidationResult:
    """Result of input validation with value and error details."""
    is_valid: bool
    value: Any = None
    error: str = ""
    field_name: str = ""


class InputValidator:
    """Centralized input validation for all SpotiCue user inputs."""

    MIN_VOLUME = 0
    MAX_VOLUME = 100
    MAX_DURATION_SECONDS = 6 * 60 * 60
    MAX_STRING_LENGTH = 500
    MAX_URI_LENGTH = 200

    TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')
    TRACK_URI_PATTERN = re.compile(r'^spotify:track:[a-zA-Z0-9]{22}$')
    TRACK_ID_PATTERN = re.compile(r'^[a-zA-Z0-9]{22}$')

    @classmethod
    def validate_time(cls, value: Union[str, None], field_name: str = "time") -> ValidationResult:
        """Validate time format (HH:MM) and normalise to zero-padded form."""
        if not value:
            return ValidationResult(False, None, f"{field_name} is required", field_name)

        if not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} must be a string", field_name)

        value = value.strip()
        match = cls.TIME_PATTERN.match(value)
        if not match:
            return ValidationResult(
                False, None,
                f"{field_name} must be in HH:MM format (24-hour)",
                field_name
            )

        hour, minute = int(match.group(1)), int(match.group(2))
        try:
            datetime.time(hour, minute)
        except ValueError:
            return ValidationResult(False, None, f"{field_name} contains invalid hour or minute values", field_name)
        return ValidationResult(True, f"{hour:02d}:{minute:02d}", "", field_name)

    @classmethod
    def validate_track_uri(cls, value: Union[str, None], field_name: str = "track_uri") -> ValidationResult:
        """Validate a Spotify track reference; bare 22-char ids are expanded to URIs."""
        if not value:
            return ValidationResult(False, None, f"{field_name} is required", field_name)

        if not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} must be a string", field_name)

        value = value.strip()
        if len(value) > cls.MAX_URI_LENGTH:
            return ValidationResult(
                False, None,
                f"{field_name} is too long (max {cls.MAX_URI_LENGTH} characters)",
                field_name
            )

        if cls.TRACK_ID_PATTERN.match(value):
            value = f"spotify:track:{value}"

        if not cls.TRACK_URI_PATTERN.match(value):
            return ValidationResult(
                False, None,
                f"{field_name} must be a valid Spotify track URI (spotify:track:id)",
                field_name
            )
        return ValidationResult(True, value, "", field_name)

    @classmethod
    def validate_volume(cls, value: Union[str, int, None], field_name: str = "volume") -> ValidationResult:
        """Validate volume input; out-of-range numbers are clamped to 0-100."""
        if value is None or value == "":
            return ValidationResult(True, DEFAULT_VOLUME, "", field_name)

        try:
            volume = int(value)
        except (ValueError, TypeError):
            return ValidationResult(
                False, None,
                f"{field_name} must be a valid number between {cls.MIN_VOLUME} and {cls.MAX_VOLUME}",
                field_name
            )
        return ValidationResult(True, max(cls.MIN_VOLUME, min(cls.MAX_VOLUME, volume)), "", field_name)

    @classmethod
    def validate_optional_seconds(cls, value: Union[str, int, float, None], field_name: str) -> ValidationResult:
        """Validate an optional positive duration in whole seconds."""
        if value is None or value == "" or value == 0:
            return ValidationResult(True, None, "", field_name)

        try:
            seconds = int(float(value))
        except (ValueError, TypeError):
            return ValidationResult(False, None, f"{field_name} must be a number of seconds", field_name)

        if seconds < 0 or seconds > cls.MAX_DURATION_SECONDS:
            return ValidationResult(
                False, None,
                f"{field_name} must be between 1 and {cls.MAX_DURATION_SECONDS} seconds",
                field_name
            )
        return ValidationResult(True, seconds or None, "", field_name)

    @classmethod
    def validate_text(cls, value: Optional[str], field_name: str) -> ValidationResult:
        if value is None:
            return ValidationResult(True, None, "", field_name)
        text = str(value).strip()
        if len(text) > cls.MAX_STRING_LENGTH:
            return ValidationResult(False, None, f"{field_name} is too long (max {cls.MAX_STRING_LENGTH} characters)", field_name)
        return ValidationResult(True, text or None, "", field_name)

    @classmethod
    def validate_boolean(cls, value: Union[str, bool, None], field_name: str, default: bool = False) -> ValidationResult:
        """Validate boolean input."""
        if value is None:
            return ValidationResult(True, default, "", field_name)

        if isinstance(value, bool):
            return ValidationResult(True, value, "", field_name)

        if isinstance(value, str):
            lower_value = value.lower().strip()
            if lower_value in ('true', '1', 'on', 'yes', 'enabled'):
                return ValidationResult(True, True, "", field_name)
            if lower_value in ('false', '0', 'off', 'no', 'disabled'):
                return ValidationResult(True, False, "", field_name)
            if lower_value == '':
                return ValidationResult(True, default, "", field_name)

        return ValidationResult(True, bool(value), "", field_name)


class ValidationError(Exception):
    """Custom exception for validation errors."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


def _unwrap(result: ValidationResult) -> Any:
    if not result.is_valid:
        raise ValidationError(result.field_name, result.error)
    return result.value


def validate_schedule_fields(form_data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the fields of a new schedule.

    Accepts both snake_case keys and the camelCase keys older clients send.

    Raises:
        ValidationError: If any validation fails
    """
    def pick(*keys: str) -> Any:
        for key in keys:
            if key in form_data:
                return form_data[key]
        return None

    validated: Dict[str, Any] = {
        'time': _unwrap(InputValidator.validate_time(pick('time'))),
        'track_uri': _unwrap(InputValidator.validate_track_uri(pick('track_uri', 'trackUri'))),
        'volume': _unwrap(InputValidator.validate_volume(pick('volume'))),
        'playback_duration_seconds': _unwrap(InputValidator.validate_optional_seconds(
            pick('playback_duration_seconds', 'playbackDuration'), 'playback_duration_seconds')),
        'track_duration_seconds': _unwrap(InputValidator.validate_optional_seconds(
            pick('track_duration_seconds', 'trackDuration'), 'track_duration_seconds')),
        'restore_playback': _unwrap(InputValidator.validate_boolean(
            pick('restore_playback', 'restorePlayback'), 'restore_playback', default=False)),
        'repeat_daily': _unwrap(InputValidator.validate_boolean(
            pick('repeat_daily', 'repeat'), 'repeat_daily', default=True)),
    }

    track_name = _unwrap(InputValidator.validate_text(pick('track_name', 'trackName'), 'track_name'))
    artist_name = _unwrap(InputValidator.validate_text(pick('artist_name', 'artistName'), 'artist_name'))
    if track_name:
        validated['track_name'] = track_name
    if artist_name:
        validated['artist_name'] = artist_name

    return validated
