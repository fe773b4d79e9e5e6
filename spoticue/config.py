"""
Centralized configuration management for SpotiCue
Handles environment-specific configs, environment overrides and validation
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from .config_schema import SchedulerSettings, validate_settings_dict

ENV_PREFIX = "SPOTICUE_"


def _get_app_data_dir() -> Path:
    """Get application data directory path-agnostically"""
    app_name = os.getenv("SPOTICUE_APP_NAME", "spoticue")
    return Path.home() / f".{app_name}"


class ConfigManager:
    """Manages configuration loading and validation"""

    def __init__(self, base_path: Optional[str] = None):
        self.base_path = Path(base_path) if base_path else Path(__file__).parent.parent
        self.config_dir = self.base_path / "config"
        self.environment = self._detect_environment()
        self._logger = logging.getLogger(__name__)

    def _detect_environment(self) -> str:
        """Explicit SPOTICUE_ENV wins, everything else is development."""
        return os.getenv("SPOTICUE_ENV") or "development"

    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            self._logger.warning("Could not load config %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            self._logger.warning("Ignoring config %s: top-level value is not an object", path)
            return {}
        return data

    def _env_overrides(self) -> Dict[str, Any]:
        """Collect SPOTICUE_<FIELD> overrides for known settings fields."""
        overrides: Dict[str, Any] = {}
        for field_name in SchedulerSettings.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if raw is not None:
                overrides[field_name] = raw
        return overrides

    def load_config(self, config_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration based on environment

        Args:
            config_name: Specific config file name (without .json)
                        If None, uses environment-based config

        Returns:
            Merged raw configuration dictionary (defaults < env file < env vars)
        """
        if config_name is None:
            config_name = self.environment

        default_config = self._read_json(self.config_dir / "default_config.json")
        env_config = self._read_json(self.config_dir / f"{config_name}.json")

        config = {**default_config, **env_config, **self._env_overrides()}
        config.setdefault("environment", self.environment)
        return config

    def load_settings(self, config_name: Optional[str] = None) -> SchedulerSettings:
        """Load and validate settings; invalid configs fall back to defaults."""
        raw = self.load_config(config_name)
        try:
            settings, warnings = validate_settings_dict(raw)
        except ValueError as e:
            self._logger.error("❌ Configuration schema validation failed: %s", e)
            self._logger.warning("Falling back to default settings")
            return SchedulerSettings(environment=self.environment)

        for warning in warnings:
            self._logger.warning("Config validation warning: %s", warning)
        return settings

    def save_config(self, config: Dict[str, Any], config_name: Optional[str] = None) -> bool:
        """
        Save configuration to file

        Returns:
            True if saved successfully
        """
        if config_name is None:
            config_name = self.environment

        config_file = self.config_dir / f"{config_name}.json"
        try:
            validated, _ = validate_settings_dict(config)
            save_data = validated.to_dict()
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'w', encoding='utf-8') as f:
                json.dump(save_data, f, indent=2)
            return True
        except (IOError, ValueError) as e:
            self._logger.warning("Could not save config %s: %s", config_file, e)
            return False


def resolve_schedules_path(settings: SchedulerSettings) -> Path:
    """Return the schedules file path, defaulting to the app data dir."""
    if settings.schedules_path:
        return Path(settings.schedules_path).expanduser()
    return _get_app_data_dir() / "schedules.json"


# Global config manager instance
config_manager = ConfigManager()

_SETTINGS_LOCK = threading.Lock()
_settings: Optional[SchedulerSettings] = None


def load_settings(force_reload: bool = False) -> SchedulerSettings:
    """Load current environment settings (cached, thread-safe)"""
    global _settings
    with _SETTINGS_LOCK:
        if _settings is None or force_reload:
            _settings = config_manager.load_settings()
        return _settings
