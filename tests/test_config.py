"""
Tests for settings validation and the config manager:
- Schema defaults and bounds
- Merge order defaults < environment file < SPOTICUE_* variables
- Fallback to defaults when the merged config is invalid
"""
import json

import pytest

from spoticue.config import ConfigManager, resolve_schedules_path
from spoticue.config_schema import SchedulerSettings, validate_settings_dict


class TestSchedulerSettings:

    def test_defaults(self):
        settings = SchedulerSettings()

        assert settings.check_interval_seconds == 1.0
        assert settings.catchup_policy == "latest"
        assert settings.pause_settle_seconds == 0.5
        assert settings.max_monitor_seconds == 600

    def test_catchup_policy_is_case_insensitive(self):
        assert SchedulerSettings(catchup_policy="ALL").catchup_policy == "all"

    def test_invalid_catchup_policy(self):
        with pytest.raises(ValueError):
            SchedulerSettings(catchup_policy="sometimes")

    def test_invalid_timezone(self):
        with pytest.raises(ValueError):
            SchedulerSettings(timezone="Mars/Olympus")

    def test_tick_slower_than_window_rejected(self):
        with pytest.raises(ValueError):
            SchedulerSettings(check_interval_seconds=5, trigger_window_seconds=2)

    def test_unknown_keys_produce_warning(self):
        settings, warnings = validate_settings_dict({"catchup_policy": "none", "fade_in": True})

        assert settings.catchup_policy == "none"
        assert warnings == ["Unknown config keys ignored: fade_in"]


class TestConfigManager:

    @pytest.fixture
    def base(self, tmp_path, monkeypatch):
        for name in SchedulerSettings.model_fields:
            monkeypatch.delenv(f"SPOTICUE_{name.upper()}", raising=False)
        monkeypatch.setenv("SPOTICUE_ENV", "production")
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "default_config.json").write_text(json.dumps({"catchup_policy": "latest", "port": 5001}))
        return tmp_path

    def test_environment_file_and_env_vars_are_merged(self, base, monkeypatch):
        (base / "config" / "production.json").write_text(json.dumps({"catchup_policy": "all", "port": 8080}))
        monkeypatch.setenv("SPOTICUE_PORT", "9090")

        settings = ConfigManager(str(base)).load_settings()

        assert settings.environment == "production"
        assert settings.catchup_policy == "all"
        assert settings.port == 9090

    def test_invalid_config_falls_back_to_defaults(self, base):
        (base / "config" / "production.json").write_text(json.dumps({"catchup_policy": "sometimes"}))

        settings = ConfigManager(str(base)).load_settings()

        assert settings.catchup_policy == "latest"
        assert settings.environment == "production"

    def test_unreadable_file_is_ignored(self, base):
        (base / "config" / "production.json").write_text("{broken")

        assert ConfigManager(str(base)).load_config()["port"] == 5001

    def test_save_config_round_trip(self, base):
        manager = ConfigManager(str(base))

        assert manager.save_config({"catchup_policy": "none"}) is True
        assert manager.load_settings().catchup_policy == "none"


def test_schedules_path_resolution(tmp_path, monkeypatch):
    explicit = SchedulerSettings(schedules_path=str(tmp_path / "cues.json"))
    assert resolve_schedules_path(explicit) == tmp_path / "cues.json"

    monkeypatch.setenv("SPOTICUE_APP_NAME", "cuetest")
    assert resolve_schedules_path(SchedulerSettings()).name == "schedules.json"
    assert resolve_schedules_path(SchedulerSettings()).parent.name == ".cuetest"
