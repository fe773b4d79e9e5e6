"""Input validation for schedule fields coming from the API."""
import pytest

from spoticue.utils.validation import (InputValidator, ValidationError,
                                       validate_schedule_fields)

from .conftest import TRACK_A


class TestInputValidator:

    @pytest.mark.parametrize("raw,expected", [("07:05", "07:05"), ("7:05", "07:05"), (" 23:59 ", "23:59")])
    def test_time_is_normalised(self, raw, expected):
        result = InputValidator.validate_time(raw)
        assert result.is_valid
        assert result.value == expected

    @pytest.mark.parametrize("raw", ["24:00", "07:60", "0700", "seven", "", None])
    def test_invalid_times(self, raw):
        assert not InputValidator.validate_time(raw).is_valid

    def test_bare_track_id_is_expanded(self):
        result = InputValidator.validate_track_uri("4uLU6hMCjMI75M1A2tKUQC")
        assert result.value == TRACK_A

    def test_non_track_uri_rejected(self):
        assert not InputValidator.validate_track_uri("spotify:playlist:37i9dQZF1DXcBWIGoYBM5M").is_valid

    def test_volume_clamped(self):
        assert InputValidator.validate_volume(140).value == 100
        assert InputValidator.validate_volume("-3").value == 0
        assert InputValidator.validate_volume(None).value == 50
        assert not InputValidator.validate_volume("loud").is_valid

    def test_optional_seconds(self):
        assert InputValidator.validate_optional_seconds("", "d").value is None
        assert InputValidator.validate_optional_seconds("30", "d").value == 30
        assert not InputValidator.validate_optional_seconds(-5, "d").is_valid

    def test_boolean_strings(self):
        assert InputValidator.validate_boolean("on", "flag").value is True
        assert InputValidator.validate_boolean("false", "flag", default=True).value is False
        assert InputValidator.validate_boolean(None, "flag", default=True).value is True


class TestScheduleFields:

    def test_camel_case_keys_are_accepted(self):
        fields = validate_schedule_fields({
            "time": "6:30",
            "trackUri": TRACK_A,
            "trackName": "Morning Song",
            "restorePlayback": "true",
            "playbackDuration": 45,
            "trackDuration": "200",
            "repeat": False,
        })

        assert fields["time"] == "06:30"
        assert fields["track_uri"] == TRACK_A
        assert fields["track_name"] == "Morning Song"
        assert fields["restore_playback"] is True
        assert fields["playback_duration_seconds"] == 45
        assert fields["track_duration_seconds"] == 200
        assert fields["repeat_daily"] is False

    def test_defaults(self):
        fields = validate_schedule_fields({"time": "07:00", "track_uri": TRACK_A})

        assert fields["volume"] == 50
        assert fields["repeat_daily"] is True
        assert fields["restore_playback"] is False
        assert "track_name" not in fields

    def test_missing_time_raises(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_schedule_fields({"track_uri": TRACK_A})
        assert excinfo.value.field_name == "time"

    def test_bad_track_raises(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_schedule_fields({"time": "07:00", "track_uri": "nope"})
        assert excinfo.value.field_name == "track_uri"
