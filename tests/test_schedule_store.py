import datetime
import json
import logging

import pytest

from spoticue.core.models import Schedule
from spoticue.core.store import JsonFileBlobStore, MemoryBlobStore, ScheduleStore

from .conftest import TRACK_A, TRACK_B

TODAY = datetime.date(2025, 3, 10)


def _blob(records):
    return json.dumps({"version": 1, "schedules": records}).encode("utf-8")


def _record(schedule_id, **overrides):
    record = {"id": schedule_id, "time": "07:00", "track_uri": TRACK_A}
    record.update(overrides)
    return record


def test_add_applies_defaults_and_persists():
    blob_store = MemoryBlobStore()
    store = ScheduleStore(blob_store)

    schedule = store.add({"time": "07:00", "track_uri": TRACK_A})

    assert schedule.id
    assert schedule.volume == 50
    assert schedule.repeat_daily is True
    assert schedule.enabled is True
    assert schedule.triggered is False
    assert schedule.restore_playback is False
    assert schedule.track_name == "Unknown Track"
    assert schedule.artist_name == "Unknown Artist"
    assert blob_store.save_count == 1


def test_add_then_list_round_trip():
    store = ScheduleStore(MemoryBlobStore())
    added = store.add({"time": "09:15", "track_uri": TRACK_B, "volume": 70, "track_name": "Wake Up"})

    listed = store.list()

    assert len(listed) == 1
    assert listed[0] == added


def test_ids_are_unique():
    store = ScheduleStore(MemoryBlobStore())
    ids = {store.add({"time": "07:00", "track_uri": TRACK_A}).id for _ in range(20)}
    assert len(ids) == 20


def test_list_returns_copies():
    store = ScheduleStore(MemoryBlobStore())
    schedule = store.add({"time": "07:00", "track_uri": TRACK_A})

    copy = store.list()[0]
    copy.volume = 5
    copy.enabled = False

    stored = store.get(schedule.id)
    assert stored.volume == 50
    assert stored.enabled is True


def test_volume_is_clamped():
    assert Schedule(id="a", time="07:00", track_uri=TRACK_A, volume=150).volume == 100
    assert Schedule(id="b", time="07:00", track_uri=TRACK_A, volume=-20).volume == 0


def test_reload_from_same_blob_store():
    blob_store = MemoryBlobStore()
    first = ScheduleStore(blob_store)
    added = first.add({"time": "06:30", "track_uri": TRACK_A, "repeat_daily": False})

    second = ScheduleStore(blob_store)
    loaded = second.load(TODAY)

    assert [s.id for s in loaded] == [added.id]
    assert loaded[0].repeat_daily is False


def test_load_drops_fired_one_shots_and_resets_repeating():
    blob_store = MemoryBlobStore(_blob([
        _record("once", triggered=True, repeat_daily=False, last_triggered_date="2025-03-09"),
        _record("daily", triggered=True, repeat_daily=True, last_triggered_date="2025-03-09"),
        _record("today", triggered=True, repeat_daily=True, last_triggered_date="2025-03-10"),
        _record("pending", triggered=False, repeat_daily=False),
    ]))
    store = ScheduleStore(blob_store)

    loaded = {s.id: s for s in store.load(TODAY)}

    assert set(loaded) == {"daily", "today", "pending"}
    assert loaded["daily"].triggered is False
    assert loaded["today"].triggered is True
    assert blob_store.save_count == 1


def test_corrupt_blob_degrades_to_empty(caplog):
    store = ScheduleStore(MemoryBlobStore(b"{not json"))

    with caplog.at_level(logging.WARNING, logger="spoticue.store"):
        loaded = store.load(TODAY)

    assert loaded == []
    assert any("corrupt" in record.getMessage() for record in caplog.records)


def test_invalid_and_duplicate_records_are_skipped():
    store = ScheduleStore(MemoryBlobStore(_blob([
        _record("good"),
        {"id": "bad", "time": "7 o'clock", "track_uri": TRACK_A},
        _record("good", time="08:00"),
        "not-a-record",
    ])))

    loaded = store.load(TODAY)

    assert [(s.id, s.time) for s in loaded] == [("good", "07:00")]


def test_plain_list_payload_is_accepted():
    store = ScheduleStore(MemoryBlobStore(json.dumps([_record("legacy")]).encode("utf-8")))
    assert [s.id for s in store.load(TODAY)] == ["legacy"]


def test_toggle_and_remove():
    store = ScheduleStore(MemoryBlobStore())
    schedule = store.add({"time": "07:00", "track_uri": TRACK_A})

    assert store.toggle(schedule.id).enabled is False
    assert store.toggle(schedule.id).enabled is True
    assert store.toggle("missing") is None

    assert store.remove(schedule.id) is True
    assert store.remove(schedule.id) is False
    assert store.list() == []


def test_mark_triggered_records_date():
    store = ScheduleStore(MemoryBlobStore())
    schedule = store.add({"time": "07:00", "track_uri": TRACK_A})

    updated = store.mark_triggered(schedule.id, TODAY)

    assert updated.triggered is True
    assert updated.last_triggered_date == "2025-03-10"


class FullDiskBlobStore(MemoryBlobStore):
    """Accepts the first ``allowed`` writes, then fails like a full disk."""

    def __init__(self, allowed=0):
        super().__init__()
        self.allowed = allowed

    def save_all(self, blob):
        if self.save_count >= self.allowed:
            raise OSError(28, "No space left on device")
        super().save_all(blob)


def test_failed_add_keeps_nothing_in_memory():
    store = ScheduleStore(FullDiskBlobStore())

    with pytest.raises(OSError):
        store.add({"time": "07:00", "track_uri": TRACK_A})

    assert store.list() == []


def test_failed_writes_roll_back_mutations():
    blob_store = FullDiskBlobStore(allowed=1)
    store = ScheduleStore(blob_store)
    schedule = store.add({"time": "07:00", "track_uri": TRACK_A})

    with pytest.raises(OSError):
        store.toggle(schedule.id)
    with pytest.raises(OSError):
        store.mark_triggered(schedule.id, TODAY)
    with pytest.raises(OSError):
        store.remove(schedule.id)

    current = store.get(schedule.id)
    assert current.enabled is True
    assert current.triggered is False
    assert current.last_triggered_date is None
    assert store.list() == [current]
    assert json.loads(blob_store.blob)["schedules"][0] == current.to_dict()


def test_roll_over_reports_changes_once():
    store = ScheduleStore(MemoryBlobStore())
    schedule = store.add({"time": "07:00", "track_uri": TRACK_A})
    store.mark_triggered(schedule.id, TODAY)

    assert store.roll_over(TODAY + datetime.timedelta(days=1)) is True
    assert store.roll_over(TODAY + datetime.timedelta(days=1)) is False
    assert store.get(schedule.id).triggered is False


def test_json_file_blob_store_writes_atomically(tmp_path):
    path = tmp_path / "nested" / "schedules.json"
    store = ScheduleStore(JsonFileBlobStore(path))
    store.add({"time": "07:00", "track_uri": TRACK_A})

    assert path.exists()
    assert not path.with_suffix(".tmp").exists()
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["schedules"][0]["time"] == "07:00"


def test_json_file_blob_store_missing_file(tmp_path):
    assert JsonFileBlobStore(tmp_path / "absent.json").load_all() is None


@pytest.mark.parametrize("cap,track,partial", [
    (30, 200, True),
    (200, 200, False),
    (None, 200, False),
    (30, None, False),
])
def test_partial_duration(cap, track, partial):
    schedule = Schedule(id="x", time="07:00", track_uri=TRACK_A,
                        playback_duration_seconds=cap, track_duration_seconds=track)
    assert schedule.has_partial_duration is partial
