"""
Tests for SQLite preference persistence.

Uses real SQLite files under tmp_path.
"""

import json
import sqlite3

import pytest

from recut.edits import AspectTarget, AudioMode, CropRect, Rotation
from recut.persistence import (
    DEFAULT_PREFERENCES,
    PreferenceStore,
    Preferences,
    SaveError,
)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "prefs.db")


def write_raw(db_path: str, key: str, value: str) -> None:
    """Insert a raw row, bypassing validation."""
    conn = sqlite3.connect(db_path)
    conn.execute(
        "INSERT OR REPLACE INTO preferences (key, value, updated_at) VALUES (?, ?, ?)",
        (key, value, "2024-01-01T00:00:00"),
    )
    conn.commit()
    conn.close()


class TestPreferenceStore:

    def test_empty_store_returns_defaults(self, db_path):
        assert PreferenceStore(db_path).load() == DEFAULT_PREFERENCES

    def test_save_and_load(self, db_path):
        prefs = Preferences(
            flip_horizontal=True,
            audio_mode=AudioMode.MONO,
            aspect_target=AspectTarget.R9X16,
            rotation=Rotation.CW_270,
            crop=CropRect(width_pct=60, height_pct=70),
            trim_start_pct=5,
            trim_end_pct=95,
        )
        PreferenceStore(db_path).save(prefs)

        assert PreferenceStore(db_path).load() == prefs

    def test_save_overwrites(self, db_path):
        store = PreferenceStore(db_path)
        store.save(Preferences(flip_vertical=True))
        store.save(Preferences(flip_vertical=False))
        assert store.load().flip_vertical is False

    def test_schema_created_once(self, db_path):
        PreferenceStore(db_path)
        PreferenceStore(db_path)
        conn = sqlite3.connect(db_path)
        versions = conn.execute("SELECT version FROM schema_version").fetchall()
        conn.close()
        assert versions == [(1,)]

    def test_clear(self, db_path):
        store = PreferenceStore(db_path)
        store.save(Preferences(flip_horizontal=True))
        store.clear()
        assert store.load() == DEFAULT_PREFERENCES


class TestMalformedValues:

    def test_invalid_value_falls_back_per_key(self, db_path):
        store = PreferenceStore(db_path)
        store.save(Preferences(flip_horizontal=True, audio_mode=AudioMode.MUTE))
        write_raw(db_path, "audio_mode", json.dumps("surround"))

        prefs = store.load()

        assert prefs.audio_mode == AudioMode.STEREO
        assert prefs.flip_horizontal is True

    def test_undecodable_value(self, db_path):
        store = PreferenceStore(db_path)
        write_raw(db_path, "rotation", "{not json")
        assert store.load().rotation == Rotation.NONE

    def test_invalid_rotation(self, db_path):
        store = PreferenceStore(db_path)
        write_raw(db_path, "rotation", "45")
        assert store.load().rotation == Rotation.NONE

    def test_inconsistent_trim_pair_resets(self, db_path):
        store = PreferenceStore(db_path)
        write_raw(db_path, "trim_start_pct", "60")
        write_raw(db_path, "trim_end_pct", "40")

        prefs = store.load()

        assert prefs.trim_start_pct == 0.0
        assert prefs.trim_end_pct == 100.0

    def test_unknown_keys_ignored(self, db_path):
        store = PreferenceStore(db_path)
        write_raw(db_path, "theme", json.dumps("dark"))
        assert store.load() == DEFAULT_PREFERENCES

    def test_unreadable_database_returns_defaults(self, tmp_path):
        store = PreferenceStore(str(tmp_path / "prefs.db"))
        conn = sqlite3.connect(store.db_path)
        conn.execute("DROP TABLE preferences")
        conn.commit()
        conn.close()

        assert store.load() == DEFAULT_PREFERENCES

    def test_save_failure_raises(self, tmp_path):
        store = PreferenceStore(str(tmp_path / "prefs.db"))
        conn = sqlite3.connect(store.db_path)
        conn.execute("DROP TABLE preferences")
        conn.commit()
        conn.close()

        with pytest.raises(SaveError):
            store.save(Preferences())


class TestPreferencesModel:

    def test_record_is_json_compatible(self):
        record = Preferences(rotation=Rotation.CW_90).to_record()
        assert record["rotation"] == 90
        assert record["crop"] == {"width_pct": 100.0, "height_pct": 100.0}
        json.dumps(record)

    def test_from_record_partial(self):
        prefs = Preferences.from_record({"flip_vertical": True})
        assert prefs.flip_vertical is True
        assert prefs.audio_mode == AudioMode.STEREO
