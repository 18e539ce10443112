"""
SQLite preference store.

Single-file database holding one flat settings record as key/value rows.
Values are JSON encoded.

Loaded once at startup, saved once per render request.
Missing, undecodable or invalid values fall back to their defaults
key by key; nothing here raises on bad stored data.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..edits.models import AspectTarget, AudioMode, CropRect, Rotation
from .errors import PersistenceError, SaveError

logger = logging.getLogger(__name__)


# Database schema version for migrations
SCHEMA_VERSION = 1

TRIM_KEYS = ("trim_start_pct", "trim_end_pct")


class Preferences(BaseModel):
    """
    Persisted subset of the edit model.

    Defaults: no flips, stereo audio, original aspect, zero rotation,
    full-frame crop, full-range trim.
    """

    model_config = ConfigDict(extra="forbid")

    flip_horizontal: bool = False
    flip_vertical: bool = False
    audio_mode: AudioMode = AudioMode.STEREO
    aspect_target: AspectTarget = AspectTarget.ORIGINAL
    rotation: Rotation = Rotation.NONE
    crop: CropRect = Field(default_factory=CropRect)
    trim_start_pct: float = Field(default=0.0, ge=0.0, le=100.0)
    trim_end_pct: float = Field(default=100.0, ge=0.0, le=100.0)

    @model_validator(mode="after")
    def validate_trim_window(self) -> "Preferences":
        if self.trim_start_pct >= self.trim_end_pct:
            raise ValueError("trim_start_pct must be less than trim_end_pct")
        return self

    def to_record(self) -> Dict[str, Any]:
        """Flat JSON-compatible record."""
        return self.model_dump(mode="json")

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Preferences":
        """
        Build preferences from a possibly malformed record.

        Each key is validated on its own; invalid keys are dropped and
        take their default. An inconsistent trim pair resets to full range.
        Unknown keys are ignored.
        """
        accepted: Dict[str, Any] = {}
        for key, value in record.items():
            if key not in cls.model_fields:
                logger.debug(f"[Preferences] Ignoring unknown key {key!r}")
                continue
            try:
                cls.model_validate({key: value})
            except ValidationError:
                logger.warning(f"[Preferences] Invalid value for {key!r}, using default")
                continue
            accepted[key] = value

        try:
            return cls.model_validate(accepted)
        except ValidationError:
            logger.warning("[Preferences] Inconsistent trim window, using full range")
            for key in TRIM_KEYS:
                accepted.pop(key, None)
            return cls.model_validate(accepted)


DEFAULT_PREFERENCES = Preferences()


class PreferenceStore:
    """
    Manages SQLite persistence for preferences.

    Stores only the flat preferences record. Edit state, jobs and
    render output are never persisted.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Args:
            db_path: Path to SQLite database file (defaults to ./recut.db)
        """
        if db_path is None:
            db_path = str(Path.cwd() / "recut.db")

        self.db_path = db_path
        self._ensure_schema()

    @contextmanager
    def _connect(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise PersistenceError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self):
        """Create schema if it doesn't exist."""
        with self._connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
            """)

            cursor.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
            row = cursor.fetchone()
            current_version = row[0] if row else 0

            if current_version < SCHEMA_VERSION:
                self._migrate_schema(conn, current_version)

    def _migrate_schema(self, conn, from_version: int):
        """Apply schema migrations."""
        cursor = conn.cursor()

        if from_version < 1:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS preferences (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            cursor.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (1, datetime.now().isoformat())
            )

    def load(self) -> Preferences:
        """
        Load preferences.

        Returns:
            Preferences with defaults for anything missing or malformed.
            A database that cannot be read at all yields the defaults.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT key, value FROM preferences")
                rows = cursor.fetchall()
        except PersistenceError as e:
            logger.error(f"[Preferences] Load failed, using defaults: {e}")
            return Preferences()

        record: Dict[str, Any] = {}
        for row in rows:
            try:
                record[row["key"]] = json.loads(row["value"])
            except (TypeError, json.JSONDecodeError):
                logger.warning(f"[Preferences] Undecodable value for {row['key']!r}, using default")

        prefs = Preferences.from_record(record)
        logger.info(f"[Preferences] Loaded {len(record)} key(s) from {self.db_path}")
        return prefs

    def save(self, prefs: Preferences) -> None:
        """
        Save the full preferences record.

        Raises:
            SaveError: If the database write fails
        """
        now = datetime.now().isoformat()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                for key, value in prefs.to_record().items():
                    cursor.execute("""
                        INSERT INTO preferences (key, value, updated_at)
                        VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            value = excluded.value,
                            updated_at = excluded.updated_at
                    """, (key, json.dumps(value), now))
        except PersistenceError as e:
            raise SaveError(f"Failed to save preferences: {e}") from e

        logger.info(f"[Preferences] Saved to {self.db_path}")

    def clear(self) -> None:
        """Remove all stored preferences."""
        with self._connect() as conn:
            conn.execute("DELETE FROM preferences")
