"""
Preference persistence.

SQLite-backed flat settings record. Explicit load/save only.
"""

from .errors import PersistenceError, SaveError
from .preferences import Preferences, PreferenceStore, DEFAULT_PREFERENCES

__all__ = [
    "PersistenceError",
    "SaveError",
    "Preferences",
    "PreferenceStore",
    "DEFAULT_PREFERENCES",
]
