"""
Session management for document editing.

Provides the in-memory session store (opaque tokens -> resident documents)
and temp snapshots for sessions released with unsaved changes.
"""

from .store import AutoSaver, SessionEntry, SessionInfo, SessionStore, SessionSweeper
from .tempfiles import CleanupResult, RecoverableFile, TempFileManager

__all__ = [
    "SessionStore",
    "SessionEntry",
    "SessionInfo",
    "SessionSweeper",
    "AutoSaver",
    "TempFileManager",
    "RecoverableFile",
    "CleanupResult",
]
