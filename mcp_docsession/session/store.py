"""
Session store: opaque session tokens mapped to resident documents.

Handles session lifecycle, tracking open sessions, idle eviction and cleanup.

Locking:
- One store lock guards the token -> entry map (insert, lookup, remove).
- Each entry has its own lock, held for the whole of any operation against
  that session (checkout), and by save/close/eviction.
- The store lock is never held while blocking on an entry lock.
"""

import logging
import secrets
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from ..config import ReleaseBehavior, SessionConfig
from ..document import Document, load_document, save_document
from ..errors import SessionNotFound, StateConflictError, UsageError
from .tempfiles import TempFileManager

logger = logging.getLogger(__name__)

SESSION_ID_PREFIX = "sess_"
SESSION_TOKEN_BYTES = 16  # 128 bits from the OS CSPRNG
BYTES_PER_MB = 1024 * 1024

MODE_READWRITE = "readwrite"
MODE_READONLY = "readonly"
SESSION_MODES = (MODE_READWRITE, MODE_READONLY)


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionInfo:
    """Point-in-time view of a session for listing and status."""

    session_id: str
    path: str
    mode: str
    is_dirty: bool
    opened_at: datetime
    last_accessed_at: datetime
    estimated_memory_mb: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "path": self.path,
            "mode": self.mode,
            "is_dirty": self.is_dirty,
            "opened_at": self.opened_at.isoformat(),
            "last_accessed_at": self.last_accessed_at.isoformat(),
            "estimated_memory_mb": round(self.estimated_memory_mb, 3),
        }


@dataclass
class SessionEntry:
    """One open session. Owns its document until closed."""

    session_id: str
    path: str
    document: Document
    mode: str = MODE_READWRITE
    created_at: datetime = field(default_factory=_utcnow)
    last_accessed_at: datetime = field(default_factory=_utcnow)
    estimated_memory_bytes: int = 0
    is_dirty: bool = False
    closed: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def touch(self) -> None:
        self.last_accessed_at = _utcnow()

    def info(self) -> SessionInfo:
        return SessionInfo(
            session_id=self.session_id,
            path=self.path,
            mode=self.mode,
            is_dirty=self.is_dirty,
            opened_at=self.created_at,
            last_accessed_at=self.last_accessed_at,
            estimated_memory_mb=self.estimated_memory_bytes / BYTES_PER_MB,
        )


class SessionStore:
    """
    Process-wide registry of open document sessions.

    Provides:
    - Session creation with unguessable IDs
    - Per-session exclusive checkout for operations
    - Save, close, list and status
    - Idle eviction and shutdown release
    - Periodic temp checkpoints of unsaved changes
    """

    def __init__(self, config: SessionConfig, temp_files: Optional[TempFileManager] = None):
        """
        Initialize session store.

        Args:
            config: Session limits and release policy
            temp_files: Snapshot manager for save_to_temp release (created if omitted)
        """
        self.config = config
        self.temp_files = temp_files or TempFileManager(config)
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._entries

    @staticmethod
    def generate_session_id() -> str:
        """
        Generate an unguessable session ID.

        Returns:
            Session ID (prefix + 32 hex chars)
        """
        return f"{SESSION_ID_PREFIX}{secrets.token_hex(SESSION_TOKEN_BYTES)}"

    # ==================== Lifecycle ====================

    def open(self, path: str, mode: str = MODE_READWRITE) -> str:
        """
        Load a document and create a session for it.

        Args:
            path: Document path
            mode: 'readwrite' or 'readonly'

        Returns:
            New session ID

        Raises:
            UsageError: Unknown mode
            StateConflictError: Session limit reached or file too large
            SourceLoadError: Document cannot be loaded
        """
        normalized_mode = (mode or MODE_READWRITE).strip().lower()
        if normalized_mode not in SESSION_MODES:
            raise UsageError(f"mode must be 'readonly' or 'readwrite', got {mode!r}")

        self._check_capacity()

        file_path = Path(path)
        size_bytes = file_path.stat().st_size if file_path.is_file() else 0
        if size_bytes > self.config.max_file_size_mb * BYTES_PER_MB:
            raise StateConflictError(
                f"File size ({size_bytes / BYTES_PER_MB:.2f} MB) exceeds maximum "
                f"({self.config.max_file_size_mb} MB)"
            )

        document = load_document(path)

        entry = SessionEntry(
            session_id=self.generate_session_id(),
            path=str(path),
            document=document,
            mode=normalized_mode,
            estimated_memory_bytes=size_bytes * 2,
        )

        with self._lock:
            # Re-check under the lock: another caller may have filled the store
            # while this one was loading.
            if len(self._entries) >= self.config.max_sessions:
                raise StateConflictError(
                    f"Maximum session limit ({self.config.max_sessions}) reached"
                )
            while entry.session_id in self._entries:
                entry.session_id = self.generate_session_id()
            self._entries[entry.session_id] = entry

        logger.info(f"Opened session {entry.session_id} for {path} ({normalized_mode})")
        return entry.session_id

    def get(self, session_id: str) -> Document:
        """
        Get the resident document of a session.

        Raises:
            SessionNotFound: Unknown, closed, or evicted session
        """
        entry = self._lookup(session_id)
        entry.touch()
        return entry.document

    def get_entry(self, session_id: str) -> SessionEntry:
        """Get the entry of a session without locking it."""
        return self._lookup(session_id)

    @contextmanager
    def checkout(self, session_id: str) -> Iterator[SessionEntry]:
        """
        Hold a session exclusively for the duration of one operation.

        The entry lock is released on every exit path. A session closed while
        this caller waited for the lock is reported as not found.

        Raises:
            SessionNotFound: Unknown, closed, or evicted session
        """
        entry = self._lookup(session_id)
        with entry.lock:
            if entry.closed:
                raise SessionNotFound(session_id)
            entry.touch()
            yield entry

    def mark_dirty(self, session_id: str) -> None:
        """Flag a session as having unsaved changes. Unknown IDs are ignored."""
        with self._lock:
            entry = self._entries.get(session_id)
        if entry is not None:
            entry.is_dirty = True

    def save(self, session_id: str, output_path: str | None = None) -> str:
        """
        Write a session's document to disk.

        Args:
            session_id: Session to save
            output_path: Target path (defaults to the path it was opened from)

        Returns:
            Path written

        Raises:
            SessionNotFound: Unknown session
            StateConflictError: Session is readonly
        """
        with self.checkout(session_id) as entry:
            if entry.mode == MODE_READONLY:
                raise StateConflictError("Cannot save a readonly session")
            target = output_path or entry.path
            save_document(entry.document, target)
            entry.is_dirty = False
            self.temp_files.delete(session_id)

        logger.info(f"Saved session {session_id} to {target}")
        return target

    def close(self, session_id: str, discard: bool = False) -> bool:
        """
        Close a session. Dirty readwrite sessions are written back to their
        original path unless discard is set.

        Args:
            session_id: Session to close
            discard: Drop unsaved changes

        Returns:
            True if changes were written back

        Raises:
            SessionNotFound: Unknown or already closed session
        """
        with self._lock:
            entry = self._entries.pop(session_id, None)
        if entry is None:
            raise SessionNotFound(session_id)

        saved = False
        with entry.lock:
            entry.closed = True
            if not discard and entry.is_dirty and entry.mode == MODE_READWRITE:
                save_document(entry.document, entry.path)
                saved = True
            if saved or discard:
                self.temp_files.delete(session_id)

        logger.info(f"Closed session {session_id} (discard={discard}, saved={saved})")
        return saved

    # ==================== Introspection ====================

    def list_sessions(self) -> list[SessionInfo]:
        """List all open sessions, oldest first."""
        with self._lock:
            entries = list(self._entries.values())
        return sorted((e.info() for e in entries), key=lambda info: info.opened_at)

    def status(self, session_id: str) -> SessionInfo:
        """
        Get status of one session.

        Raises:
            SessionNotFound: Unknown session
        """
        return self._lookup(session_id).info()

    def total_memory_mb(self) -> float:
        """Estimated memory held by all open sessions."""
        with self._lock:
            total = sum(e.estimated_memory_bytes for e in self._entries.values())
        return total / BYTES_PER_MB

    # ==================== Eviction & Shutdown ====================

    def evict_idle(self, now: datetime | None = None) -> list[str]:
        """
        Remove sessions idle longer than the configured timeout.

        Sessions held by an in-flight operation are skipped.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            IDs of evicted sessions
        """
        if self.config.idle_timeout_minutes <= 0:
            return []

        now = now or _utcnow()
        timeout = timedelta(minutes=self.config.idle_timeout_minutes)
        evicted: list[SessionEntry] = []

        with self._lock:
            for session_id, entry in list(self._entries.items()):
                if now - entry.last_accessed_at <= timeout:
                    continue
                if not entry.lock.acquire(blocking=False):
                    continue
                try:
                    entry.closed = True
                    del self._entries[session_id]
                finally:
                    entry.lock.release()
                evicted.append(entry)

        for entry in evicted:
            logger.info(
                f"Session {entry.session_id} timed out after "
                f"{self.config.idle_timeout_minutes} minutes of inactivity"
            )
            self._release_logged(entry)

        return [entry.session_id for entry in evicted]

    def shutdown(self) -> int:
        """
        Release every open session according to the release policy.

        Returns:
            Number of sessions released
        """
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()

        logger.info(f"Shutdown - handling {len(entries)} open sessions")
        for entry in entries:
            with entry.lock:
                entry.closed = True
                self._release_logged(entry)
        return len(entries)

    def checkpoint_dirty(self) -> list[str]:
        """
        Write a temp snapshot of every dirty session.

        Sessions stay open and dirty; the snapshot only guards against the
        process dying before the changes are saved. Sessions held by an
        in-flight operation are skipped until the next pass.

        Returns:
            IDs of sessions checkpointed
        """
        with self._lock:
            entries = list(self._entries.values())

        checkpointed = []
        for entry in entries:
            if not entry.lock.acquire(blocking=False):
                continue
            try:
                if entry.closed or not entry.is_dirty:
                    continue
                snapshot = self._snapshot(entry)
                checkpointed.append(entry.session_id)
                logger.info(f"Auto-saved dirty session {entry.session_id} to temp: {snapshot}")
            except Exception as e:
                logger.error(f"Error auto-saving session {entry.session_id}: {e}", exc_info=True)
            finally:
                entry.lock.release()
        return checkpointed

    # ==================== Internals ====================

    def _lookup(self, session_id: str) -> SessionEntry:
        with self._lock:
            entry = self._entries.get(session_id) if session_id else None
        if entry is None:
            raise SessionNotFound(session_id)
        if entry.closed:
            logger.warning(f"Attempted to access closed session {session_id}")
            raise SessionNotFound(session_id)
        return entry

    def _check_capacity(self) -> None:
        with self._lock:
            if len(self._entries) >= self.config.max_sessions:
                raise StateConflictError(
                    f"Maximum session limit ({self.config.max_sessions}) reached"
                )

    def _release_logged(self, entry: SessionEntry) -> None:
        # One failing release must not stop the others.
        try:
            self._release(entry)
        except Exception as e:
            logger.warning(f"Error releasing session {entry.session_id}: {e}", exc_info=True)

    def _release(self, entry: SessionEntry) -> None:
        if not entry.is_dirty:
            logger.debug(f"Session {entry.session_id} has no unsaved changes")
            return

        behavior = self.config.on_release
        if behavior is ReleaseBehavior.AUTO_SAVE and entry.mode == MODE_READWRITE:
            save_document(entry.document, entry.path)
            self.temp_files.delete(entry.session_id)
            logger.info(f"Auto-saved session {entry.session_id} to {entry.path}")
        elif behavior is ReleaseBehavior.DISCARD:
            self.temp_files.delete(entry.session_id)
            logger.info(f"Discarded changes for session {entry.session_id}")
        else:
            snapshot = self._snapshot(entry)
            logger.info(f"Saved session {entry.session_id} to temp: {snapshot}")

    def _snapshot(self, entry: SessionEntry) -> Path:
        # Only the newest snapshot of a session is kept.
        self.temp_files.delete(entry.session_id)
        return self.temp_files.write_snapshot(entry.session_id, entry.path, entry.document)


class PeriodicTask:
    """Daemon thread running one store action every interval."""

    name = "periodic-task"

    def __init__(self, store: SessionStore, interval_seconds: float):
        self.store = store
        self.interval_seconds = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> None:
        raise NotImplementedError

    def _run(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"{self.name} failed: {e}", exc_info=True)


class SessionSweeper(PeriodicTask):
    """Background thread that periodically evicts idle sessions."""

    name = "session-sweeper"

    def run_once(self) -> None:
        self.store.evict_idle()


class AutoSaver(PeriodicTask):
    """Background thread that periodically checkpoints dirty sessions to temp."""

    name = "session-autosave"

    def run_once(self) -> None:
        self.store.checkpoint_dirty()
