"""
Temp snapshots of released sessions.

When a dirty session is evicted or the server shuts down under the
save_to_temp policy, its document is written to the temp directory together
with a ``.meta.json`` sidecar. Snapshots can later be listed, recovered to a
path, deleted, or expired by retention age.
"""

import json
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from ..config import SessionConfig
from ..document import Document, save_document
from ..errors import NotFoundError

logger = logging.getLogger(__name__)

SNAPSHOT_PREFIX = "docsession_"
METADATA_SUFFIX = ".meta.json"


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RecoverableFile:
    """A snapshot that can be recovered."""

    session_id: str
    original_path: str
    snapshot_path: str
    saved_at: datetime
    expires_at: datetime
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "original_path": self.original_path,
            "snapshot_path": self.snapshot_path,
            "saved_at": self.saved_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "size_bytes": self.size_bytes,
        }


@dataclass
class CleanupResult:
    """Counts from a cleanup pass."""

    scanned: int = 0
    deleted: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"scanned": self.scanned, "deleted": self.deleted, "errors": self.errors}


class TempFileManager:
    """Manage session snapshots in the configured temp directory."""

    def __init__(self, config: SessionConfig):
        self.config = config

    @property
    def directory(self) -> Path:
        return Path(self.config.temp_directory)

    # ==================== Writing ====================

    def write_snapshot(self, session_id: str, original_path: str, document: Document) -> Path:
        """
        Save a session document plus metadata to the temp directory.

        Args:
            session_id: Session the snapshot belongs to
            original_path: Path the session was opened from
            document: Document to save

        Returns:
            Path of the snapshot file
        """
        saved_at = _utcnow()
        suffix = Path(original_path).suffix
        stamp = saved_at.strftime("%Y%m%d%H%M%S%f")
        snapshot = self.directory / f"{SNAPSHOT_PREFIX}{session_id}_{stamp}{suffix}"

        save_document(document, snapshot)
        metadata = {
            "session_id": session_id,
            "original_path": str(original_path),
            "snapshot_path": str(snapshot),
            "saved_at": saved_at.isoformat(),
        }
        Path(f"{snapshot}{METADATA_SUFFIX}").write_text(json.dumps(metadata, indent=2), encoding="utf-8")
        return snapshot

    # ==================== Listing & Recovery ====================

    def list_recoverable(self) -> list[RecoverableFile]:
        """List snapshots whose data file still exists, newest first."""
        results = []
        for meta_path in self._metadata_files():
            metadata = self._read_metadata(meta_path)
            if metadata is None:
                continue
            snapshot = Path(metadata["snapshot_path"])
            if not snapshot.exists():
                continue
            saved_at = metadata["saved_at"]
            results.append(
                RecoverableFile(
                    session_id=metadata["session_id"],
                    original_path=metadata["original_path"],
                    snapshot_path=str(snapshot),
                    saved_at=saved_at,
                    expires_at=saved_at + timedelta(hours=self.config.temp_retention_hours),
                    size_bytes=snapshot.stat().st_size,
                )
            )
        return sorted(results, key=lambda r: r.saved_at, reverse=True)

    def recover(self, session_id: str, target_path: str | None = None, delete_after: bool = True) -> str:
        """
        Copy the newest snapshot of a session to a path.

        Args:
            session_id: Session to recover
            target_path: Destination (defaults to the original path)
            delete_after: Remove the snapshot once copied

        Returns:
            Path written

        Raises:
            NotFoundError: No recoverable snapshot for the session
        """
        candidates = [r for r in self.list_recoverable() if r.session_id == session_id]
        if not candidates:
            raise NotFoundError(f"No recoverable session found: {session_id}")
        newest = candidates[0]

        destination = Path(target_path or newest.original_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(newest.snapshot_path, destination)
        logger.info(f"Recovered session {session_id} to {destination}")

        if delete_after:
            self._delete_snapshot(Path(f"{newest.snapshot_path}{METADATA_SUFFIX}"))
        return str(destination)

    # ==================== Deletion ====================

    def delete(self, session_id: str) -> int:
        """
        Delete every snapshot of a session.

        Returns:
            Number of snapshots deleted
        """
        deleted = 0
        for meta_path in self._metadata_files():
            metadata = self._read_metadata(meta_path)
            if metadata is None or metadata["session_id"] != session_id:
                continue
            self._delete_snapshot(meta_path)
            deleted += 1
        return deleted

    def cleanup_expired(self) -> CleanupResult:
        """Delete snapshots older than the retention window, including orphans."""
        result = CleanupResult()
        if not self.directory.is_dir():
            return result
        cutoff = _utcnow() - timedelta(hours=self.config.temp_retention_hours)

        for meta_path in self._metadata_files():
            result.scanned += 1
            try:
                metadata = self._read_metadata(meta_path)
                if metadata is None or metadata["saved_at"] < cutoff:
                    self._delete_snapshot(meta_path)
                    result.deleted += 1
            except (OSError, ValueError) as e:
                result.errors += 1
                logger.warning(f"Error processing temp file {meta_path}: {e}")

        for orphan in self.directory.glob(f"{SNAPSHOT_PREFIX}*"):
            if orphan.name.endswith(METADATA_SUFFIX) or Path(f"{orphan}{METADATA_SUFFIX}").exists():
                continue
            try:
                modified = datetime.fromtimestamp(orphan.stat().st_mtime, timezone.utc)
                if modified < cutoff:
                    orphan.unlink()
                    result.deleted += 1
            except OSError as e:
                result.errors += 1
                logger.warning(f"Error deleting orphaned file {orphan}: {e}")

        return result

    def stats(self) -> dict[str, Any]:
        """Summary of snapshots on disk."""
        files = self.list_recoverable()
        total = sum(f.size_bytes for f in files)
        now = _utcnow()
        return {
            "count": len(files),
            "total_size_bytes": total,
            "expired_count": sum(1 for f in files if f.expires_at < now),
            "directory": str(self.directory),
            "retention_hours": self.config.temp_retention_hours,
        }

    # ==================== Internals ====================

    def _metadata_files(self) -> list[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(self.directory.glob(f"{SNAPSHOT_PREFIX}*{METADATA_SUFFIX}"))

    def _read_metadata(self, meta_path: Path) -> dict[str, Any] | None:
        try:
            metadata = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Error reading metadata {meta_path}: {e}")
            return None
        required = ("session_id", "original_path", "snapshot_path", "saved_at")
        if not isinstance(metadata, dict) or any(k not in metadata for k in required):
            return None
        try:
            saved_at = datetime.fromisoformat(metadata["saved_at"])
        except (TypeError, ValueError) as e:
            logger.warning(f"Bad saved_at in metadata {meta_path}: {e}")
            return None
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        metadata["saved_at"] = saved_at
        return metadata

    def _delete_snapshot(self, meta_path: Path) -> None:
        snapshot = Path(str(meta_path)[: -len(METADATA_SUFFIX)])
        snapshot.unlink(missing_ok=True)
        meta_path.unlink(missing_ok=True)
