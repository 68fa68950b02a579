"""
Tests for temp snapshot recovery.
"""

import json
import os
import time
from datetime import datetime, timedelta, timezone

import pytest

from mcp_docsession.document import Paragraph, load_document, new_document
from mcp_docsession.errors import NotFoundError
from mcp_docsession.session import TempFileManager
from mcp_docsession.session.tempfiles import METADATA_SUFFIX, SNAPSHOT_PREFIX


@pytest.fixture
def manager(config):
    return TempFileManager(config)


def _document(*texts):
    document = new_document()
    document.paragraphs.extend(Paragraph(text=t) for t in texts)
    return document


class TestSnapshots:
    """Test writing, listing and recovering snapshots."""

    def test_write_snapshot(self, manager, temp_dir):
        snapshot = manager.write_snapshot("sess_a", str(temp_dir / "orig.docj"), _document("x"))
        assert snapshot.exists()
        assert snapshot.name.startswith(f"{SNAPSHOT_PREFIX}sess_a_")
        metadata = json.loads(snapshot.with_name(snapshot.name + METADATA_SUFFIX).read_text())
        assert metadata["session_id"] == "sess_a"

    def test_list_recoverable_newest_first(self, manager, temp_dir):
        manager.write_snapshot("sess_a", str(temp_dir / "a.docj"), _document("a"))
        time.sleep(0.01)
        manager.write_snapshot("sess_b", str(temp_dir / "b.docj"), _document("b"))
        files = manager.list_recoverable()
        assert [f.session_id for f in files] == ["sess_b", "sess_a"]
        assert files[0].to_dict()["original_path"] == str(temp_dir / "b.docj")

    def test_recover_to_original(self, manager, temp_dir):
        original = temp_dir / "orig.docj"
        manager.write_snapshot("sess_a", str(original), _document("saved"))

        recovered = manager.recover("sess_a")

        assert recovered == str(original)
        assert [p.text for p in load_document(original).paragraphs] == ["saved"]
        assert manager.list_recoverable() == []

    def test_recover_keep_snapshot(self, manager, temp_dir):
        manager.write_snapshot("sess_a", str(temp_dir / "orig.docj"), _document("saved"))
        target = temp_dir / "elsewhere" / "copy.docj"
        manager.recover("sess_a", str(target), delete_after=False)
        assert target.exists()
        assert len(manager.list_recoverable()) == 1

    def test_recover_unknown(self, manager):
        with pytest.raises(NotFoundError, match="sess_none"):
            manager.recover("sess_none")

    def test_delete(self, manager, temp_dir):
        manager.write_snapshot("sess_a", str(temp_dir / "a.docj"), _document())
        manager.write_snapshot("sess_b", str(temp_dir / "b.docj"), _document())
        assert manager.delete("sess_a") == 1
        assert [f.session_id for f in manager.list_recoverable()] == ["sess_b"]

    @pytest.mark.parametrize("session_id", ["*", "sess_*", "sess_?", "sess_[ab]"])
    def test_delete_matches_id_literally(self, manager, temp_dir, session_id):
        """Wildcard characters in an id never match other sessions."""
        manager.write_snapshot("sess_a", str(temp_dir / "a.docj"), _document())
        manager.write_snapshot("sess_b", str(temp_dir / "b.docj"), _document())
        assert manager.delete(session_id) == 0
        assert len(manager.list_recoverable()) == 2

    def test_corrupt_saved_at_skipped(self, manager, temp_dir):
        """One bad sidecar does not hide the other snapshots."""
        bad = manager.write_snapshot("sess_bad", str(temp_dir / "a.docj"), _document())
        manager.write_snapshot("sess_good", str(temp_dir / "b.docj"), _document("kept"))
        meta_path = bad.with_name(bad.name + METADATA_SUFFIX)
        metadata = json.loads(meta_path.read_text())
        metadata["saved_at"] = "yesterday-ish"
        meta_path.write_text(json.dumps(metadata))

        assert [f.session_id for f in manager.list_recoverable()] == ["sess_good"]
        assert manager.stats()["count"] == 1
        manager.recover("sess_good", str(temp_dir / "out.docj"))
        assert [p.text for p in load_document(temp_dir / "out.docj").paragraphs] == ["kept"]


class TestCleanup:
    """Test retention cleanup."""

    def test_cleanup_expired(self, manager, temp_dir):
        """Snapshots older than the retention window are removed."""
        snapshot = manager.write_snapshot("sess_old", str(temp_dir / "a.docj"), _document())
        meta_path = snapshot.with_name(snapshot.name + METADATA_SUFFIX)
        metadata = json.loads(meta_path.read_text())
        metadata["saved_at"] = (datetime.now(timezone.utc) - timedelta(hours=48)).isoformat()
        meta_path.write_text(json.dumps(metadata))
        manager.write_snapshot("sess_new", str(temp_dir / "b.docj"), _document())

        result = manager.cleanup_expired()

        assert result.deleted == 1
        assert not snapshot.exists()
        assert [f.session_id for f in manager.list_recoverable()] == ["sess_new"]

    def test_cleanup_orphans(self, manager):
        """Old snapshot files with no metadata are removed too."""
        manager.directory.mkdir(parents=True)
        orphan = manager.directory / f"{SNAPSHOT_PREFIX}lost.docj"
        orphan.write_text("{}")
        old = time.time() - 72 * 3600
        os.utime(orphan, (old, old))

        result = manager.cleanup_expired()

        assert result.deleted == 1
        assert not orphan.exists()

    def test_cleanup_missing_directory(self, manager):
        assert manager.cleanup_expired().to_dict() == {"scanned": 0, "deleted": 0, "errors": 0}

    def test_stats(self, manager, temp_dir):
        manager.write_snapshot("sess_a", str(temp_dir / "a.docj"), _document("x"))
        stats = manager.stats()
        assert stats["count"] == 1
        assert stats["total_size_bytes"] > 0
        assert stats["retention_hours"] == 24
