"""
End-to-end tests for DocumentService.execute.

Tests cover:
- Operation routing in any casing
- Session precedence and closed sessions
- Validation failures leave files untouched
- Session calls compose without saving
- Path calls write only when the document changed
- Concurrent calls on one session
- Close and shutdown waiting for an in-flight call
"""

import hashlib
import os
import threading
import time

import pytest

from mcp_docsession.document import Paragraph, load_document
from mcp_docsession.errors import (
    MissingParameter,
    ParameterOutOfRange,
    SessionNotFound,
    StateConflictError,
    UnknownOperation,
    UsageError,
)
from mcp_docsession.handlers import ALL_HANDLERS
from mcp_docsession.registry import EditHandler, HandlerRegistry
from mcp_docsession.service import DocumentService


def _digest(path) -> str:
    with open(path, "rb") as f:
        return hashlib.sha256(f.read()).hexdigest()


# ==================== Routing Tests ====================


class TestRouting:
    """Test operation name routing."""

    @pytest.mark.parametrize("operation", ["NoSuchOp", "nosuchop", "NOSUCHOP"])
    def test_unknown_operation(self, service, make_document, operation):
        """Unknown operations fail with the exact string, in any casing."""
        path = make_document("a.docj", "one")
        before = _digest(path)
        with pytest.raises(UnknownOperation, match=f"Unknown operation: {operation}"):
            service.execute(operation, path=path)
        assert _digest(path) == before

    def test_unknown_operation_checked_first(self, service, temp_dir):
        """Unknown operation wins over an unloadable path."""
        with pytest.raises(UnknownOperation):
            service.execute("nope", path=str(temp_dir / "missing.docj"))

    def test_casing_routes_identically(self, service, make_document):
        """ADD_TEXT, Add_Text and add_text give the same result."""
        results = []
        for i, operation in enumerate(["ADD_TEXT", "Add_Text", "add_text"]):
            path = make_document(f"doc{i}.docj", "start")
            envelope = service.execute(operation, path=path, text="hello")
            results.append(envelope.payload)
            assert [p.text for p in load_document(path).paragraphs] == ["start", "hello"]
        assert results[0] == results[1] == results[2]

    def test_parameter_names_case_insensitive(self, service, make_document):
        path = make_document("a.docj", "one", "two")
        service.execute("edit_paragraph", path=path, ParagraphIndex=1, TEXT="TWO")
        assert load_document(path).paragraphs[1].text == "TWO"

    def test_operations_listed(self, service):
        assert "add_footnote" in service.operations()


# ==================== Source Tests ====================


class TestSources:
    """Test session precedence and closed sessions."""

    def test_session_wins_over_path(self, service, make_document):
        """With both given, only the session document changes."""
        path_x = make_document("x.docj", "x")
        path_y = make_document("y.docj", "y")
        before_x, before_y = _digest(path_x), _digest(path_y)
        session_id = service.open_session(path_x)

        envelope = service.execute("add_text", path=path_y, session_id=session_id, text="added")

        assert envelope.is_session
        assert envelope.session_id == session_id
        assert envelope.output_path is None
        assert [p.text for p in service.get_document(session_id).paragraphs] == ["x", "added"]
        assert _digest(path_x) == before_x
        assert _digest(path_y) == before_y

    def test_read_uses_session_document(self, service, make_document):
        """A read with both sources sees the session content only."""
        path_a = make_document("a.docj", "PathX")
        session_id = service.open_session(make_document("b.docj", "SessionX"))

        content = service.execute("get_content", path=path_a, session_id=session_id).payload["content"]

        assert "SessionX" in content
        assert "PathX" not in content

    @pytest.mark.parametrize("operation", ["get_content", "add_text", "delete_bookmark", "create_table"])
    def test_unknown_session_for_any_operation(self, service, make_document, operation):
        """Every operation reports an unknown session the same way."""
        with pytest.raises(SessionNotFound, match="sess_unknown"):
            service.execute(operation, path=make_document(), session_id="sess_unknown", text="x", name="n")

    def test_closed_session_not_found(self, service, make_document):
        session_id = service.open_session(make_document())
        service.close_session(session_id)
        with pytest.raises(SessionNotFound):
            service.execute("get_content", session_id=session_id)

    def test_closed_session_with_path_still_not_found(self, service, make_document):
        """A stale session id is not silently replaced by path."""
        path = make_document()
        session_id = service.open_session(path)
        service.close_session(session_id)
        with pytest.raises(SessionNotFound):
            service.execute("get_content", path=path, session_id=session_id)

    def test_create_rejects_session(self, service, make_document):
        session_id = service.open_session(make_document())
        with pytest.raises(UsageError, match="create"):
            service.execute("create", session_id=session_id)


# ==================== Validation Tests ====================


class TestValidation:
    """Test that failed calls never write."""

    def test_out_of_range_leaves_file(self, service, make_document):
        path = make_document("a.docj", "one")
        before = _digest(path)
        with pytest.raises(ParameterOutOfRange, match="paragraph_index out of range"):
            service.execute("delete_paragraph", path=path, paragraph_index=99)
        assert _digest(path) == before

    def test_missing_parameter_leaves_file(self, service, make_document):
        path = make_document("a.docj", "one")
        before = _digest(path)
        with pytest.raises(MissingParameter, match="text is required"):
            service.execute("add_text", path=path)
        assert _digest(path) == before

    def test_failed_session_call_not_dirty(self, service, make_document):
        session_id = service.open_session(make_document("a.docj", "one"))
        with pytest.raises(ParameterOutOfRange):
            service.execute("edit_paragraph", session_id=session_id, paragraph_index=5, text="x")
        assert not service.session_status(session_id).is_dirty

    def test_protected_file_unchanged(self, service, make_document):
        path = make_document("a.docj", "one")
        service.execute("protect", path=path, password="secret")
        before = _digest(path)
        with pytest.raises(StateConflictError):
            service.execute("add_text", path=path, text="blocked")
        assert _digest(path) == before


# ==================== Session Composition Tests ====================


class TestSessionComposition:
    """Test sequential calls within one session."""

    def test_footnote_visible_without_save(self, service, make_document):
        """add_footnote then get_footnotes in a session sees the new note."""
        path = make_document("a.docj", "body")
        before = _digest(path)
        session_id = service.open_session(path)

        added = service.execute("add_footnote", session_id=session_id, paragraph_index=0, text="note")
        listed = service.execute("GET_FOOTNOTES", session_id=session_id)

        assert listed.payload["count"] == 1
        assert listed.payload["footnotes"][0]["id"] == added.payload["footnote_id"]
        assert listed.payload["footnotes"][0]["text"] == "note"
        assert _digest(path) == before

    def test_dirty_flag(self, service, make_document):
        session_id = service.open_session(make_document("a.docj", "one"))
        service.execute("get_content", session_id=session_id)
        assert not service.session_status(session_id).is_dirty
        service.execute("add_text", session_id=session_id, text="two")
        assert service.session_status(session_id).is_dirty

    def test_save_then_close(self, service, make_document, temp_dir):
        path = make_document("a.docj", "one")
        session_id = service.open_session(path)
        service.execute("add_text", session_id=session_id, text="two")

        target = str(temp_dir / "saved.docj")
        assert service.save_session(session_id, target) == target
        assert [p.text for p in load_document(target).paragraphs] == ["one", "two"]
        assert [p.text for p in load_document(path).paragraphs] == ["one"]

        assert service.close_session(session_id) is False

    def test_sessions_isolated(self, service, make_document):
        """Two sessions on one file hold separate documents."""
        path = make_document("a.docj", "one")
        first = service.open_session(path)
        second = service.open_session(path)
        service.execute("add_text", session_id=first, text="only first")
        assert len(service.get_document(first).paragraphs) == 2
        assert len(service.get_document(second).paragraphs) == 1

    def test_concurrent_calls_serialized(self, service, make_document):
        """Parallel edits on one session are applied one at a time."""
        session_id = service.open_session(make_document("a.docj"))
        errors = []

        def worker(n):
            try:
                for i in range(25):
                    service.execute("add_text", session_id=session_id, text=f"{n}-{i}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        assert errors == []
        assert len(service.get_document(session_id).paragraphs) == 200


# ==================== Path Mode Tests ====================


class TestPathMode:
    """Test write-back for path-based calls."""

    def test_edit_writes_back(self, service, make_document):
        path = make_document("a.docj", "one")
        envelope = service.execute("add_text", path=path, text="two")
        assert envelope.output_path == path
        assert not envelope.is_session
        assert envelope.session_id is None
        assert [p.text for p in load_document(path).paragraphs] == ["one", "two"]

    def test_query_does_not_write(self, service, make_document):
        """Read-only calls leave bytes and mtime untouched."""
        path = make_document("a.docj", "one")
        old = int(os.path.getmtime(path)) - 100
        os.utime(path, (old, old))
        before = _digest(path)

        envelope = service.execute("get_content", path=path)

        assert envelope.payload["content"] == "one"
        assert envelope.output_path is None
        assert _digest(path) == before
        assert os.path.getmtime(path) == old

    def test_output_path(self, service, make_document, temp_dir):
        path = make_document("a.docj", "one")
        before = _digest(path)
        target = str(temp_dir / "out.docj")

        envelope = service.execute("add_text", path=path, output_path=target, text="two")

        assert envelope.output_path == target
        assert _digest(path) == before
        assert len(load_document(target).paragraphs) == 2

    def test_create(self, service, temp_dir):
        path = str(temp_dir / "new.docj")
        envelope = service.execute("create", path=path, content="a\nb", title="New")
        assert envelope.output_path == path
        document = load_document(path)
        assert [p.text for p in document.paragraphs] == ["a", "b"]
        assert document.properties["title"] == "New"

    def test_create_refuses_existing(self, service, make_document):
        path = make_document("a.docj", "keep")
        with pytest.raises(StateConflictError, match="already exists"):
            service.execute("create", path=path)
        service.execute("create", path=path, overwrite=True)
        assert load_document(path).paragraphs == []


# ==================== Lifecycle Tests ====================


class TestLifecycle:
    """Test service start and shutdown."""

    def test_start_and_shutdown(self, service, make_document):
        """start() runs the sweeper; shutdown() stops it and releases sessions."""
        service.start()
        assert service._sweeper is not None and service._sweeper.running

        session_id = service.open_session(make_document("a.docj", "one"))
        service.execute("add_text", session_id=session_id, text="pending")
        service.shutdown()

        assert service._sweeper is None
        assert service.list_sessions() == []
        recoverable = service.temp_files.list_recoverable()
        assert [r.session_id for r in recoverable] == [session_id]


# ==================== In-flight Release Tests ====================


class BlockingAppendHandler(EditHandler):
    """Appends a paragraph, pausing inside apply until released."""

    operation = "blocking_append"

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def parse(self, parameters, context):
        return parameters.get_required("text")

    def apply(self, context, text):
        self.entered.set()
        self.release.wait(5)
        context.document.paragraphs.append(Paragraph(text=text))
        return text


@pytest.fixture
def blocking():
    return BlockingAppendHandler()


@pytest.fixture
def blocking_service(config, blocking):
    registry = HandlerRegistry(handler() for handler in ALL_HANDLERS)
    registry.register(blocking)
    service = DocumentService(config, registry.freeze())
    yield service
    service.shutdown()


def _run_in_flight(service, blocking, session_id, release_call):
    """Start an edit, run release_call once the session is held, then let the edit finish."""
    results, errors = {}, []

    def edit():
        try:
            results["edit"] = service.execute("blocking_append", session_id=session_id, text="two")
        except Exception as e:
            errors.append(e)

    def release():
        results["release"] = release_call()

    editor = threading.Thread(target=edit)
    editor.start()
    assert blocking.entered.wait(5)

    releaser = threading.Thread(target=release)
    releaser.start()
    # The entry leaves the store map before the releaser waits for its lock.
    deadline = time.monotonic() + 5
    while session_id in service.store and time.monotonic() < deadline:
        time.sleep(0.01)
    assert session_id not in service.store

    blocking.release.set()
    editor.join(5)
    releaser.join(5)
    assert errors == []
    return results


class TestInFlightRelease:
    """Test close and shutdown racing a call on the same session."""

    def test_close_keeps_in_flight_edit(self, blocking_service, blocking, make_document):
        """close waits for the call and writes its change back."""
        path = make_document("a.docj", "one")
        session_id = blocking_service.open_session(path)

        results = _run_in_flight(
            blocking_service, blocking, session_id, lambda: blocking_service.close_session(session_id)
        )

        assert results["edit"].is_session
        assert results["release"] is True
        assert [p.text for p in load_document(path).paragraphs] == ["one", "two"]

    def test_shutdown_keeps_in_flight_edit(self, blocking_service, blocking, make_document):
        """shutdown waits for the call and snapshots its change."""
        path = make_document("a.docj", "one")
        session_id = blocking_service.open_session(path)

        _run_in_flight(blocking_service, blocking, session_id, blocking_service.shutdown)

        assert [p.text for p in load_document(path).paragraphs] == ["one"]
        recoverable = blocking_service.temp_files.list_recoverable()
        assert [r.session_id for r in recoverable] == [session_id]
        snapshot = load_document(recoverable[0].snapshot_path)
        assert [p.text for p in snapshot.paragraphs] == ["one", "two"]
