"""
Tests for the handler registry and handler templates.

Tests cover:
- Case-insensitive lookup and unknown operations
- Registration rules and freezing
- Edit/query template ordering
"""

import pytest

from mcp_docsession.context import OperationContext, SourceKind
from mcp_docsession.document import Document, Paragraph, Protection
from mcp_docsession.errors import MissingParameter, StateConflictError, UnknownOperation
from mcp_docsession.handlers import ALL_HANDLERS, build_registry
from mcp_docsession.parameters import ParameterBag
from mcp_docsession.registry import EditHandler, HandlerRegistry, QueryHandler


class AppendHandler(EditHandler):
    operation = "append"

    def parse(self, parameters, context):
        return parameters.get_required("text")

    def apply(self, context, text):
        context.document.paragraphs.append(Paragraph(text=text))
        return len(context.document.paragraphs)


class CountHandler(QueryHandler):
    operation = "Count"

    def query(self, context, args):
        return len(context.document.paragraphs)


def _context(document=None) -> OperationContext:
    return OperationContext(document=document or Document(), source_kind=SourceKind.EPHEMERAL, source_path="x")


# ==================== Lookup Tests ====================


class TestLookup:
    """Test operation name resolution."""

    def test_builtin_catalogue(self):
        """Every built-in handler is registered."""
        registry = build_registry()
        assert len(registry) == len(ALL_HANDLERS)
        for name in ("create", "add_text", "add_footnote", "get_footnotes", "set_cell_colors", "unprotect"):
            assert name in registry

    @pytest.mark.parametrize("name", ["add_text", "ADD_TEXT", "Add_Text", "aDd_TeXt"])
    def test_case_insensitive(self, name):
        """Any casing reaches the same handler."""
        registry = build_registry()
        assert registry.lookup(name) is registry.lookup("add_text")

    def test_unknown_operation_message(self):
        """Unknown names fail with the caller's exact string."""
        with pytest.raises(UnknownOperation, match="Unknown operation: FrobNicate") as exc_info:
            build_registry().lookup("FrobNicate")
        assert exc_info.value.operation == "FrobNicate"
        assert "add_text" in str(exc_info.value)

    def test_whitespace_not_stripped(self):
        """Names are matched exactly apart from case."""
        with pytest.raises(UnknownOperation):
            build_registry().lookup(" add_text")

    def test_non_string_operation(self):
        with pytest.raises(UnknownOperation):
            build_registry().lookup(None)

    def test_names_sorted(self):
        names = build_registry().names()
        assert names == sorted(names)


# ==================== Registration Tests ====================


class TestRegistration:
    """Test registration rules."""

    def test_duplicate_rejected(self):
        """Two handlers under one name (any casing) is a startup error."""
        registry = HandlerRegistry([CountHandler()])

        class OtherCount(CountHandler):
            operation = "COUNT"

        with pytest.raises(ValueError, match="Duplicate handler"):
            registry.register(OtherCount())

    def test_empty_name_rejected(self):
        class Nameless(CountHandler):
            operation = ""

        with pytest.raises(ValueError, match="no operation name"):
            HandlerRegistry([Nameless()])

    def test_frozen_registry(self):
        registry = HandlerRegistry([CountHandler()]).freeze()
        assert registry.frozen
        with pytest.raises(RuntimeError):
            registry.register(AppendHandler())

    def test_dispatch(self):
        registry = HandlerRegistry([AppendHandler(), CountHandler()])
        context = _context()
        assert registry.dispatch("APPEND", context, ParameterBag({"text": "a"})) == 1
        assert registry.dispatch("count", context, ParameterBag()) == 1


# ==================== Template Tests ====================


class TestTemplates:
    """Test edit/query template behavior."""

    def test_edit_marks_modified(self):
        context = _context()
        AppendHandler().execute(context, ParameterBag({"text": "a"}))
        assert context.is_modified

    def test_query_leaves_unmodified(self):
        context = _context()
        CountHandler().execute(context, ParameterBag())
        assert not context.is_modified

    def test_validation_failure_does_not_mutate(self):
        """A parse failure leaves the document and flag untouched."""
        context = _context()
        with pytest.raises(MissingParameter):
            AppendHandler().execute(context, ParameterBag())
        assert context.document.paragraphs == []
        assert not context.is_modified

    def test_protected_document_rejects_edits(self):
        document = Document(protection=Protection(protection_type="read_only", password_hash="x"))
        context = _context(document)
        with pytest.raises(StateConflictError, match="protected"):
            AppendHandler().execute(context, ParameterBag({"text": "a"}))
        assert document.paragraphs == []
        assert not context.is_modified
