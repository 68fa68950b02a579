"""Shared fixtures: throwaway documents, configs and services."""

import tempfile
from pathlib import Path

import pytest

from mcp_docsession.config import ReleaseBehavior, SessionConfig
from mcp_docsession.document import Paragraph, new_document, save_document
from mcp_docsession.service import DocumentService
from mcp_docsession.session import SessionStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory for documents and snapshots."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_document(temp_dir):
    """Factory writing a document with the given paragraphs; returns its path."""

    def _make(name: str = "doc.docj", *paragraphs: str) -> str:
        document = new_document()
        for text in paragraphs:
            document.paragraphs.append(Paragraph(text=text))
        path = temp_dir / name
        save_document(document, path)
        return str(path)

    return _make


@pytest.fixture
def config(temp_dir):
    """Session config with snapshots kept inside the temp directory."""
    return SessionConfig(
        temp_directory=str(temp_dir / "snapshots"),
        on_release=ReleaseBehavior.SAVE_TO_TEMP,
    )


@pytest.fixture
def store(config):
    return SessionStore(config)


@pytest.fixture
def service(config):
    """Document service, released after the test."""
    service = DocumentService(config)
    yield service
    service.shutdown()
