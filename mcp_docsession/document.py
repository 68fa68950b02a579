"""
Reference document backend.

A small structured document stored as JSON: paragraphs, footnotes, bookmarks,
tables, core properties and edit protection. It stands in for a full office
document library so the dispatch and session layers have something real to
load, mutate and save.
"""

import hashlib
import json
import os
import tempfile
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import SourceLoadError

FORMAT_NAME = "docsession"
FORMAT_VERSION = 1


def _utcnow() -> str:
    """Get current UTC time as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def hash_password(password: str) -> str:
    """Hash a protection password for storage."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


@dataclass
class Paragraph:
    """A block of text with a style name and alignment."""

    text: str
    style: str = "Normal"
    alignment: str = "left"


@dataclass
class Footnote:
    """A footnote anchored to a paragraph."""

    id: int
    paragraph_index: int
    text: str


@dataclass
class Bookmark:
    """A named position at a paragraph."""

    name: str
    paragraph_index: int


@dataclass
class Table:
    """A grid of text cells with optional background colors."""

    cells: list[list[str]]
    colors: list[list[str | None]]

    @classmethod
    def empty(cls, rows: int, columns: int) -> "Table":
        return cls(
            cells=[["" for _ in range(columns)] for _ in range(rows)],
            colors=[[None for _ in range(columns)] for _ in range(rows)],
        )

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def columns(self) -> int:
        return len(self.cells[0]) if self.cells else 0


@dataclass
class Protection:
    """Edit protection: a protection type plus a password hash."""

    protection_type: str
    password_hash: str


@dataclass
class Document:
    """In-memory document model."""

    paragraphs: list[Paragraph] = field(default_factory=list)
    footnotes: list[Footnote] = field(default_factory=list)
    bookmarks: list[Bookmark] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    protection: Protection | None = None

    # ==================== Queries ====================

    @property
    def is_protected(self) -> bool:
        return self.protection is not None

    def text(self) -> str:
        """Full body text plus footnote and table text, newline separated."""
        parts = [p.text for p in self.paragraphs]
        parts.extend(f.text for f in self.footnotes)
        for table in self.tables:
            parts.extend(cell for row in table.cells for cell in row if cell)
        return "\n".join(parts)

    def find_bookmark(self, name: str) -> Bookmark | None:
        for bookmark in self.bookmarks:
            if bookmark.name == name:
                return bookmark
        return None

    def find_footnote(self, footnote_id: int) -> Footnote | None:
        for footnote in self.footnotes:
            if footnote.id == footnote_id:
                return footnote
        return None

    def next_footnote_id(self) -> int:
        return max((f.id for f in self.footnotes), default=0) + 1

    # ==================== Structural Edits ====================

    def insert_paragraph(self, index: int, paragraph: Paragraph) -> None:
        """Insert a paragraph, shifting anchors at or after index."""
        self.paragraphs.insert(index, paragraph)
        for footnote in self.footnotes:
            if footnote.paragraph_index >= index:
                footnote.paragraph_index += 1
        for bookmark in self.bookmarks:
            if bookmark.paragraph_index >= index:
                bookmark.paragraph_index += 1

    def remove_paragraph(self, index: int) -> Paragraph:
        """Remove a paragraph with its footnotes and bookmarks, shifting later anchors."""
        removed = self.paragraphs.pop(index)
        self.footnotes = [f for f in self.footnotes if f.paragraph_index != index]
        self.bookmarks = [b for b in self.bookmarks if b.paragraph_index != index]
        for footnote in self.footnotes:
            if footnote.paragraph_index > index:
                footnote.paragraph_index -= 1
        for bookmark in self.bookmarks:
            if bookmark.paragraph_index > index:
                bookmark.paragraph_index -= 1
        return removed

    # ==================== Serialization ====================

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "format": FORMAT_NAME,
            "version": FORMAT_VERSION,
            "paragraphs": [asdict(p) for p in self.paragraphs],
            "footnotes": [asdict(f) for f in self.footnotes],
            "bookmarks": [asdict(b) for b in self.bookmarks],
            "tables": [asdict(t) for t in self.tables],
            "properties": dict(self.properties),
            "protection": asdict(self.protection) if self.protection else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        """Build a document from its serialized form.

        Raises:
            ValueError: If the data is not a document of a supported version
        """
        if data.get("format") != FORMAT_NAME:
            raise ValueError(f"not a {FORMAT_NAME} document")
        if data.get("version") != FORMAT_VERSION:
            raise ValueError(f"unsupported version {data.get('version')!r}")

        protection = data.get("protection")
        return cls(
            paragraphs=[Paragraph(**p) for p in data.get("paragraphs", [])],
            footnotes=[Footnote(**f) for f in data.get("footnotes", [])],
            bookmarks=[Bookmark(**b) for b in data.get("bookmarks", [])],
            tables=[Table(**t) for t in data.get("tables", [])],
            properties=dict(data.get("properties", {})),
            protection=Protection(**protection) if protection else None,
        )


# ==================== File I/O ====================


def new_document() -> Document:
    """Create a blank document with creation metadata."""
    now = _utcnow()
    return Document(properties={"created": now, "modified": now})


def load_document(path: str | Path) -> Document:
    """Load a document from disk.

    Raises:
        SourceLoadError: If the file is missing, unreadable, or malformed
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SourceLoadError(str(path), "file not found")
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise SourceLoadError(str(path), str(e)) from e
    except json.JSONDecodeError as e:
        raise SourceLoadError(str(path), f"malformed document: {e}") from e
    if not isinstance(data, dict):
        raise SourceLoadError(str(path), "malformed document: top level is not an object")
    try:
        return Document.from_dict(data)
    except (TypeError, ValueError) as e:
        raise SourceLoadError(str(path), str(e)) from e


def save_document(document: Document, path: str | Path) -> None:
    """Write a document to disk atomically (temp file + replace)."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    document.properties["modified"] = _utcnow()
    payload = json.dumps(document.to_dict(), indent=2)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", dir=file_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_name, file_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
