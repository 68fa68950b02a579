"""
Per-call operation context.

Binds one document to where it came from (a session or a path) and tracks
whether the handler changed it. Persistence decisions live in the finalizer.
"""

from dataclasses import dataclass
from enum import Enum

from .document import Document


class SourceKind(str, Enum):
    """Where the document backing a call came from."""

    SESSION = "session"
    EPHEMERAL = "ephemeral"


@dataclass
class OperationContext:
    """Document plus provenance for a single call."""

    document: Document
    source_kind: SourceKind
    session_id: str | None = None
    source_path: str | None = None
    is_modified: bool = False

    def __post_init__(self):
        if (self.source_kind is SourceKind.SESSION) != (self.session_id is not None):
            raise ValueError("session_id must be set exactly when source_kind is SESSION")

    @property
    def is_session(self) -> bool:
        return self.source_kind is SourceKind.SESSION

    def mark_modified(self) -> None:
        """Record that the handler mutated the document. Idempotent."""
        self.is_modified = True
