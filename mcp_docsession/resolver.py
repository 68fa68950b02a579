"""
Source resolution: decide which document backs a call.

Precedence:
1. session_id (non-empty) -> the session's resident document; path is ignored
2. path (non-empty) -> a document loaded (or created) for this call only
3. neither -> MissingSource
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from .context import OperationContext, SourceKind
from .document import load_document, new_document
from .errors import MissingSource
from .session import SessionStore

logger = logging.getLogger(__name__)


def _present(value: str | None) -> bool:
    return bool(value and value.strip())


class SourceResolver:
    """Build the OperationContext for a call from (path, session_id)."""

    def __init__(self, store: SessionStore):
        self.store = store

    @contextmanager
    def resolve(
        self,
        path: str | None = None,
        session_id: str | None = None,
        creates_document: bool = False,
    ) -> Iterator[OperationContext]:
        """
        Yield the context for one call.

        Session-backed contexts hold the session's lock until the with-block
        exits, whether it exits normally or by exception. A call that exits
        normally with a modified context leaves the session dirty.

        Args:
            path: Document path for ephemeral calls
            session_id: Session token; wins over path when both are given
            creates_document: Start from a blank document instead of loading path

        Raises:
            MissingSource: Neither path nor session_id given
            SessionNotFound: Unknown or closed session
            SourceLoadError: Path cannot be loaded
        """
        if _present(session_id):
            with self.store.checkout(session_id) as entry:
                logger.debug(f"Resolved session {session_id} (path argument ignored: {path!r})")
                context = OperationContext(
                    document=entry.document,
                    source_kind=SourceKind.SESSION,
                    session_id=session_id,
                    source_path=entry.path,
                )
                yield context
                # Recorded on the held entry: close or shutdown may already have
                # removed it from the store while this call was running.
                if context.is_modified:
                    entry.is_dirty = True
            return

        if _present(path):
            document = new_document() if creates_document else load_document(path)
            yield OperationContext(
                document=document,
                source_kind=SourceKind.EPHEMERAL,
                source_path=path,
            )
            return

        raise MissingSource()
