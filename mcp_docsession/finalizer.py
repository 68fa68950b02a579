"""
Result envelope and post-call persistence.

After a handler succeeds the finalizer decides what happens to the document:
- ephemeral + modified: write to output_path, else back to the source path
- ephemeral + unmodified: nothing is written, even if output_path was given
- session: never written; the resolver flags a modified session dirty
"""

import logging
from dataclasses import dataclass
from typing import Any

from .context import OperationContext
from .document import save_document

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResultEnvelope:
    """Handler result plus session identity and residency metadata."""

    payload: Any
    session_id: str | None = None
    is_session: bool = False
    output_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": True,
            "result": self.payload,
            "session_id": self.session_id,
            "is_session": self.is_session,
            "output_path": self.output_path,
        }


class Finalizer:
    """Persist or keep resident, then wrap the payload."""

    def finalize(
        self,
        payload: Any,
        context: OperationContext,
        output_path: str | None = None,
    ) -> ResultEnvelope:
        """
        Apply the persistence decision for one successful call.

        Args:
            payload: Handler result
            context: Context the handler ran against
            output_path: Caller-supplied target for ephemeral saves

        Returns:
            ResultEnvelope for the caller
        """
        if context.is_session:
            return ResultEnvelope(payload=payload, session_id=context.session_id, is_session=True)

        written = None
        if context.is_modified:
            written = output_path or context.source_path
            save_document(context.document, written)
            logger.debug(f"Saved ephemeral document to {written}")

        return ResultEnvelope(payload=payload, output_path=written)
