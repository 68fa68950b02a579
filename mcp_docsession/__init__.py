"""
Document dispatch and session lifecycle over MCP.

Operations run against a document either by file path (loaded, changed and
written back within one call) or by session ID (kept in memory across calls
until saved or closed).
"""

from .config import ReleaseBehavior, SessionConfig
from .errors import DocSessionError
from .finalizer import ResultEnvelope
from .service import DocumentService

__version__ = "0.1.0"

__all__ = [
    "DocumentService",
    "DocSessionError",
    "ReleaseBehavior",
    "ResultEnvelope",
    "SessionConfig",
    "__version__",
]
