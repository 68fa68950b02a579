"""
Document service: the single entry point for document operations.

One execute() call runs the full pipeline:
    registry lookup -> ParameterBag -> source resolution -> handler -> finalizer

Session lifecycle (open/save/close/list/status) and temp-file recovery are
exposed alongside so the tool layer only talks to this class.
"""

import logging
from typing import Any

from .config import SessionConfig
from .document import Document
from .finalizer import Finalizer, ResultEnvelope
from .handlers import build_registry
from .parameters import ParameterBag
from .registry import HandlerRegistry
from .resolver import SourceResolver
from .session import AutoSaver, SessionInfo, SessionStore, SessionSweeper, TempFileManager

logger = logging.getLogger(__name__)


class DocumentService:
    """Owns the session store and routes operations to handlers."""

    def __init__(self, config: SessionConfig | None = None, registry: HandlerRegistry | None = None):
        """
        Initialize the service.

        Args:
            config: Session configuration (defaults to SessionConfig())
            registry: Handler registry (defaults to every built-in handler, frozen)
        """
        self.config = config or SessionConfig()
        self.temp_files = TempFileManager(self.config)
        self.store = SessionStore(self.config, self.temp_files)
        self.registry = registry or build_registry()
        self.resolver = SourceResolver(self.store)
        self.finalizer = Finalizer()
        self._sweeper: SessionSweeper | None = None
        self._auto_saver: AutoSaver | None = None

    # ==================== Dispatch ====================

    def execute(
        self,
        operation: str,
        path: str | None = None,
        session_id: str | None = None,
        output_path: str | None = None,
        **params: Any,
    ) -> ResultEnvelope:
        """
        Run one document operation.

        Args:
            operation: Operation name (case-insensitive)
            path: Document path for an ephemeral call
            session_id: Session to operate on; wins over path
            output_path: Where an ephemeral modification is written
            **params: Operation-specific parameters

        Returns:
            ResultEnvelope with the handler's payload

        Raises:
            UnknownOperation: No handler for operation (checked before any I/O)
            DocSessionError: Any validation, lookup or state failure
        """
        handler = self.registry.lookup(operation)
        if output_path is not None:
            params["output_path"] = output_path
        logger.debug(f"Executing {handler.operation} (session={session_id!r}, path={path!r})")
        with self.resolver.resolve(path, session_id, handler.creates_document) as context:
            parameters = ParameterBag(params)
            payload = handler.execute(context, parameters)
            return self.finalizer.finalize(payload, context, output_path)

    def operations(self) -> list[str]:
        """Names of every registered operation."""
        return self.registry.names()

    # ==================== Sessions ====================

    def open_session(self, path: str, mode: str = "readwrite") -> str:
        return self.store.open(path, mode)

    def save_session(self, session_id: str, output_path: str | None = None) -> str:
        return self.store.save(session_id, output_path)

    def close_session(self, session_id: str, discard: bool = False) -> bool:
        return self.store.close(session_id, discard)

    def get_document(self, session_id: str) -> Document:
        """Resident document of a session (for in-process callers)."""
        return self.store.get(session_id)

    def list_sessions(self) -> list[SessionInfo]:
        return self.store.list_sessions()

    def session_status(self, session_id: str) -> SessionInfo:
        return self.store.status(session_id)

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Clear expired snapshots and start idle eviction and auto-save."""
        result = self.temp_files.cleanup_expired()
        if result.deleted:
            logger.info(f"Removed {result.deleted} expired session snapshots")
        if self.config.idle_timeout_minutes > 0 and self._sweeper is None:
            self._sweeper = SessionSweeper(self.store, self.config.sweep_interval_seconds)
            self._sweeper.start()
        if self.config.auto_save_interval_minutes > 0 and self._auto_saver is None:
            self._auto_saver = AutoSaver(self.store, self.config.auto_save_interval_minutes * 60)
            self._auto_saver.start()

    def shutdown(self) -> None:
        """Stop background tasks and release every open session."""
        if self._sweeper is not None:
            self._sweeper.stop()
            self._sweeper = None
        if self._auto_saver is not None:
            self._auto_saver.stop()
            self._auto_saver = None
        released = self.store.shutdown()
        logger.info(f"Document service stopped ({released} sessions released)")
