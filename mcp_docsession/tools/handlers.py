"""
Tool handlers for the document session server.

Implements the actual logic for each tool defined in definitions.py.
"""

import logging
from typing import Any

from ..errors import DocSessionError, UsageError
from ..parameters import ParameterBag
from ..service import DocumentService

logger = logging.getLogger(__name__)

# Arguments document_edit passes to DocumentService.execute by name
_ROUTING_ARGS = ("operation", "path", "session_id", "output_path")


class ToolHandlers:
    """Handlers for all MCP tools.

    Wraps one DocumentService and turns its results and caller errors into
    JSON-ready dicts.
    """

    def __init__(self, service: DocumentService):
        """Initialize tool handlers.

        Args:
            service: Document service shared by every tool call
        """
        self.service = service

    async def handle_tool(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Route tool call to appropriate handler.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            Tool result; caller errors come back as {"success": False, ...}

        Raises:
            ValueError: Unknown tool name
        """
        handler = getattr(self, f"_handle_{name}", None)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")
        try:
            return await handler(arguments)
        except DocSessionError as e:
            logger.info(f"{name} failed ({e.code}): {e.message}")
            return {"success": False, "error": e.message, "code": e.code}

    # ==================== Document Tools ====================

    async def _handle_document_edit(self, args: dict[str, Any]) -> dict[str, Any]:
        """Run one document operation by path or session."""
        routing = ParameterBag(args)
        params = {k: v for k, v in args.items() if k.casefold() not in _ROUTING_ARGS}
        envelope = self.service.execute(
            routing.get_required("operation"),
            path=routing.get_optional("path", str),
            session_id=routing.get_optional("session_id", str),
            output_path=routing.get_optional("output_path", str),
            **params,
        )
        return envelope.to_dict()

    async def _handle_document_operations(self, args: dict[str, Any]) -> dict[str, Any]:
        """List registered operation names."""
        operations = self.service.operations()
        return {"success": True, "operations": operations, "count": len(operations)}

    # ==================== Session Tools ====================

    async def _handle_document_session(self, args: dict[str, Any]) -> dict[str, Any]:
        """Dispatch a session management operation."""
        params = ParameterBag(args)
        operation = params.get_required("operation").strip().lower()
        method = getattr(self, f"_session_{operation}", None)
        if method is None:
            raise UsageError(
                f"Unknown session operation: {operation}. "
                "Available operations: open, save, close, list, status, "
                "list_temp, recover, delete_temp, cleanup, temp_stats"
            )
        return method(params)

    def _session_open(self, params: ParameterBag) -> dict[str, Any]:
        path = params.get_required("path")
        mode = params.get_optional("mode", str, "readwrite")
        session_id = self.service.open_session(path, mode)
        info = self.service.session_status(session_id)
        return {"success": True, "session_id": session_id, "path": path, "mode": info.mode}

    def _session_save(self, params: ParameterBag) -> dict[str, Any]:
        session_id = params.get_required("session_id")
        saved_to = self.service.save_session(session_id, params.get_optional("output_path", str))
        return {"success": True, "session_id": session_id, "output_path": saved_to}

    def _session_close(self, params: ParameterBag) -> dict[str, Any]:
        session_id = params.get_required("session_id")
        discard = params.get_optional("discard", bool, False)
        saved = self.service.close_session(session_id, discard)
        return {"success": True, "session_id": session_id, "saved": saved, "discarded": discard}

    def _session_list(self, params: ParameterBag) -> dict[str, Any]:
        sessions = self.service.list_sessions()
        return {
            "success": True,
            "count": len(sessions),
            "total_memory_mb": round(self.service.store.total_memory_mb(), 3),
            "sessions": [s.to_dict() for s in sessions],
        }

    def _session_status(self, params: ParameterBag) -> dict[str, Any]:
        info = self.service.session_status(params.get_required("session_id"))
        return {"success": True, **info.to_dict()}

    def _session_list_temp(self, params: ParameterBag) -> dict[str, Any]:
        files = self.service.temp_files.list_recoverable()
        return {"success": True, "count": len(files), "files": [f.to_dict() for f in files]}

    def _session_recover(self, params: ParameterBag) -> dict[str, Any]:
        session_id = params.get_required("session_id")
        recovered_to = self.service.temp_files.recover(
            session_id,
            params.get_optional("output_path", str),
            params.get_optional("delete_after_recover", bool, True),
        )
        return {"success": True, "session_id": session_id, "output_path": recovered_to}

    def _session_delete_temp(self, params: ParameterBag) -> dict[str, Any]:
        session_id = params.get_required("session_id")
        deleted = self.service.temp_files.delete(session_id)
        return {"success": True, "session_id": session_id, "deleted": deleted}

    def _session_cleanup(self, params: ParameterBag) -> dict[str, Any]:
        result = self.service.temp_files.cleanup_expired()
        return {"success": True, **result.to_dict()}

    def _session_temp_stats(self, params: ParameterBag) -> dict[str, Any]:
        return {"success": True, **self.service.temp_files.stats()}
