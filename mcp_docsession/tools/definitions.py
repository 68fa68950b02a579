"""
MCP Tool definitions for the document session server.

All tools are defined here with their schemas.
Handlers are implemented in handlers.py.
"""

from typing import Any

# Tool schema type
Tool = dict[str, Any]


# ==================== Document Tools ====================

EDIT_TOOLS: list[Tool] = [
    {
        "name": "document_edit",
        "description": (
            "Run a document operation against a file path or an open session. "
            "With session_id the resident document is used and changes stay in memory "
            "until document_session save/close; with path the file is loaded for this call "
            "only and written back (or to output_path) if the operation changed it. "
            "Extra operation arguments (text, paragraph_index, name, ...) go alongside."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "description": "Operation name, case-insensitive (e.g., 'add_text', 'get_footnotes')",
                },
                "path": {"type": "string", "description": "Document path (ignored when session_id is given)"},
                "session_id": {"type": "string", "description": "Session ID from document_session open"},
                "output_path": {
                    "type": "string",
                    "description": "Where to write a modified document (path mode only)",
                },
                "text": {"type": "string", "description": "Text to add, insert or attach"},
                "paragraph_index": {"type": "integer", "description": "0-based paragraph index"},
                "name": {"type": "string", "description": "Bookmark name"},
                "footnote_id": {"type": "integer", "description": "Footnote ID"},
                "table_index": {"type": "integer", "description": "0-based table index"},
                "cells": {
                    "type": "array",
                    "description": "Cell color fragments for set_cell_colors",
                    "items": {
                        "type": "object",
                        "properties": {
                            "row": {"type": "integer"},
                            "column": {"type": "integer"},
                            "color": {"type": "string", "description": "Hex color (e.g., '#FF0000')"},
                        },
                        "required": ["row", "column", "color"],
                    },
                },
            },
            "required": ["operation"],
            "additionalProperties": True,
        },
    },
    {
        "name": "document_operations",
        "description": "List every operation name accepted by document_edit.",
        "inputSchema": {
            "type": "object",
            "properties": {},
        },
    },
]


# ==================== Session Tools ====================

SESSION_TOOLS: list[Tool] = [
    {
        "name": "document_session",
        "description": (
            "Manage in-memory document sessions: open, save, close, list, status. "
            "Recover unsaved work from temp snapshots: list_temp, recover, delete_temp, "
            "cleanup, temp_stats."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "operation": {
                    "type": "string",
                    "enum": [
                        "open",
                        "save",
                        "close",
                        "list",
                        "status",
                        "list_temp",
                        "recover",
                        "delete_temp",
                        "cleanup",
                        "temp_stats",
                    ],
                    "description": "Session operation",
                },
                "path": {"type": "string", "description": "Document path (open)"},
                "mode": {
                    "type": "string",
                    "enum": ["readwrite", "readonly"],
                    "description": "Open mode (default: readwrite)",
                },
                "session_id": {"type": "string", "description": "Session ID (save, close, status, recover, delete_temp)"},
                "output_path": {"type": "string", "description": "Save or recover target path"},
                "discard": {"type": "boolean", "description": "Close without saving changes (default: false)"},
                "delete_after_recover": {
                    "type": "boolean",
                    "description": "Remove the snapshot after recovering it (default: true)",
                },
            },
            "required": ["operation"],
        },
    },
]


# All tools combined
ALL_TOOLS: list[Tool] = [
    *EDIT_TOOLS,
    *SESSION_TOOLS,
]
