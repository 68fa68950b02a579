"""
Tool definitions and handlers for the document session server.

Categories:
- Document tools: run an operation by path or session
- Session tools: open/save/close sessions and recover temp snapshots
"""

from .definitions import ALL_TOOLS
from .handlers import ToolHandlers

__all__ = ["ALL_TOOLS", "ToolHandlers"]
