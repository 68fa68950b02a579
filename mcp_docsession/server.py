"""
Document Session MCP Server

Exposes path-based and session-based document editing as MCP tools.

Architecture:
- DocumentService: registry dispatch, source resolution, persistence
- SessionStore: resident documents behind opaque session IDs
- TempFileManager: snapshots of sessions released with unsaved changes
"""

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import SessionConfig, load_config
from .service import DocumentService
from .tools import ALL_TOOLS, ToolHandlers

logger = logging.getLogger("mcp-docsession")


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the MCP transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def create_server(config: SessionConfig | None = None) -> tuple[Server, ToolHandlers]:
    """Create and configure MCP server.

    Args:
        config: Session configuration (defaults to SessionConfig())

    Returns:
        Tuple of (server, handlers)
    """
    config = config or SessionConfig()

    logger.info("Document Session MCP Server initializing")
    logger.info(f"Temp directory: {config.temp_directory}")

    service = DocumentService(config)
    handlers = ToolHandlers(service)

    server = Server("mcp-docsession")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return [
            Tool(
                name=tool["name"],
                description=tool["description"],
                inputSchema=tool["inputSchema"],
            )
            for tool in ALL_TOOLS
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool invocation."""
        logger.info(f"Tool called: {name}")

        try:
            result = await handlers.handle_tool(name, arguments or {})
            return [TextContent(type="text", text=json.dumps(result, indent=2, default=str))]
        except Exception as e:
            logger.error(f"Tool error: {e}", exc_info=True)
            return [TextContent(type="text", text=json.dumps({"error": str(e)}))]

    return server, handlers


async def main(config: SessionConfig | None = None):
    """Main entry point for MCP server."""
    logger.info("Starting Document Session MCP Server...")

    server, handlers = create_server(config)
    service = handlers.service

    logger.info(f"Registered {len(ALL_TOOLS)} tools, {len(service.registry)} document operations")

    service.start()
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("Server running on stdio")
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        service.shutdown()


def cli_main(argv: list[str] | None = None):
    """CLI entry point."""
    config = load_config(argv)
    configure_logging(config.log_level)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
