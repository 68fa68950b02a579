"""Allow running as: python -m mcp_docsession"""

from .server import cli_main

if __name__ == "__main__":
    cli_main()
