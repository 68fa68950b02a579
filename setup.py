"""Setup script for mcp-docsession.

An MCP server that runs document operations either against a file path
(load, change, write back within one call) or against an in-memory session
that persists across calls until it is saved or closed.

Installation:
    pip install -e .[test]

Usage:
    mcp-docsession --idle-timeout 30 --on-release save_to_temp
    python -m mcp_docsession
"""

from setuptools import setup, find_packages

setup(
    name="mcp-docsession",
    version="0.1.0",
    description="Document dispatch and session lifecycle MCP server",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "mcp>=1.0.0,<2",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mcp-docsession=mcp_docsession.server:cli_main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
