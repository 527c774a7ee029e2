#!/usr/bin/env python3
"""
Refactor Gateway MCP bridge

Exposes the gateway's tools over MCP (stdio). Every tool call is forwarded to
the HTTP daemon as a JSON-RPC tools/call; the daemon is shared by all MCP
clients and is started on demand.
"""

import asyncio
import logging
import sys

from ._core import (
    mcp,
    call_tool,
    format_result,
    ensure_daemon_running,
    HTTP_BASE_URL,
    cleanup,
)

# Registers the @mcp.tool() functions
from . import files
from . import navigation
from . import refactoring
from . import typecheck

__all__ = [
    "mcp",
    "call_tool",
    "format_result",
    "ensure_daemon_running",
    "main",
]

logger = logging.getLogger(__name__)


def main():
    # stdout carries the MCP protocol; logs go to stderr
    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(name)s: %(message)s")
    logger.info("MCP bridge for gateway at %s", HTTP_BASE_URL)
    if not ensure_daemon_running():
        logger.warning("Gateway daemon did not report healthy; tool calls may fail")

    try:
        mcp.run()
    finally:
        asyncio.run(cleanup())


if __name__ == "__main__":
    main()
