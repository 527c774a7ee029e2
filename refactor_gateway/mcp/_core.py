#!/usr/bin/env python3
"""
Core utilities shared across all Refactor Gateway MCP tools.
"""

import itertools
import logging
import os
import subprocess
import sys
from typing import Any, Optional
from urllib.parse import urlparse

import aiohttp
from mcp.server.fastmcp import FastMCP
from toon import encode as toon_encode

from ..config import DEFAULT_PORT, ENV_PREFIX

logger = logging.getLogger(__name__)

# Configuration
HTTP_BASE_URL = os.environ.get(ENV_PREFIX + "URL", f"http://localhost:{DEFAULT_PORT}")
HTTP_TIMEOUT = aiohttp.ClientTimeout(total=180)

# Shared MCP instance
mcp = FastMCP("refactor-gateway")

# Shared HTTP session
_http_session: Optional[aiohttp.ClientSession] = None
_request_ids = itertools.count(1)


def ensure_daemon_running() -> bool:
    """Start the daemon behind HTTP_BASE_URL unless it is already healthy."""
    port = urlparse(HTTP_BASE_URL).port or DEFAULT_PORT
    command = [sys.executable, "-m", "refactor_gateway.manager", "ensure", "--port", str(port)]
    root = os.environ.get(ENV_PREFIX + "ROOT")
    if root:
        command += ["--root", root]
    result = subprocess.run(command, capture_output=True, text=True)
    if result.returncode != 0:
        logger.warning("Failed to ensure daemon: %s", (result.stderr or result.stdout).strip())
        return False
    return True


async def get_session() -> aiohttp.ClientSession:
    """Get or create HTTP session."""
    global _http_session
    if _http_session is None or _http_session.closed:
        _http_session = aiohttp.ClientSession(timeout=HTTP_TIMEOUT)
    return _http_session


async def call_tool(name: str, arguments: dict[str, Any]) -> dict:
    """Invoke a gateway tool through JSON-RPC tools/call and unwrap its result."""
    session = await get_session()
    payload = {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": "tools/call",
        "params": {
            "name": name,
            "arguments": {k: v for k, v in arguments.items() if v is not None},
        },
    }
    try:
        async with session.post(f"{HTTP_BASE_URL}/rpc", json=payload) as resp:
            if resp.status != 200:
                text = await resp.text()
                return {"error": f"HTTP {resp.status}: {text}"}
            body = await resp.json()
    except aiohttp.ClientError as e:
        return {"error": f"Connection error: {e}. Is the gateway daemon running on {HTTP_BASE_URL}?"}
    return unwrap_response(body)


def unwrap_response(body: dict) -> dict:
    """Turn a JSON-RPC response into either the tool result or {"error": ...}."""
    if "error" in body:
        error = body["error"]
        return {"error": f"{error.get('message')} (code {error.get('code')})"}
    return body["result"]["content"][0]["json"]


def format_result(result: dict) -> str:
    """Render a tool result as TOON, which costs the agent fewer tokens than JSON."""
    if "error" in result:
        return f"Error: {result['error']}"
    return toon_encode(result)


async def cleanup():
    """Cleanup HTTP session on shutdown."""
    global _http_session
    if _http_session and not _http_session.closed:
        await _http_session.close()
