#!/usr/bin/env python3
"""Type checking tools."""

from ._core import mcp, call_tool, format_result


@mcp.tool()
async def check_types(filePath: str) -> str:
    """
    Type check a Python file with pyright.

    Args:
        filePath: Path to the Python file (absolute, or relative to the project root)
    """
    result = await call_tool("check_types", {"filePath": filePath})
    return format_result(result)
