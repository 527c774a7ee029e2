#!/usr/bin/env python3
"""File system tools: write_file, mkdir."""

from ._core import mcp, call_tool, format_result


@mcp.tool()
async def write_file(filePath: str, content: str) -> str:
    """
    Create or overwrite a file. The content is formatted with ruff (or black) first.

    Args:
        filePath: Path of the file to write; missing parent directories are created
        content: Full file content
    """
    result = await call_tool("write_file", {"filePath": filePath, "content": content})
    return format_result(result)


@mcp.tool()
async def mkdir(dirPath: str) -> str:
    """
    Create a directory and any missing parents. Existing directories are fine.

    Args:
        dirPath: Directory to create
    """
    result = await call_tool("mkdir", {"dirPath": dirPath})
    return format_result(result)
