#!/usr/bin/env python3
"""Navigation tools: references."""

from ._core import mcp, call_tool, format_result


@mcp.tool()
async def find_references(
    filePath: str,
    symbolName: str | None = None,
    offset: int | None = None,
    line: int | None = None,
    column: int | None = None,
) -> str:
    """
    Find all references to a symbol across the project.

    Identify the symbol either by name (first identifier with that name in
    the file) or by position.

    Args:
        filePath: Path to the Python file containing the symbol
        symbolName: Name of the symbol
        offset: Character offset of the symbol in the file (0-indexed)
        line: Line number (1-indexed), used with column
        column: Column number (1-indexed), used with line
    """
    result = await call_tool("find_references", {
        "filePath": filePath,
        "symbolName": symbolName,
        "offset": offset,
        "line": line,
        "column": column,
    })
    return format_result(result)
