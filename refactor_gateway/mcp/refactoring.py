#!/usr/bin/env python3
"""Refactoring tools: rename_symbol, update_import."""

from ._core import mcp, call_tool, format_result


@mcp.tool()
async def rename_symbol(
    filePath: str,
    symbolName: str,
    newName: str,
    offset: int | None = None,
    line: int | None = None,
    column: int | None = None,
) -> str:
    """
    Rename a symbol (function, class, variable, ...) across the project.

    All references are rewritten and every touched file is saved. If the
    file has several identifiers with the same name, pass a position to
    pick one; otherwise the first one in the file is renamed.

    Args:
        filePath: Path to the Python file containing the symbol
        symbolName: Current name of the symbol
        newName: Desired new name
        offset: Optional character offset of the symbol (0-indexed)
        line: Optional line number (1-indexed), used with column
        column: Optional column number (1-indexed), used with line
    """
    result = await call_tool("rename_symbol", {
        "filePath": filePath,
        "symbolName": symbolName,
        "newName": newName,
        "offset": offset,
        "line": line,
        "column": column,
    })
    return format_result(result)


@mcp.tool()
async def update_import(filePath: str, oldPath: str, newPath: str) -> str:
    """
    Retarget import statements in a single file.

    Args:
        filePath: Path to the Python file
        oldPath: Module currently imported, e.g. "pkg.old" or ".old"
        newPath: Module to import instead
    """
    result = await call_tool("update_import", {
        "filePath": filePath,
        "oldPath": oldPath,
        "newPath": newPath,
    })
    return format_result(result)
