#!/usr/bin/env python3
"""
Refactor Gateway - Tool registry and dispatcher

Each tool is a typed operation parsed from the raw `arguments` object of a
request. The registry is fixed at import time; Dispatcher.dispatch() parses
the arguments, snapshots a model from the cache when the tool needs one, and
executes the operation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .cache import ProjectCache
from .errors import InvalidParamsError, NotFoundError, ToolNotFoundError
from .model import resolve_project_path
from .mutations import make_directory, rename_symbol, update_import, write_file
from .references import find_references, references_report
from .resolver import resolve_by_name, resolve_by_position
from .typecheck import check_types

logger = logging.getLogger(__name__)


# --- Operations ---

@dataclass(frozen=True)
class Position:
    offset: int | None = None
    line: int | None = None
    column: int | None = None

    @property
    def given(self) -> bool:
        return self.offset is not None or self.line is not None


@dataclass(frozen=True)
class CheckTypes:
    file_path: str


@dataclass(frozen=True)
class WriteFile:
    file_path: str
    content: str


@dataclass(frozen=True)
class MakeDirectory:
    dir_path: str


@dataclass(frozen=True)
class FindReferences:
    file_path: str
    symbol_name: str | None
    position: Position


@dataclass(frozen=True)
class RenameSymbol:
    file_path: str
    symbol_name: str
    new_name: str
    position: Position


@dataclass(frozen=True)
class UpdateImport:
    file_path: str
    old_path: str
    new_path: str


Operation = CheckTypes | WriteFile | MakeDirectory | FindReferences | RenameSymbol | UpdateImport


# --- Argument parsing ---

def _require_str(args: dict, key: str, allow_empty: bool = False) -> str:
    value = args.get(key)
    if value is None:
        raise InvalidParamsError(f"Required: {key}")
    if not isinstance(value, str):
        raise InvalidParamsError(f"{key} must be a string")
    if not value and not allow_empty:
        raise InvalidParamsError(f"{key} must be a non-empty string")
    return value


def _optional_str(args: dict, key: str) -> str | None:
    if args.get(key) is None:
        return None
    return _require_str(args, key)


def _optional_int(args: dict, key: str, minimum: int) -> int | None:
    value = args.get(key)
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidParamsError(f"{key} must be an integer")
    if value < minimum:
        raise InvalidParamsError(f"{key} must be >= {minimum}")
    return value


def _position(args: dict) -> Position:
    position = Position(
        offset=_optional_int(args, "offset", 0),
        line=_optional_int(args, "line", 1),
        column=_optional_int(args, "column", 1),
    )
    if position.offset is None and (position.line is None) != (position.column is None):
        raise InvalidParamsError("line and column must be given together")
    return position


def _parse_check_types(args: dict) -> CheckTypes:
    return CheckTypes(file_path=_require_str(args, "filePath"))


def _parse_write_file(args: dict) -> WriteFile:
    return WriteFile(
        file_path=_require_str(args, "filePath"),
        content=_require_str(args, "content", allow_empty=True),
    )


def _parse_mkdir(args: dict) -> MakeDirectory:
    return MakeDirectory(dir_path=_require_str(args, "dirPath"))


def _parse_find_references(args: dict) -> FindReferences:
    operation = FindReferences(
        file_path=_require_str(args, "filePath"),
        symbol_name=_optional_str(args, "symbolName"),
        position=_position(args),
    )
    if operation.symbol_name is None and not operation.position.given:
        raise InvalidParamsError("Required: symbolName, offset, or line and column")
    return operation


def _parse_rename_symbol(args: dict) -> RenameSymbol:
    return RenameSymbol(
        file_path=_require_str(args, "filePath"),
        symbol_name=_require_str(args, "symbolName"),
        new_name=_require_str(args, "newName"),
        position=_position(args),
    )


def _parse_update_import(args: dict) -> UpdateImport:
    return UpdateImport(
        file_path=_require_str(args, "filePath"),
        old_path=_require_str(args, "oldPath"),
        new_path=_require_str(args, "newPath"),
    )


# --- Registry ---

@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    parse: Callable[[dict], Operation]
    needs_model: bool = True


TOOLS: tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        "check_types",
        "Type check a Python file with pyright. Args: filePath",
        _parse_check_types,
    ),
    ToolDescriptor(
        "write_file",
        "Create or overwrite a file, formatting it with ruff/black. Args: filePath, content",
        _parse_write_file,
    ),
    ToolDescriptor(
        "mkdir",
        "Create a directory and any missing parents. Args: dirPath",
        _parse_mkdir,
        needs_model=False,
    ),
    ToolDescriptor(
        "find_references",
        "Find every reference to a symbol across the project. "
        "Args: filePath, and symbolName or offset or line+column",
        _parse_find_references,
    ),
    ToolDescriptor(
        "rename_symbol",
        "Rename a symbol across every file in the project. "
        "Args: filePath, symbolName, newName, optional offset or line+column",
        _parse_rename_symbol,
    ),
    ToolDescriptor(
        "update_import",
        "Retarget import statements in one file from oldPath to newPath. "
        "Args: filePath, oldPath, newPath",
        _parse_update_import,
    ),
)

TOOLS_BY_NAME: dict[str, ToolDescriptor] = {tool.name: tool for tool in TOOLS}
if len(TOOLS_BY_NAME) != len(TOOLS):
    raise ValueError("tool names must be unique")


def list_tools() -> dict:
    return {"tools": [{"name": t.name, "description": t.description} for t in TOOLS]}


def content_envelope(result: Any) -> dict:
    return {"content": [{"type": "json", "json": result}]}


# --- Dispatch ---

class Dispatcher:
    def __init__(self, cache: ProjectCache, project_root):
        self.cache = cache
        self.project_root = project_root

    def parse(self, tool_name: str, arguments: Any) -> tuple[ToolDescriptor, Operation]:
        tool = TOOLS_BY_NAME.get(tool_name)
        if tool is None:
            raise ToolNotFoundError(f"Unknown tool: {tool_name}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("arguments must be an object")
        return tool, tool.parse(arguments)

    async def run(self, tool_name: str, arguments: Any) -> Any:
        """Run a tool and return its bare result.

        Arguments are validated before the cache is touched; the model is
        acquired once and used for the whole call.
        """
        tool, operation = self.parse(tool_name, arguments)
        model = await self.cache.acquire() if tool.needs_model else None
        return await self.execute(operation, model)

    async def dispatch(self, tool_name: str, arguments: Any) -> dict:
        """Run a tool and wrap its result in the content envelope."""
        return content_envelope(await self.run(tool_name, arguments))

    async def execute(self, operation: Operation, model) -> Any:
        match operation:
            case CheckTypes(file_path=file_path):
                return await check_types(model, file_path)

            case WriteFile(file_path=file_path, content=content):
                return await write_file(model, file_path, content)

            case MakeDirectory(dir_path=dir_path):
                path = resolve_project_path(self.project_root, dir_path)
                return make_directory(self.project_root, path)

            case FindReferences(file_path=file_path, symbol_name=name, position=position):
                if position.given:
                    symbol = resolve_by_position(
                        model, file_path,
                        offset=position.offset, line=position.line, column=position.column,
                    )
                    if name is not None and symbol.name != name:
                        raise NotFoundError(
                            f"identifier at offset {symbol.offset} is {symbol.name!r}, not {name!r}"
                        )
                else:
                    symbol = resolve_by_name(model, file_path, name)
                entries = find_references(model, symbol)
                return references_report(symbol, entries, model.relative(symbol.path))

            case RenameSymbol(file_path=file_path, symbol_name=name, new_name=new_name, position=position):
                return rename_symbol(
                    model, file_path, name, new_name,
                    offset=position.offset, line=position.line, column=position.column,
                )

            case UpdateImport(file_path=file_path, old_path=old_path, new_path=new_path):
                return update_import(model, file_path, old_path, new_path)

        raise TypeError(f"Unhandled operation: {operation!r}")
