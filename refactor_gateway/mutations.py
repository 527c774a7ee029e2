#!/usr/bin/env python3
"""
Refactor Gateway - Mutations

rename_symbol, update_import, write_file and make_directory. Every argument
and symbol is validated or resolved before the first byte is written.
"""

import ast
import keyword
import logging
import re
from pathlib import Path

from rope.base.exceptions import BadIdentifierError, RopeError
from rope.refactor.rename import Rename

from .errors import InvalidParamsError, NotFoundError, ProviderError, StorageError
from .resolver import SourceIndex, parse_module, resolve_by_name, resolve_by_position

logger = logging.getLogger(__name__)

# `pkg.mod`, `.mod`, `..`, ...
SPECIFIER_RE = re.compile(r"^(?:\.+|\.*[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*)$")
FROM_MODULE_RE = re.compile(r"from\s*(.+?)(?:\s+|(?<=\.))import\b", re.DOTALL)
ALIAS_AS_RE = re.compile(r"\s+as\s+")


def validate_identifier(name: str):
    if not name.isidentifier() or keyword.iskeyword(name):
        raise InvalidParamsError(f"Not a valid Python identifier: {name!r}")


# --- Rename ---

def rename_symbol(model, file_path: str, old_name: str, new_name: str,
                  offset: int | None = None, line: int | None = None,
                  column: int | None = None) -> dict:
    """Rename `old_name` everywhere rope can see it and save the touched files.

    Without a position the first identifier named `old_name` in the file is
    renamed. A position picks a specific one; it must still be `old_name`.
    rope's change set undoes applied changes if a later one fails, so either
    every file is saved or none is.
    """
    validate_identifier(new_name)
    if offset is not None or line is not None:
        symbol = resolve_by_position(model, file_path, offset=offset, line=line, column=column)
        if symbol.name != old_name:
            raise NotFoundError(f"identifier at offset {symbol.offset} is {symbol.name!r}, not {old_name!r}")
    else:
        symbol = resolve_by_name(model, file_path, old_name)

    model.refresh()
    try:
        renamer = Rename(model.project, symbol.resource, symbol.offset)
        changes = renamer.get_changes(new_name)
    except BadIdentifierError as e:
        raise NotFoundError(f"no identifier named {old_name} at offset {symbol.offset}: {e}")
    except RopeError as e:
        raise ProviderError(f"Rename failed: {e}")

    files = sorted(resource.path for resource in changes.get_changed_resources())
    try:
        model.project.do(changes)
    except (RopeError, OSError) as e:
        raise StorageError(f"Rename of {old_name!r} failed and was rolled back: {e}")

    logger.info("Renamed %s -> %s across %d file(s)", old_name, new_name, len(files))
    return {
        "success": True,
        "oldName": old_name,
        "newName": new_name,
        "files": files,
        "message": f"SUCCESS: Renamed \"{old_name}\" to \"{new_name}\" across {len(files)} file(s).",
    }


# --- Import retargeting ---

def _from_module_span(source: str, start: int, end: int) -> tuple[int, int] | None:
    match = FROM_MODULE_RE.match(source, start, end)
    if not match:
        return None
    module = match.group(1).rstrip(" \t\\\r\n")
    return match.start(1), match.start(1) + len(module)


def _alias_module_span(source: str, start: int, end: int, has_asname: bool) -> tuple[int, int]:
    text = source[start:end]
    if has_asname:
        text = ALIAS_AS_RE.split(text, maxsplit=1)[0]
    return start, start + len(text.rstrip(" \t\\\r\n"))


def _import_edits(index: SourceIndex, tree: ast.AST, old: str, new: str) -> list[tuple[int, int]]:
    """Source spans of every module specifier in the file equal to `old`."""
    spans = []
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom):
            if "." * node.level + (node.module or "") != old:
                continue
            start, end = index.span(node)
            span = _from_module_span(index.source, start, end)
            if span is None:
                raise ProviderError(f"Cannot locate module in import on line {node.lineno}")
            spans.append(span)
        elif isinstance(node, ast.Import):
            for alias in node.names:
                if alias.name != old:
                    continue
                if new.startswith("."):
                    raise InvalidParamsError(
                        f"Relative module {new!r} cannot be used in `import` on line {node.lineno}"
                    )
                start, end = index.span(alias)
                spans.append(_alias_module_span(index.source, start, end, bool(alias.asname)))
    return spans


def update_import(model, file_path: str, old_specifier: str, new_specifier: str) -> dict:
    """Retarget imports of `old_specifier` in one file.

    Only this file's import statements are scanned. The file is written only
    when at least one import changed.
    """
    if not SPECIFIER_RE.match(new_specifier):
        raise InvalidParamsError(f"Not a valid module specifier: {new_specifier!r}")

    resource = model.load(file_path)
    source = model.read(resource)
    tree = parse_module(source, resource.path)
    spans = _import_edits(SourceIndex(source), tree, old_specifier, new_specifier)

    if not spans:
        return {
            "status": "unchanged",
            "file": resource.path,
            "changes": 0,
            "message": f"INFO: No imports matching \"{old_specifier}\" were found in {resource.path}.",
        }

    new_source = source
    for start, end in sorted(spans, reverse=True):
        new_source = new_source[:start] + new_specifier + new_source[end:]
    model.write(resource, new_source)

    logger.info("Updated %d import(s) of %s in %s", len(spans), old_specifier, resource.path)
    return {
        "status": "updated",
        "file": resource.path,
        "changes": len(spans),
        "message": f"SUCCESS: Updated {len(spans)} import(s) in {resource.path}.",
    }


# --- File system ---

async def write_file(model, file_path: str, content: str) -> dict:
    """Create or overwrite a file with formatted content and register it with the model."""
    path = model.resolve_path(file_path)
    rel = model.relative(path)
    if path.is_dir():
        raise StorageError(f"Failed to write file: {rel} is a directory")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to write file: {e}")

    text, formatter, formatted = await model.format_source(path, content)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write file: {e}")
    model.load(str(path), revalidate=True)

    return {
        "file": rel,
        "formatter": formatter,
        "formatted": formatted,
        "message": f"SUCCESS: File written at {rel}",
    }


def make_directory(root: Path, path: Path) -> dict:
    """mkdir -p; an existing directory is not an error."""
    rel = path.relative_to(root).as_posix()
    existed = path.is_dir()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError:
        raise StorageError(f"Failed to create directory: {rel} exists and is not a directory")
    except OSError as e:
        raise StorageError(f"Failed to create directory: {e}")
    return {
        "dir": rel,
        "created": not existed,
        "message": f"SUCCESS: Directory created at {rel}" if not existed else f"INFO: Directory already exists at {rel}",
    }
