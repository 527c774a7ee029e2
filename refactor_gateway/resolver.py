#!/usr/bin/env python3
"""
Refactor Gateway - Identifier resolver

Maps (file, offset) or (file, name) to the identifier token rope should
operate on.

The stdlib ast does not model every identifier as a node: function and class
names, attribute names, keyword-argument names, imported names, match
capture names and type parameters are plain strings on their owner. _build()
turns those into leaf spans of their own so position lookups can land on them.
"""

import ast
import re
from dataclasses import dataclass, field

from .errors import NotFoundError, ProviderError

# ast nodes whose own span is an identifier
IDENTIFIER_NODES = {
    ast.Name: "id",
    ast.arg: "arg",
}


@dataclass(frozen=True)
class SymbolIdentity:
    """An identifier token: the declaration-plus-uses rope will look up."""

    path: str
    name: str
    offset: int
    line: int
    resource: object = field(default=None, compare=False, repr=False)


@dataclass
class _Span:
    start: int
    end: int
    name: str | None = None
    parent: "_Span | None" = field(default=None, repr=False)
    children: list = field(default_factory=list, repr=False)


class SourceIndex:
    """Converts ast (line, utf-8 byte column) positions into character offsets."""

    def __init__(self, source: str):
        self.source = source
        self.lines = source.splitlines(keepends=True)
        self.line_starts = []
        offset = 0
        for line in self.lines:
            self.line_starts.append(offset)
            offset += len(line)

    def offset(self, lineno: int, col_offset: int) -> int:
        if lineno > len(self.lines):
            return len(self.source)
        line = self.lines[lineno - 1]
        prefix = line.encode("utf-8")[:col_offset].decode("utf-8", errors="ignore")
        return self.line_starts[lineno - 1] + len(prefix)

    def span(self, node: ast.AST) -> tuple[int, int]:
        return (
            self.offset(node.lineno, node.col_offset),
            self.offset(node.end_lineno, node.end_col_offset),
        )

    def line_of(self, offset: int) -> int:
        line = 1
        for index, start in enumerate(self.line_starts):
            if start > offset:
                break
            line = index + 1
        return line

    def position_to_offset(self, line: int, column: int) -> int:
        """1-indexed line/column (in characters) to a character offset."""
        if line < 1 or line > len(self.lines) or column < 1 or column > len(self.lines[line - 1]):
            raise NotFoundError(f"no identifier at line {line}, column {column}")
        return self.line_starts[line - 1] + column - 1


def _has_position(node: ast.AST) -> bool:
    return getattr(node, "end_col_offset", None) is not None


def _positioned_children(node: ast.AST):
    """Child nodes with source positions, looking through position-less ones (arguments, comprehension, ...)."""
    for child in ast.iter_child_nodes(node):
        if _has_position(child):
            yield child
        else:
            yield from _positioned_children(child)


def _find_token(index: SourceIndex, pattern: str, start: int, end: int) -> int | None:
    match = re.compile(pattern).search(index.source, start, end)
    return match.start(1) if match else None


def _find_last_token(index: SourceIndex, pattern: str, start: int, end: int) -> int | None:
    offset = None
    for match in re.compile(pattern).finditer(index.source, start, end):
        offset = match.start(1)
    return offset


# PEP 695 type parameters, 3.12+
TYPE_PARAM_NODES = tuple(
    getattr(ast, name) for name in ("TypeVar", "ParamSpec", "TypeVarTuple") if hasattr(ast, name)
)


def _class_keyword_tokens(node: ast.MatchClass, index: SourceIndex):
    """`case Point(x=0, y=_)`: each keyword name sits right before its pattern."""
    boundary = index.span(node.patterns[-1])[1] if node.patterns else index.span(node.cls)[1]
    for attr, pattern in zip(node.kwd_attrs, node.kwd_patterns):
        pattern_start, pattern_end = index.span(pattern)
        offset = _find_last_token(index, rf"\b({re.escape(attr)})\s*=", boundary, pattern_start)
        if offset is not None:
            yield attr, offset
        boundary = pattern_end


def _identifier_tokens(node: ast.AST, index: SourceIndex, start: int, end: int):
    """Yield (name, offset) for identifiers stored as strings on `node`."""
    if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        keyword = "class" if isinstance(node, ast.ClassDef) else "def"
        offset = _find_token(index, rf"\b{keyword}\s+({re.escape(node.name)})\b", start, end)
        if offset is not None:
            yield node.name, offset
    elif isinstance(node, ast.Attribute):
        yield node.attr, end - len(node.attr)
    elif isinstance(node, ast.keyword) and node.arg is not None:
        yield node.arg, start
    elif isinstance(node, ast.alias):
        if "." not in node.name and node.name != "*":
            yield node.name, start
        if node.asname:
            yield node.asname, end - len(node.asname)
    elif isinstance(node, ast.ExceptHandler) and node.name:
        offset = _find_token(index, rf"\bas\s+({re.escape(node.name)})\b", start, end)
        if offset is not None:
            yield node.name, offset
    elif isinstance(node, ast.MatchAs) and node.name:
        if node.pattern is None:
            yield node.name, start
        else:
            offset = _find_last_token(index, rf"\bas\s+({re.escape(node.name)})\b", start, end)
            if offset is not None:
                yield node.name, offset
    elif isinstance(node, ast.MatchStar) and node.name:
        offset = _find_token(index, rf"\*\s*({re.escape(node.name)})\b", start, end)
        if offset is not None:
            yield node.name, offset
    elif isinstance(node, ast.MatchMapping) and node.rest:
        offset = _find_last_token(index, rf"\*\*\s*({re.escape(node.rest)})\b", start, end)
        if offset is not None:
            yield node.rest, offset
    elif isinstance(node, ast.MatchClass):
        yield from _class_keyword_tokens(node, index)
    elif isinstance(node, TYPE_PARAM_NODES):
        # The name precedes any bound or default
        offset = _find_token(index, rf"\b({re.escape(node.name)})\b", start, end)
        if offset is not None:
            yield node.name, offset
    elif isinstance(node, (ast.Global, ast.Nonlocal)):
        names_start = start + len("global" if isinstance(node, ast.Global) else "nonlocal")
        for name in node.names:
            offset = _find_token(index, rf"\b({re.escape(name)})\b", names_start, end)
            if offset is not None:
                yield name, offset


def _build(node: ast.AST, index: SourceIndex, start: int, end: int, parent: _Span | None) -> _Span:
    attr = IDENTIFIER_NODES.get(type(node))
    span = _Span(start, end, name=getattr(node, attr) if attr else None, parent=parent)
    for name, offset in _identifier_tokens(node, index, start, end):
        span.children.append(_Span(offset, offset + len(name), name=name, parent=span))
    for child in _positioned_children(node):
        child_start, child_end = index.span(child)
        span.children.append(_build(child, index, child_start, child_end, span))
    span.children.sort(key=lambda s: (s.start, -s.end))
    if span.children:
        # Decorators start before the `def`/`class` line the node reports
        span.start = min(span.start, span.children[0].start)
        span.end = max(span.end, max(child.end for child in span.children))
    return span


def parse_module(source: str, rel_path: str) -> ast.Module:
    try:
        return ast.parse(source, filename=rel_path)
    except SyntaxError as e:
        raise ProviderError(f"Cannot parse {rel_path}: line {e.lineno}: {e.msg}")


def parse_source(source: str, rel_path: str) -> tuple[SourceIndex, _Span]:
    """Parse a file into its span tree. The root span covers the whole file."""
    tree = parse_module(source, rel_path)
    index = SourceIndex(source)
    return index, _build(tree, index, 0, len(source), None)


def _deepest_at(span: _Span, offset: int, depth: int = 0) -> tuple[_Span, int]:
    """Deepest span covering `offset`, with its depth.

    Sibling spans may overlap: on 3.11 every part of an f-string reports the
    span of the whole string. All covering children are searched and the
    deepest hit wins; ties go to the narrower span, then the earlier one.
    """
    best, best_depth = span, depth
    for child in span.children:
        if not child.start <= offset < child.end:
            continue
        found, found_depth = _deepest_at(child, offset, depth + 1)
        if found_depth > best_depth or (
            found_depth == best_depth and found.end - found.start < best.end - best.start
        ):
            best, best_depth = found, found_depth
    return best, best_depth


def _walk(span: _Span):
    yield span
    for child in span.children:
        yield from _walk(child)


def _load(model, file_path: str):
    resource = model.load(file_path)
    source = model.read(resource)
    index, root = parse_source(source, resource.path)
    return resource, index, root


def _identity(model, resource, index: SourceIndex, span: _Span) -> SymbolIdentity:
    return SymbolIdentity(
        path=str(model.resolve_path(resource.path)),
        name=span.name,
        offset=span.start,
        line=index.line_of(span.start),
        resource=resource,
    )


def resolve_by_position(model, file_path: str, offset: int | None = None,
                        line: int | None = None, column: int | None = None) -> SymbolIdentity:
    """Resolve the identifier at `offset` (or at 1-indexed `line`/`column`).

    The deepest node covering the position wins if it is an identifier;
    otherwise its ancestors are searched bottom-up for the first identifier.
    """
    resource, index, root = _load(model, file_path)
    if offset is None:
        offset = index.position_to_offset(line, column)
    if offset < 0 or offset >= len(index.source):
        raise NotFoundError(f"no identifier at offset {offset}")

    span, _ = _deepest_at(root, offset)
    while span is not None and span.name is None:
        span = span.parent
    if span is None:
        raise NotFoundError(f"no identifier at offset {offset}")
    return _identity(model, resource, index, span)


def resolve_by_name(model, file_path: str, name: str) -> SymbolIdentity:
    """First identifier in source order whose text equals `name`.

    Purely textual: shadowed or unrelated bindings with the same name are not
    told apart.
    """
    resource, index, root = _load(model, file_path)
    for span in _walk(root):
        if span.name == name:
            return _identity(model, resource, index, span)
    raise NotFoundError(f"no identifier named {name} in {resource.path}")
