#!/usr/bin/env python3
"""
Refactor Gateway - Reference aggregation

Expands a resolved identifier into every occurrence rope can find across the
project, in a stable order.
"""

import logging
from dataclasses import asdict, dataclass

from rope.base.exceptions import BadIdentifierError, RopeError
from rope.contrib.findit import find_occurrences

from .errors import NotFoundError, ProviderError
from .resolver import SymbolIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class ReferenceEntry:
    file: str    # relative to the project root, POSIX separators
    line: int    # 1-indexed
    offset: int  # character offset within `file`


def find_references(model, symbol: SymbolIdentity) -> list[ReferenceEntry]:
    """All occurrences of `symbol`, sorted by (file, line, offset).

    in_hierarchy=True also pulls in overriding/overridden methods, so one
    name may contribute several groups of occurrences. rope's own ordering
    is not relied on.
    """
    model.refresh()
    resource = symbol.resource or model.load(symbol.path)
    try:
        locations = find_occurrences(model.project, resource, symbol.offset, in_hierarchy=True)
    except BadIdentifierError as e:
        raise NotFoundError(f"no identifier at offset {symbol.offset}: {e}")
    except RopeError as e:
        raise ProviderError(f"Reference search failed for {symbol.name}: {e}")

    entries = [
        ReferenceEntry(file=location.resource.path, line=location.lineno, offset=location.offset)
        for location in locations
    ]
    entries.sort()
    logger.debug("%d reference(s) to %s", len(entries), symbol.name)
    return entries


def references_report(symbol: SymbolIdentity, entries: list[ReferenceEntry], rel_path: str) -> dict:
    """JSON payload returned by the find_references tool."""
    return {
        "symbol": {"name": symbol.name, "file": rel_path, "line": symbol.line, "offset": symbol.offset},
        "count": len(entries),
        "references": [asdict(entry) for entry in entries],
        "files": sorted({entry.file for entry in entries}),
    }
