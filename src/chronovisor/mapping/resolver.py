"""Resolve one normalized field value from a raw record.

Resolution pattern-matches on the accessor variant:

    None            -> None
    StaticAccessor  -> the literal, verbatim
    PathAccessor    -> walk each candidate path in order and return the string
                       form of the first value that is truthy

A single path is just a one-candidate fallback list, so every field follows
the same first-truthy-wins rule. This is what lets heterogeneous records (a
value living at ``a.b`` in some rows and ``c`` in others) map onto one field.

For CSV rows the record is the list of split cells. A candidate is a single
segment: an integer column index, or a header name looked up in ``header``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..models.mapping_spec import Accessor, PathAccessor, StaticAccessor

logger = logging.getLogger(__name__)

__all__ = ["resolve_field", "lookup_path", "stringify"]

_MISSING = object()


def stringify(value: Any) -> str:
    """Return the JavaScript ``toString`` form of a record value."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else stringify(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _step(node: Any, segment: Any) -> Any:
    if isinstance(node, dict):
        if segment in node:
            return node[segment]
        # JSON object keys are always strings; allow integer segments to match.
        if not isinstance(segment, str) and str(segment) in node:
            return node[str(segment)]
        return _MISSING
    if isinstance(node, (list, tuple)):
        if isinstance(segment, str):
            if not segment.lstrip("-").isdigit():
                return _MISSING
            segment = int(segment)
        if isinstance(segment, int) and not isinstance(segment, bool) and 0 <= segment < len(node):
            return node[segment]
        return _MISSING
    return _MISSING


def lookup_path(record: Any, path: Sequence[Any]) -> Any:
    """Walk ``record`` along ``path``; None when any step is missing."""
    node = record
    for segment in path:
        node = _step(node, segment)
        if node is _MISSING:
            return None
    return node


def _column_path(path: List[Any], header: Optional[Dict[str, int]]) -> List[Any]:
    if len(path) != 1:
        return path
    segment = path[0]
    if isinstance(segment, str) and header is not None and segment in header:
        return [header[segment]]
    return path


def resolve_field(
    record: Any,
    accessor: Optional[Accessor],
    *,
    columnar: bool = False,
    header: Optional[Dict[str, int]] = None,
) -> Optional[str]:
    """Resolve a field value from ``record`` using ``accessor``.

    Args:
        record: A split CSV row (list of cells) or a parsed JSON object.
        accessor: Field accessor from the mapping spec (None means absent).
        columnar: True for CSV rows; flat accessor lists become per-column
            fallback candidates.
        header: Optional header-name to column-index map for CSV rows.

    Returns:
        The static literal, the stringified first truthy candidate, or None.
    """
    if accessor is None:
        return None
    if isinstance(accessor, StaticAccessor):
        return accessor.value
    if not isinstance(accessor, PathAccessor):
        raise TypeError(f"Unsupported accessor {type(accessor).__name__}")

    for path in accessor.candidates(columnar=columnar):
        if columnar:
            path = _column_path(path, header)
        value = lookup_path(record, path)
        if value:
            return stringify(value)
    return None
