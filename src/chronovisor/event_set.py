"""Ordered event collection with whole-set serialization.

`EventSet` holds the events of one conversion run in source order together with
an immutable backup taken at construction. The backup is a deep copy and is
never touched again; it exists so a caller can roll back after consolidation.

Key assignment (`jsonify`):
    - missing key          -> fresh random UUID4
    - present key, n-th time seen (0-based) -> f"{n}{key}"
  so three events keyed "A" become "0A", "1A", "2A". A prefixed key already
  emitted for a different raw key advances the counter until it is free. The
  final key is written back onto each live event.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .models.chrono import Chrono
from .models.diagnostics import DiagnosticsLog

logger = logging.getLogger(__name__)

__all__ = ["CSV_HEADER", "OLD_CSV_HEADER", "EventSet", "jsonify", "csvify"]

CSV_HEADER: Tuple[str, ...] = (
    "Title",
    "Description",
    "Start(HMS)",
    "Start(sec)",
    "End(HMS)",
    "End(sec)",
    "Duration(sec)",
    "PrimaryTag",
    "Tags",
)
OLD_CSV_HEADER: Tuple[str, ...] = (
    "StartTime",
    "EndTime",
    "Title",
    "Annotation",
    "MainCategory",
    "Category2",
    "Category3",
)
ROW_SEPARATOR = "\r\n"


def _new_uuid() -> str:
    return str(uuid.uuid4())


def jsonify(
    events: List[Chrono], *, key_factory: Callable[[], str] = _new_uuid
) -> Dict[str, Dict[str, Any]]:
    """Serialize events into a Chronovis JSON mapping keyed by unique keys.

    Args:
        events: Events in output order; their ``key`` attribute is overwritten.
        key_factory: Generator for events without a key (UUID4 by default).

    Returns:
        Dict of final key -> event JSON object, in event order.
    """
    out: Dict[str, Dict[str, Any]] = {}
    seen: Dict[str, int] = {}
    for event in events:
        if event.key:
            count = seen.get(event.key)
            count = 0 if count is None else count + 1
            key = f"{count}{event.key}"
            # "10A" can come from the 11th "A" or the 2nd "0A"; never overwrite.
            while key in out:
                logger.warning("Output key %s already taken; advancing counter", key)
                count += 1
                key = f"{count}{event.key}"
            seen[event.key] = count
        else:
            key = key_factory()
        event.key = key
        out[key] = event.to_json()
    return out


def csvify(
    events: Iterable[Chrono],
    use_old_format: bool = False,
    *,
    sep: str = ",",
    diagnostics: Optional[DiagnosticsLog] = None,
) -> str:
    """Serialize events as CSV text (header + one row per event, CRLF joined)."""
    header = OLD_CSV_HEADER if use_old_format else CSV_HEADER
    rows = [sep.join(header)]
    for event in events:
        if use_old_format:
            rows.append(event.to_old_csv(sep, diagnostics))
        else:
            rows.append(event.to_csv(sep, diagnostics))
    return ROW_SEPARATOR.join(rows)


class EventSet:
    """Events from one run plus a construction-time backup."""

    def __init__(self, events: Iterable[Chrono], diagnostics: Optional[DiagnosticsLog] = None):
        self._events: List[Chrono] = list(events)
        self._backup: Tuple[Chrono, ...] = tuple(e.model_copy(deep=True) for e in self._events)
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticsLog()

    @property
    def events(self) -> List[Chrono]:
        return self._events

    @property
    def backup(self) -> Tuple[Chrono, ...]:
        return self._backup

    def replace(self, events: Iterable[Chrono]) -> None:
        """Swap the working events (e.g. after pair consolidation)."""
        self._events = list(events)

    def jsonify(self, **kwargs: Any) -> Dict[str, Dict[str, Any]]:
        return jsonify(self._events, **kwargs)

    def csvify(self, use_old_format: bool = False, *, sep: str = ",") -> str:
        return csvify(self._events, use_old_format, sep=sep, diagnostics=self.diagnostics)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Chrono]:
        return iter(self._events)
