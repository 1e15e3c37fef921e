"""Successive-pair consolidation of start/end events into duration events.

Given a list of events, a start filter and an end filter (field -> required
value), `find_successive_pairs` pairs every start event with the earliest
still-unclaimed end event located strictly after it in the original order,
then merges each pair into one event spanning ``start.start`` to
``end.start``.

Filter matching is strict equality on event attributes; a field the filter
does not name places no constraint. In the end filter the `SAME_AS_START`
sentinel mirrors the start side:

    start_filter={"type": "start", "description": "A"}
    end_filter={"type": "stop", "description": SAME_AS_START}
        -> ends must have description "A"

    start_filter={"type": "start"}
    end_filter={"type": "stop", "description": SAME_AS_START}
        -> each start only claims stops sharing its own description

Merge rules:
    type/key/title/description/myPrimaryTagKey  start value, else end value
    end                                          end event's *start*
    duration                                     recomputed
    tags                                         naive string concatenation

The function is pure: it builds new lists and new merged events, leaving the
input events untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .models.chrono import Chrono

logger = logging.getLogger(__name__)

__all__ = ["SAME_AS_START", "PairingResult", "find_successive_pairs", "merge_pair"]

SAME_AS_START = "@start"

_PREFERRED_FIELDS = ("type", "key", "title", "description", "myPrimaryTagKey")


@dataclass
class PairingResult:
    """Outcome of one consolidation pass.

    Attributes:
        pairs: Merged events, in start-event order.
        remaining: Input events not matched by either filter, original order.
        claimed: ``(start_index, end_index)`` for every pair formed.
    """

    pairs: List[Chrono] = field(default_factory=list)
    remaining: List[Chrono] = field(default_factory=list)
    claimed: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def events(self) -> List[Chrono]:
        """Full working set after consolidation: remaining events then pairs."""
        return self.remaining + self.pairs


def _matches(event: Chrono, criteria: Mapping[str, Any]) -> bool:
    return all(getattr(event, name, None) == value for name, value in criteria.items())


def _split_end_filter(
    start_filter: Mapping[str, Any], end_filter: Mapping[str, Any]
) -> Tuple[Dict[str, Any], List[str]]:
    """Resolve sentinels into fixed criteria and per-start mirrored fields."""
    fixed: Dict[str, Any] = {}
    mirrored: List[str] = []
    for name, value in end_filter.items():
        if value == SAME_AS_START:
            if name in start_filter:
                fixed[name] = start_filter[name]
            else:
                mirrored.append(name)
        else:
            fixed[name] = value
    return fixed, mirrored


def merge_pair(start: Chrono, end: Chrono) -> Chrono:
    """Merge a start event and its end event into one duration event."""
    values: Dict[str, Any] = {}
    for name in _PREFERRED_FIELDS:
        values[name] = getattr(start, name) or getattr(end, name)
    if start.tags is None and end.tags is None:
        values["tags"] = None
    else:
        values["tags"] = (start.tags or "") + (end.tags or "")
    merged = Chrono(start=start.start, **values)
    # Assigned after construction so an end of 0 is kept, not defaulted to start.
    merged.end = end.start
    return merged


def find_successive_pairs(
    events: List[Chrono],
    start_filter: Mapping[str, Any],
    end_filter: Mapping[str, Any],
) -> PairingResult:
    """Pair start events with later end events and merge each pair.

    Args:
        events: Working event list; order defines "successive".
        start_filter: Field -> value every start event must equal.
        end_filter: Field -> value (or `SAME_AS_START`) every end event must match.

    Returns:
        PairingResult with merged pairs and the events left over. When either
        side has no candidates nothing is removed.
    """
    starts = [i for i, e in enumerate(events) if _matches(e, start_filter)]
    start_set: Set[int] = set(starts)
    fixed, mirrored = _split_end_filter(start_filter, end_filter)
    # An event already taken as a start is never also an end candidate.
    ends = [
        i for i, e in enumerate(events) if i not in start_set and _matches(e, fixed)
    ]

    if not starts or not ends:
        logger.debug(
            "No successive pairs: %d start candidate(s), %d end candidate(s)",
            len(starts),
            len(ends),
        )
        return PairingResult(remaining=list(events))

    available = list(ends)
    claimed: List[Tuple[int, int]] = []
    for s_idx in starts:
        start_event = events[s_idx]
        choice: Optional[int] = None
        for pos, e_idx in enumerate(available):
            if e_idx <= s_idx:
                continue
            if mirrored and not all(
                getattr(events[e_idx], name, None) == getattr(start_event, name, None)
                for name in mirrored
            ):
                continue
            choice = pos
            break
        if choice is None:
            logger.debug("Start event at index %d has no available end", s_idx)
            continue
        claimed.append((s_idx, available.pop(choice)))

    consumed = start_set | set(ends)
    remaining = [e for i, e in enumerate(events) if i not in consumed]
    pairs = [merge_pair(events[s], events[e]) for s, e in claimed]
    logger.info(
        "Consolidated %d pair(s) from %d start(s) and %d end(s); %d event(s) dropped unpaired",
        len(pairs),
        len(starts),
        len(ends),
        len(starts) + len(ends) - 2 * len(pairs),
    )
    return PairingResult(pairs=pairs, remaining=remaining, claimed=claimed)
