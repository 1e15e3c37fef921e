"""Pydantic models for the append-only diagnostics log.

Conversion is fail-soft: a bad timestamp or a missing start time never aborts a
batch. Instead each problem is recorded as a `Diagnostic` entry on a
`DiagnosticsLog` that is threaded explicitly through every core operation and
handed back to the caller once the run completes.

Codes:
    InvalidTimestamp: null or non-numeric timestamp at conversion time (error)
    MissingStartTime: event constructed with a falsy start (warn)
    SerializationTimeGap: CSV serialization of an event lacking start/end (error)
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

__all__ = [
    "Diagnostic",
    "DiagnosticsLog",
    "INVALID_TIMESTAMP",
    "MISSING_START_TIME",
    "SERIALIZATION_TIME_GAP",
]

INVALID_TIMESTAMP = "InvalidTimestamp"
MISSING_START_TIME = "MissingStartTime"
SERIALIZATION_TIME_GAP = "SerializationTimeGap"


class Diagnostic(BaseModel):
    """A single warning or error raised while converting or serializing."""

    kind: Literal["warn", "error"]
    code: str
    source: str  # operation that raised it, e.g. "convert_timestamp"
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class DiagnosticsLog:
    """Append-only collection of diagnostics for one conversion run.

    Every entry is mirrored to the standard logger so a CLI run surfaces the
    same information without the caller inspecting the log.
    """

    def __init__(self) -> None:
        self._entries: List[Diagnostic] = []

    def warn(self, code: str, source: str, message: str, **data: Any) -> Diagnostic:
        entry = Diagnostic(kind="warn", code=code, source=source, message=message, data=data)
        self._entries.append(entry)
        logger.warning("%s in %s: %s %s", code, source, message, data)
        return entry

    def error(self, code: str, source: str, message: str, **data: Any) -> Diagnostic:
        entry = Diagnostic(kind="error", code=code, source=source, message=message, data=data)
        self._entries.append(entry)
        logger.error("%s in %s: %s %s", code, source, message, data)
        return entry

    @property
    def entries(self) -> List[Diagnostic]:
        return list(self._entries)

    def by_code(self, code: str) -> List[Diagnostic]:
        return [e for e in self._entries if e.code == code]

    def to_json(self) -> List[Dict[str, Any]]:
        return [e.model_dump() for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(list(self._entries))
