"""Pydantic model for the normalized Chrono event and its serializations.

A `Chrono` is one time-stamped record: descriptive strings plus `start` and
`end` in epoch milliseconds. It is built once per raw record by the record
mapper and is the unit the pair consolidator and `EventSet` operate on.

Construction invariants (enforced by a model validator, so they hold however
the event is built):
    - a null or zero `end` becomes `start` (zero-duration event)
    - `duration` is always `end - start`; any value passed in is ignored, and
      assigning `start`, `end` or `duration` later recomputes it
    - a falsy `start` is reported as a MissingStartTime warning when a
      diagnostics log is supplied through the validation context

Serialization keeps two inherited quirks of the Chronovis format verbatim:
`minute`/`second` are wall-clock components of the epoch value, not elapsed
totals, and `totalSec` is epoch milliseconds multiplied by 1000.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationInfo, model_validator

from .diagnostics import MISSING_START_TIME, SERIALIZATION_TIME_GAP, DiagnosticsLog

__all__ = ["Chrono", "Event", "alternate_separator", "format_number"]

Number = Union[int, float]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TIME_FIELDS = ("start", "end", "duration")


def alternate_separator(sep: str) -> str:
    """Delimiter substituted for ``sep`` inside free-text CSV fields."""
    return ";" if sep == "," else ","


def format_number(value: Optional[Number]) -> str:
    """Render a number the way JavaScript prints it (no trailing ``.0``)."""
    if value is None:
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _to_datetime(ms: Optional[Number]) -> Optional[datetime]:
    # Date objects hold whole milliseconds; fractional parts are truncated.
    millis = 0 if ms is None else math.trunc(ms)
    try:
        return _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None


def _time_of_day(dt: datetime) -> str:
    return f"{dt:%H:%M:%S}.{dt.microsecond // 1000:03d}"


class Chrono(BaseModel):
    """A single normalized Chronovis event."""

    type: Optional[str] = None
    key: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start: Optional[Number] = None
    end: Optional[Number] = None
    duration: Optional[Number] = None
    tags: Optional[str] = None
    myPrimaryTagKey: Optional[str] = None

    @model_validator(mode="after")
    def _apply_time_invariants(self, info: ValidationInfo) -> "Chrono":
        if self.end is None or self.end == 0:
            self.end = self.start
        self.duration = self.recompute_duration()
        if not self.start:
            diagnostics = (info.context or {}).get("diagnostics") if info is not None else None
            if diagnostics is not None:
                diagnostics.warn(
                    MISSING_START_TIME,
                    "Chrono",
                    "invalid start time",
                    start=self.start,
                    end=self.end,
                )
        return self

    @classmethod
    def create(
        cls,
        *,
        diagnostics: Optional[DiagnosticsLog] = None,
        **fields: Any,
    ) -> "Chrono":
        """Build an event, reporting a missing start time to ``diagnostics``."""
        return cls.model_validate(fields, context={"diagnostics": diagnostics})

    def __setattr__(self, name: str, value: Any) -> None:
        super().__setattr__(name, value)
        # duration always tracks start/end, also after construction
        if name in _TIME_FIELDS:
            super().__setattr__("duration", self.recompute_duration())

    def recompute_duration(self) -> Optional[Number]:
        if self.start is None or self.end is None:
            return None
        return self.end - self.start

    # ------------------------------------------------------------------ JSON
    def to_json(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "key": self.key,
            "title": self.title,
            "description": self.description,
            "start": self._time_object(self.start),
            "end": self._time_object(self.end),
            "duration": self.duration,
            "myAnnotTags": {},
            "myPrimaryTagKey": None,
        }

    @staticmethod
    def _time_object(ms: Optional[Number]) -> Dict[str, Optional[int]]:
        dt = _to_datetime(ms)
        millis = 0 if ms is None else math.trunc(ms)
        return {
            "minute": dt.minute if dt is not None else None,
            "second": dt.second if dt is not None else None,
            "totalSec": millis * 1000,
        }

    # ------------------------------------------------------------------- CSV
    def _escape(self, text: Optional[str], sep: str) -> str:
        if not text:
            return ""
        return text.replace(sep, alternate_separator(sep))

    def _check_times(self, source: str, diagnostics: Optional[DiagnosticsLog]) -> None:
        if (self.start is None or self.end is None) and diagnostics is not None:
            diagnostics.error(
                SERIALIZATION_TIME_GAP,
                source,
                "couldn't convert start or end time to Date object",
                start=self.start,
                end=self.end,
            )

    @staticmethod
    def _hms(ms: Optional[Number]) -> str:
        if ms is None:
            return ""
        dt = _to_datetime(ms)
        return _time_of_day(dt) if dt is not None else ""

    @staticmethod
    def _seconds(ms: Optional[Number]) -> str:
        if ms is None:
            return ""
        return format_number(math.trunc(ms) / 1000)

    def to_csv_fields(self, sep: str = ",", diagnostics: Optional[DiagnosticsLog] = None) -> List[str]:
        self._check_times("to_csv", diagnostics)
        return [
            self._escape(self.title, sep),
            self._escape(self.description, sep),
            self._hms(self.start),
            self._seconds(self.start),
            self._hms(self.end),
            self._seconds(self.end),
            format_number(self.duration),
            "",
            self._escape(self.tags, sep),
        ]

    def to_csv(self, sep: str = ",", diagnostics: Optional[DiagnosticsLog] = None) -> str:
        """Serialize as one row of the current Chronovis CSV layout."""
        return sep.join(self.to_csv_fields(sep, diagnostics))

    def to_old_csv(self, sep: str = ",", diagnostics: Optional[DiagnosticsLog] = None) -> str:
        """Serialize as one row of the legacy seven-column layout."""
        self._check_times("to_old_csv", diagnostics)
        title = self._escape(self.title, sep)
        return sep.join(
            [
                self._hms(self.start),
                self._hms(self.end),
                title,
                self._escape(self.tags, sep),
                self._escape(self.description, sep),
                title,
                self._escape(self.type, sep),
            ]
        )


Event = Chrono
