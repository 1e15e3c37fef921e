"""Timestamp encoding conversion to epoch milliseconds.

Supported encodings:
    "pythonic"    Unix seconds (``time.time()`` style); multiplied by 1000
    "C"           .NET-style ticks (100 ns units) counted from 0001-01-01
    "javascript"  reserved; epoch milliseconds already, passed through
    anything else passed through unchanged

The "C" conversion keeps the legacy Chronovis arithmetic exactly:
ticks are scaled to milliseconds and then the epoch-millisecond value of
``0001-01-01T00:00:00`` is *subtracted*. Because that value is negative the
result is shifted forward rather than back, but the same shift is applied to
the time offset, so offset-relative output is unaffected. The constant is
pinned instead of recomputed so output never depends on the local timezone.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional, Union

from ..models.diagnostics import INVALID_TIMESTAMP, DiagnosticsLog

logger = logging.getLogger(__name__)

__all__ = [
    "C_EPOCH_OFFSET_MS",
    "TICKS_TO_MS",
    "TIMESTAMP_FORMATS",
    "convert_timestamp",
    "parse_numeric",
]

Number = Union[int, float]

# Epoch milliseconds of 0001-01-01T00:00:00 UTC (proleptic Gregorian).
C_EPOCH_OFFSET_MS = -62_135_596_800_000
TICKS_TO_MS = 0.0001

TIMESTAMP_FORMATS = ("C", "pythonic", "javascript")

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


def parse_numeric(raw: Any) -> Optional[Number]:
    """Parse a timestamp value the way ``parseInt`` reads strings.

    Numbers pass through. Strings yield their leading integer (``"12abc"`` ->
    12, ``"1.9"`` -> 1). Returns None when no number can be read.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and not math.isfinite(raw):
            return None
        return raw
    if isinstance(raw, str):
        m = _INT_PREFIX.match(raw)
        if not m:
            return None
        return int(m.group(1))
    return None


def _normalize(value: Number) -> Number:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def convert_timestamp(
    raw: Any,
    fmt: Optional[str],
    diagnostics: Optional[DiagnosticsLog] = None,
) -> Optional[Number]:
    """Convert a raw timestamp in the named encoding to epoch milliseconds.

    Args:
        raw: Number or numeric string read from a record (or the offset input).
        fmt: Encoding name; see module docstring.
        diagnostics: Log receiving an InvalidTimestamp error when ``raw`` is
            null or non-numeric.

    Returns:
        Epoch milliseconds, or None when the value could not be converted.
    """
    if raw is None:
        if diagnostics is not None:
            diagnostics.error(
                INVALID_TIMESTAMP,
                "convert_timestamp",
                "invalid timestamp",
                timestamp=raw,
                format=fmt,
            )
        return None

    value = parse_numeric(raw)
    if value is None:
        if diagnostics is not None:
            diagnostics.error(
                INVALID_TIMESTAMP,
                "convert_timestamp",
                "timestamp is not numeric",
                timestamp=raw,
                format=fmt,
            )
        return None

    if fmt == "pythonic":
        value = value * 1000
    elif fmt == "C":
        value = value * TICKS_TO_MS - C_EPOCH_OFFSET_MS
    return _normalize(value)
