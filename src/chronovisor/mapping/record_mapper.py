"""Apply a mapping spec across raw records to produce Chrono events.

Pipeline per record:
    1. Skip the header row when ``firstRow`` is set (index 0 in both kinds)
    2. Split CSV lines by the mapping's ``sep``
    3. Resolve the seven fields via `resolve_field`
    4. Convert start/end with `convert_timestamp` and subtract the time offset
    5. Build a `Chrono` (missing start is a warning; the event is kept)

The mapper has no side effects other than diagnostics: identical mapping, offset
and records always produce the same ordered events.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..models.chrono import Chrono
from ..models.diagnostics import DiagnosticsLog
from ..models.mapping_spec import EVENT_FIELDS, MappingSpec
from .conversion_context import FileEntry
from .resolver import resolve_field
from .timestamps import convert_timestamp

logger = logging.getLogger(__name__)

__all__ = ["convert_records", "convert_entry", "split_row", "build_header"]

Number = Union[int, float]
_TIME_FIELDS = ("start", "end")


def split_row(record: Any, sep: str) -> List[Any]:
    if isinstance(record, str):
        return record.split(sep)
    if isinstance(record, (list, tuple)):
        return list(record)
    raise TypeError(f"CSV record must be a line or a list of cells, got {type(record).__name__}")


def build_header(record: Any, sep: str) -> Dict[str, int]:
    """Map header cell text (whitespace-trimmed) to its column index."""
    header: Dict[str, int] = {}
    for idx, cell in enumerate(split_row(record, sep)):
        name = str(cell).strip()
        if name and name not in header:
            header[name] = idx
    return header


def _time_value(
    raw: Optional[str],
    spec: MappingSpec,
    time_offset: Number,
    diagnostics: DiagnosticsLog,
) -> Optional[Number]:
    converted = convert_timestamp(raw, spec.timestampFormat, diagnostics)
    if converted is None:
        return None
    return converted - time_offset


def convert_records(
    spec: MappingSpec,
    records: Sequence[Any],
    *,
    time_offset: Number = 0,
    diagnostics: Optional[DiagnosticsLog] = None,
    columnar: bool = False,
) -> List[Chrono]:
    """Convert raw records to events using ``spec``.

    Args:
        spec: Field mapping, header flag, timestamp format and CSV separator.
        records: CSV lines (or pre-split rows) when ``columnar``, else JSON objects.
        time_offset: Epoch milliseconds subtracted from every resolved start/end.
        diagnostics: Log for timestamp and missing-start problems.
        columnar: True for CSV input.

    Returns:
        One event per record after the optional header row.
    """
    log = diagnostics if diagnostics is not None else DiagnosticsLog()
    first = 1 if spec.firstRow else 0
    header: Optional[Dict[str, int]] = None
    if columnar and spec.firstRow and records:
        header = build_header(records[0], spec.sep)

    events: List[Chrono] = []
    for index in range(first, len(records)):
        record = split_row(records[index], spec.sep) if columnar else records[index]
        values: Dict[str, Any] = {}
        for name in EVENT_FIELDS:
            accessor = spec.accessor(name)
            resolved = resolve_field(record, accessor, columnar=columnar, header=header)
            if name in _TIME_FIELDS:
                # Absent accessor: leave null, never offset.
                values[name] = (
                    None if accessor is None else _time_value(resolved, spec, time_offset, log)
                )
            else:
                values[name] = resolved
        events.append(Chrono.create(diagnostics=log, **values))

    logger.debug(
        "Mapped %d record(s) to %d event(s) (map=%s, firstRow=%s)",
        len(records),
        len(events),
        spec.mapName,
        spec.firstRow,
    )
    return events


def convert_entry(
    entry: FileEntry, *, time_offset: Number, diagnostics: DiagnosticsLog
) -> List[Chrono]:
    """Convert one loaded file with its own mapping."""
    logger.info("Converting %s (%s, %d record(s))", entry.file_name, entry.kind, len(entry.raw_records))
    return convert_records(
        entry.mapping,
        entry.raw_records,
        time_offset=time_offset,
        diagnostics=diagnostics,
        columnar=entry.columnar,
    )
