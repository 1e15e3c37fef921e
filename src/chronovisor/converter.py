"""Public facade for converting loaded files into Chronovis output.

This module provides the stable entry points used by the CLI and by callers
embedding the converter. Mapping logic lives in the `chronovisor.mapping`
package; this facade wires a `ConversionContext` through it, optionally runs
successive-pair consolidation and serializes the result.

Public Functions:
    compute_time_offset: Convert a user-supplied offset to epoch milliseconds
    build_context: Load input files and mappings into a ConversionContext
    convert_context: Map every file entry and collect the events in an EventSet
    consolidate_pairs: Run successive-pair consolidation on an EventSet
    serialize: Render an EventSet as Chronovis JSON, CSV or legacy CSV text
    default_output_name: Conventional output file name for a format
"""
from __future__ import annotations

import json
import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from .errors import ChronovisorError
from .event_set import EventSet
from .loader import PathLike, load_file_entry
from .mapping.conversion_context import ConversionContext
from .mapping.record_mapper import convert_entry
from .mapping.timestamps import convert_timestamp
from .models.chrono import Chrono
from .models.diagnostics import DiagnosticsLog
from .models.mapping_spec import MappingSpec
from .pairing import PairingResult, find_successive_pairs

logger = logging.getLogger(__name__)

__all__ = [
    "build_context",
    "compute_time_offset",
    "consolidate_pairs",
    "convert_context",
    "default_output_name",
    "serialize",
]

Number = Union[int, float]

_OUTPUT_NAMES = {
    "json": "output.chronovis.json",
    "csv": "output.chronovis.csv",
    "oldcsv": "output.old.chronovis.csv",
}


def compute_time_offset(
    value: Any, fmt: Optional[str], diagnostics: Optional[DiagnosticsLog] = None
) -> Number:
    """Convert a raw offset with the timestamp converter.

    A missing offset means no offset (0). An offset that cannot be converted is
    reported by the converter and also treated as 0 so the run still completes.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    converted = convert_timestamp(value, fmt, diagnostics)
    if converted is None:
        logger.warning("Time offset %r could not be converted; using 0", value)
        return 0
    return converted


def build_context(
    inputs: Sequence[PathLike],
    mappings: Sequence[MappingSpec],
    *,
    time_offset: Number = 0,
    diagnostics: Optional[DiagnosticsLog] = None,
) -> ConversionContext:
    """Load inputs and pair each with its mapping.

    A single mapping is reused for every input; otherwise the counts must match.

    Raises:
        ChronovisorError: when the number of mappings does not fit the inputs.
    """
    if not mappings:
        raise ChronovisorError("At least one mapping is required")
    if len(mappings) not in (1, len(inputs)):
        raise ChronovisorError(
            f"Got {len(mappings)} mapping(s) for {len(inputs)} input(s); "
            "supply one mapping per input or a single shared mapping"
        )
    ctx = ConversionContext(
        time_offset=time_offset,
        diagnostics=diagnostics if diagnostics is not None else DiagnosticsLog(),
    )
    for idx, path in enumerate(inputs):
        mapping = mappings[0] if len(mappings) == 1 else mappings[idx]
        ctx.entries.append(load_file_entry(path, mapping))
    return ctx


def convert_context(ctx: ConversionContext) -> EventSet:
    """Convert every file entry, concatenating events in entry order."""
    events: List[Chrono] = []
    for entry in ctx.entries:
        events.extend(
            convert_entry(entry, time_offset=ctx.time_offset, diagnostics=ctx.diagnostics)
        )
    logger.info(
        "Converted %d file(s) into %d event(s) with %d diagnostic(s)",
        len(ctx.entries),
        len(events),
        len(ctx.diagnostics),
    )
    return EventSet(events, diagnostics=ctx.diagnostics)


def consolidate_pairs(
    event_set: EventSet,
    start_filter: Mapping[str, Any],
    end_filter: Mapping[str, Any],
    *,
    pairs_only: bool = False,
) -> PairingResult:
    """Consolidate successive pairs and splice the result back into ``event_set``.

    With ``pairs_only`` the working set keeps only the merged pairs.
    """
    result = find_successive_pairs(event_set.events, start_filter, end_filter)
    event_set.replace(result.pairs if pairs_only else result.events)
    return result


def serialize(event_set: EventSet, output_format: str = "json", *, sep: str = ",") -> str:
    """Render the event set in the requested output format."""
    if output_format == "json":
        return json.dumps(event_set.jsonify(), ensure_ascii=False)
    if output_format == "csv":
        return event_set.csvify(False, sep=sep)
    if output_format == "oldcsv":
        return event_set.csvify(True, sep=sep)
    raise ChronovisorError(f"Unknown output format '{output_format}'")


def default_output_name(output_format: str) -> str:
    try:
        return _OUTPUT_NAMES[output_format]
    except KeyError:
        raise ChronovisorError(f"Unknown output format '{output_format}'") from None
