"""Internal mapping subpackage: raw records -> Chrono events.

All functions in this package are pure apart from appending to the
diagnostics log they are handed; nothing here reads files or globals.

Modules:
    timestamps: Timestamp encoding conversion to epoch milliseconds
    resolver: Static / path / fallback-list field resolution
    record_mapper: Applies a MappingSpec across a record list
    conversion_context: Explicit per-run state (file entries, offset, diagnostics)
"""
from __future__ import annotations

from . import conversion_context as conversion_context  # noqa: F401
from . import record_mapper as record_mapper  # noqa: F401
from . import resolver as resolver  # noqa: F401
from . import timestamps as timestamps  # noqa: F401

__all__ = ["timestamps", "resolver", "record_mapper", "conversion_context"]
