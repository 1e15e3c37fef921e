"""Exceptions for structurally fatal conditions.

Data problems (bad timestamps, missing start times) never raise; they are
recorded on the diagnostics log. Only a malformed mapping or an input file the
loader cannot interpret are allowed to abort a run.
"""
from __future__ import annotations

__all__ = ["ChronovisorError", "MappingSpecError", "UnsupportedFileError"]


class ChronovisorError(Exception):
    """Base class for all hard failures raised by chronovisor."""


class MappingSpecError(ChronovisorError, ValueError):
    """Raised when a mapping specification cannot be interpreted."""


class UnsupportedFileError(ChronovisorError, ValueError):
    """Raised for an input or mapping file with an unrecognized extension or shape."""
