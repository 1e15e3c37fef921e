"""Explicit state for one conversion run.

Replaces the parallel module-level lists (data / maps / files) and the global
time offset with a single `ConversionContext` passed to every core operation.

State Fields:
    entries: One `FileEntry` per loaded input (records + mapping + file name)
    time_offset: Epoch-millisecond value subtracted from every start/end
    diagnostics: Append-only log shared by the whole run
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Literal, Union

from ..models.diagnostics import DiagnosticsLog
from ..models.mapping_spec import MappingSpec

__all__ = ["ConversionContext", "FileEntry", "RecordKind"]

RecordKind = Literal["csv", "json"]


@dataclass
class FileEntry:
    file_name: str
    kind: RecordKind
    raw_records: List[Any]
    mapping: MappingSpec

    @property
    def columnar(self) -> bool:
        return self.kind == "csv"


@dataclass
class ConversionContext:
    entries: List[FileEntry] = field(default_factory=list)
    time_offset: Union[int, float] = 0
    diagnostics: DiagnosticsLog = field(default_factory=DiagnosticsLog)
