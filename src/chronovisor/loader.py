"""File loading and persistence for inputs, mappings and offset meta files.

This module is the I/O edge of the converter. It turns files into the plain
values the core consumes (a list of CSV lines or JSON objects, a
`MappingSpec`, an offset value) and writes mappings back out.

CSV inputs are split into lines on runs of CR/LF, so blank lines never become
records. Cell splitting is left to the record mapper because the separator is
part of the mapping.

Mapping files (``.json`` or ``.cvrmap``) hold the flat persisted object
``{mapName, type, key, title, description, start, end, tags, firstRow,
timestampFormat, sep}``; `save_mapping` writes it verbatim.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import ValidationError

from .errors import MappingSpecError, UnsupportedFileError
from .mapping.conversion_context import FileEntry, RecordKind
from .models.mapping_spec import MappingSpec

logger = logging.getLogger(__name__)

__all__ = [
    "MAPPING_EXTENSIONS",
    "detect_kind",
    "load_file_entry",
    "load_mapping",
    "parse_csv_text",
    "read_offset_from_meta",
    "read_records",
    "save_mapping",
]

MAPPING_EXTENSIONS = (".json", ".cvrmap")
_LINE_BREAKS = re.compile(r"[\r\n]+")

PathLike = Union[str, Path]


def detect_kind(path: PathLike) -> RecordKind:
    """Return ``"csv"`` or ``"json"`` from the file extension."""
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return "csv"
    if suffix == ".json":
        return "json"
    raise UnsupportedFileError(f"Invalid file type: {Path(path).name}")


def parse_csv_text(text: str) -> List[str]:
    return [line for line in _LINE_BREAKS.split(text) if line != ""]


def read_records(path: PathLike, kind: Optional[RecordKind] = None) -> List[Any]:
    """Read an input file into raw records.

    Raises:
        UnsupportedFileError: for unknown extensions, malformed JSON or a JSON
            file that is not an array.
    """
    kind = kind or detect_kind(path)
    text = Path(path).read_text(encoding="utf-8-sig")
    if kind == "csv":
        return parse_csv_text(text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise UnsupportedFileError(f"{Path(path).name}: invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise UnsupportedFileError(
            f"{Path(path).name}: JSON input must be an array of objects, got {type(data).__name__}"
        )
    return data


def load_mapping(source: Union[PathLike, str, dict]) -> MappingSpec:
    """Load a mapping from a file path, a JSON string or an already-parsed dict.

    Raises:
        MappingSpecError: when the content is not a valid flat mapping object.
        UnsupportedFileError: for a path without a mapping extension.
    """
    try:
        if isinstance(source, dict):
            raw: Any = source
        elif isinstance(source, str) and source.lstrip().startswith("{"):
            raw = json.loads(source)
        else:
            path = Path(source)
            if path.suffix.lower() not in MAPPING_EXTENSIONS:
                raise UnsupportedFileError(
                    f"Mapping file must end in {' or '.join(MAPPING_EXTENSIONS)}: {path.name}"
                )
            raw = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise MappingSpecError(f"Mapping is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise MappingSpecError(f"Mapping must be a JSON object, got {type(raw).__name__}")
    try:
        return MappingSpec.model_validate(raw)
    except ValidationError as e:
        raise MappingSpecError(str(e)) from e


def save_mapping(spec: MappingSpec, path: PathLike) -> Path:
    """Write ``spec`` in its persisted form; defaults ``mapName`` to the file stem."""
    out = Path(path)
    if out.suffix.lower() not in MAPPING_EXTENSIONS:
        raise UnsupportedFileError(
            f"Mapping file must end in {' or '.join(MAPPING_EXTENSIONS)}: {out.name}"
        )
    if spec.mapName is None:
        spec = spec.model_copy(update={"mapName": out.stem})
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(spec.to_persisted()), encoding="utf-8")
    logger.info("Saved mapping %s to %s", spec.mapName, out)
    return out


def read_offset_from_meta(path: PathLike, property_name: str) -> Any:
    """Read the time offset value stored under ``property_name`` in a JSON meta file.

    Raises:
        KeyError: when the property is absent.
        UnsupportedFileError: when the meta file is not valid JSON.
    """
    try:
        meta = json.loads(Path(path).read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise UnsupportedFileError(f"{Path(path).name}: invalid JSON: {e}") from e
    if not isinstance(meta, dict) or property_name not in meta:
        available = sorted(meta.keys()) if isinstance(meta, dict) else []
        raise KeyError(
            f"Property '{property_name}' not found in {Path(path).name}; available: {available}"
        )
    return meta[property_name]


def load_file_entry(path: PathLike, mapping: MappingSpec) -> FileEntry:
    kind = detect_kind(path)
    records = read_records(path, kind)
    logger.debug("Loaded %d %s record(s) from %s", len(records), kind, path)
    return FileEntry(file_name=Path(path).name, kind=kind, raw_records=records, mapping=mapping)
