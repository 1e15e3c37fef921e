from __future__ import annotations

import pytest
from pydantic import ValidationError

from chronovisor.errors import MappingSpecError
from chronovisor.models.mapping_spec import (
    MappingSpec,
    PathAccessor,
    StaticAccessor,
    parse_accessor,
)


def test_accessor_shapes():
    assert parse_accessor(None) is None
    assert parse_accessor([]) is None
    assert parse_accessor("goal") == StaticAccessor(value="goal")
    assert parse_accessor(3) == PathAccessor(raw=3)
    assert parse_accessor(["a", 0, "b"]) == PathAccessor(raw=["a", 0, "b"])
    assert parse_accessor([["a"], ["b", "c"]]) == PathAccessor(raw=[["a"], ["b", "c"]])


@pytest.mark.parametrize("bad", [True, 1.5, {"a": 1}, ["a", ["b"]], [[]], [["a", None]]])
def test_invalid_accessors_raise(bad):
    with pytest.raises(MappingSpecError):
        parse_accessor(bad, "title")


def test_candidates_depend_on_record_kind():
    flat = PathAccessor(raw=["a", "b"])
    assert flat.candidates(columnar=True) == [["a"], ["b"]]
    assert flat.candidates(columnar=False) == [["a", "b"]]
    chain = PathAccessor(raw=[["a"], ["b", "c"]])
    assert chain.candidates(columnar=True) == [["a"], ["b", "c"]]
    assert PathAccessor(raw=2).candidates(columnar=True) == [[2]]


def test_defaults_for_missing_and_null_settings():
    spec = MappingSpec.model_validate({"firstRow": None, "timestampFormat": "", "sep": None})
    assert spec.firstRow is False
    assert spec.timestampFormat == "C"
    assert spec.sep == ","
    assert spec.start is None


def test_invalid_field_surfaces_as_validation_error():
    with pytest.raises(ValidationError):
        MappingSpec.model_validate({"start": True})


def test_unknown_keys_are_ignored():
    spec = MappingSpec.model_validate({"title": 1, "color": "red"})
    assert spec.title == PathAccessor(raw=1)


def test_accessor_lookup_rejects_unknown_field():
    spec = MappingSpec()
    assert spec.accessor("title") is None
    with pytest.raises(MappingSpecError):
        spec.accessor("duration")


def test_persisted_form_is_verbatim():
    raw = {
        "mapName": "gaze",
        "type": "fixation",
        "key": None,
        "title": [["label"], ["name"]],
        "description": ["meta", "desc"],
        "start": 0,
        "end": 1,
        "tags": None,
        "firstRow": True,
        "timestampFormat": "pythonic",
        "sep": ";",
    }
    persisted = MappingSpec.model_validate(raw).to_persisted()
    assert persisted == raw
    assert list(persisted)[0] == "mapName"
