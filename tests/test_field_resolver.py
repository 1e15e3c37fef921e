from __future__ import annotations

import pytest

from chronovisor.mapping.resolver import lookup_path, resolve_field, stringify
from chronovisor.models.mapping_spec import PathAccessor, StaticAccessor, parse_accessor


def test_absent_accessor_resolves_to_none():
    assert resolve_field({"a": "x"}, None) is None


def test_static_accessor_is_returned_verbatim():
    assert resolve_field({"a": "x"}, StaticAccessor(value="annotation")) == "annotation"
    assert resolve_field(["1", "2"], StaticAccessor(value="lit"), columnar=True) == "lit"


def test_single_path_walks_nested_objects():
    record = {"event": {"meta": {"label": "Kick"}}, "t": 12}
    assert resolve_field(record, parse_accessor(["event", "meta", "label"])) == "Kick"
    assert resolve_field(record, parse_accessor(["t"])) == "12"


def test_missing_intermediate_yields_none():
    record = {"event": {"meta": {}}}
    assert resolve_field(record, parse_accessor(["event", "missing", "label"])) is None
    assert lookup_path(record, ["event", "meta", "label"]) is None


def test_path_indexes_into_arrays():
    record = {"items": [{"t": "first"}, {"t": "second"}]}
    assert resolve_field(record, parse_accessor(["items", 1, "t"])) == "second"
    assert resolve_field(record, parse_accessor(["items", "0", "t"])) == "first"
    assert resolve_field(record, parse_accessor(["items", 5, "t"])) is None


def test_fallback_list_first_truthy_wins():
    accessor = parse_accessor([["colX"], ["colY"]])
    assert resolve_field({"colX": "", "colY": "v"}, accessor) == "v"
    assert resolve_field({"colX": "u", "colY": "v"}, accessor) == "u"
    assert resolve_field({"colX": "", "colY": ""}, accessor) is None
    assert resolve_field({}, accessor) is None


def test_falsy_json_values_are_skipped():
    accessor = parse_accessor([["a"], ["b"]])
    assert resolve_field({"a": 0, "b": None}, accessor) is None
    assert resolve_field({"a": 0, "b": 3}, accessor) == "3"


def test_csv_column_index_is_direct():
    row = ["click", "", "42"]
    assert resolve_field(row, parse_accessor(0), columnar=True) == "click"
    assert resolve_field(row, parse_accessor(1), columnar=True) is None
    assert resolve_field(row, parse_accessor(9), columnar=True) is None


def test_csv_flat_list_is_a_column_fallback_chain():
    row = ["", "v"]
    assert resolve_field(row, parse_accessor([0, 1]), columnar=True) == "v"


def test_csv_header_names_resolve_to_columns():
    row = ["", "v"]
    header = {"colX": 0, "colY": 1}
    accessor = parse_accessor(["colX", "colY"])
    assert resolve_field(row, accessor, columnar=True, header=header) == "v"
    assert resolve_field(["", ""], accessor, columnar=True, header=header) is None


def test_flat_list_on_json_is_one_nested_path():
    accessor = PathAccessor(raw=["a", "b"])
    assert accessor.candidates(columnar=False) == [["a", "b"]]
    assert accessor.candidates(columnar=True) == [["a"], ["b"]]
    assert resolve_field({"a": {"b": "deep"}, "b": "shallow"}, accessor) == "deep"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("s", "s"),
        (5, "5"),
        (2.0, "2"),
        (2.25, "2.25"),
        (True, "true"),
        ([1, "a", None], "1,a,"),
        ({"k": 1}, '{"k":1}'),
    ],
)
def test_stringify_matches_javascript_to_string(value, expected):
    assert stringify(value) == expected
