from __future__ import annotations

import json

import pytest
import typer
from typer.testing import CliRunner

from chronovisor import config as config_module
from chronovisor.__main__ import app, parse_accessor_option, parse_filter

runner = CliRunner()

_ENV_KEYS = (
    "TIME_OFFSET",
    "TIME_OFFSET_FORMAT",
    "OUTPUT_FORMAT",
    "CSV_SEPARATOR",
    "OUTPUT_FILE",
    "DIAGNOSTICS_FILE",
    "DEFAULT_TIMESTAMP_FORMAT",
)


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    config_module.get_settings.cache_clear()
    yield tmp_path
    config_module.get_settings.cache_clear()


def _write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_convert_csv_to_json(isolated):
    rows = isolated / "rows.csv"
    rows.write_text("1,goal,A\n\n2,shot,B\n", encoding="utf-8")
    mapping = _write_json(
        isolated / "rows.cvrmap",
        {"start": 0, "type": 1, "title": 2, "key": 1, "timestampFormat": "pythonic"},
    )
    out = isolated / "out.json"
    result = runner.invoke(app, ["convert", str(rows), "--map", str(mapping), "-o", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert list(data) == ["0goal", "0shot"]
    assert data["0goal"]["start"]["totalSec"] == 1_000_000
    assert data["0shot"]["title"] == "B"


def test_convert_defaults_output_name_by_format(isolated):
    rows = isolated / "rows.csv"
    rows.write_text("1\n", encoding="utf-8")
    mapping = _write_json(isolated / "m.json", {"start": 0, "timestampFormat": "pythonic"})
    result = runner.invoke(app, ["convert", str(rows), "-m", str(mapping), "--format", "oldcsv"])
    assert result.exit_code == 0, result.output
    text = (isolated / "output.old.chronovis.csv").read_bytes().decode("utf-8")
    assert text.split("\r\n")[1] == "00:00:01.000,00:00:01.000,,,,,"


def test_convert_with_pair_consolidation(isolated):
    events = _write_json(
        isolated / "events.json",
        [
            {"kind": "start", "what": "A", "t": 1},
            {"kind": "note", "what": "n", "t": 2},
            {"kind": "stop", "what": "A", "t": 3},
        ],
    )
    mapping = _write_json(
        isolated / "m.json",
        {"type": ["kind"], "description": ["what"], "start": ["t"], "timestampFormat": "pythonic"},
    )
    out = isolated / "out.csv"
    result = runner.invoke(
        app,
        [
            "convert",
            str(events),
            "-m",
            str(mapping),
            "-f",
            "csv",
            "-o",
            str(out),
            "--pair-start",
            "type=start",
            "--pair-end",
            "type=stop",
            "--pair-end",
            "description=@start",
        ],
    )
    assert result.exit_code == 0, result.output
    lines = out.read_bytes().decode("utf-8").split("\r\n")
    assert lines[1] == ",n,00:00:02.000,2,00:00:02.000,2,0,,"
    assert lines[2] == ",A,00:00:01.000,1,00:00:03.000,3,2000,,"
    assert len(lines) == 3


def test_convert_offset_from_meta_and_diagnostics_file(isolated):
    rows = isolated / "rows.csv"
    rows.write_text("5\nbad\n", encoding="utf-8")
    mapping = _write_json(isolated / "m.json", {"start": 0, "timestampFormat": "pythonic"})
    meta = _write_json(isolated / "meta.json", {"recordingStart": 1})
    out = isolated / "out.csv"
    diag = isolated / "diag.json"
    result = runner.invoke(
        app,
        [
            "convert",
            str(rows),
            "-m",
            str(mapping),
            "-f",
            "csv",
            "-o",
            str(out),
            "--offset-meta",
            str(meta),
            "--offset-property",
            "recordingStart",
            "--offset-format",
            "pythonic",
            "--diagnostics-file",
            str(diag),
        ],
    )
    assert result.exit_code == 0, result.output
    lines = out.read_bytes().decode("utf-8").split("\r\n")
    assert lines[1].split(",")[3] == "4"
    codes = [d["code"] for d in json.loads(diag.read_text(encoding="utf-8"))]
    assert "InvalidTimestamp" in codes
    assert "SerializationTimeGap" in codes


def test_convert_missing_meta_property_fails(isolated):
    rows = isolated / "rows.csv"
    rows.write_text("5\n", encoding="utf-8")
    mapping = _write_json(isolated / "m.json", {"start": 0})
    meta = _write_json(isolated / "meta.json", {"other": 1})
    result = runner.invoke(
        app,
        ["convert", str(rows), "-m", str(mapping), "--offset-meta", str(meta), "--offset-property", "start"],
    )
    assert result.exit_code == 1


def test_convert_rejects_mapping_count_mismatch(isolated):
    a = isolated / "a.csv"
    b = isolated / "b.csv"
    c = isolated / "c.csv"
    for f in (a, b, c):
        f.write_text("1\n", encoding="utf-8")
    m1 = _write_json(isolated / "m1.json", {"start": 0})
    m2 = _write_json(isolated / "m2.json", {"start": 0})
    result = runner.invoke(app, ["convert", str(a), str(b), str(c), "-m", str(m1), "-m", str(m2)])
    assert result.exit_code == 1


def test_convert_rejects_unknown_format(isolated):
    rows = isolated / "rows.csv"
    rows.write_text("1\n", encoding="utf-8")
    mapping = _write_json(isolated / "m.json", {"start": 0})
    result = runner.invoke(app, ["convert", str(rows), "-m", str(mapping), "-f", "xml"])
    assert result.exit_code != 0


def test_save_map_then_show_map(isolated):
    target = isolated / "clicks.cvrmap"
    result = runner.invoke(
        app,
        [
            "save-map",
            str(target),
            "--start",
            "0",
            "--title",
            '[["label"], ["name"]]',
            "--type",
            "=5",
            "--first-row",
            "--sep",
            ";",
        ],
    )
    assert result.exit_code == 0, result.output
    stored = json.loads(target.read_text(encoding="utf-8"))
    assert stored == {
        "mapName": "clicks",
        "type": "5",
        "key": None,
        "title": [["label"], ["name"]],
        "description": None,
        "start": 0,
        "end": None,
        "tags": None,
        "firstRow": True,
        "timestampFormat": "C",
        "sep": ";",
    }

    shown = runner.invoke(app, ["show-map", str(target)])
    assert shown.exit_code == 0
    assert '"mapName": "clicks"' in shown.output


def test_show_map_invalid(isolated):
    bad = _write_json(isolated / "bad.json", {"start": True})
    result = runner.invoke(app, ["show-map", str(bad)])
    assert result.exit_code == 1


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, None),
        ("3", 3),
        ("-1", -1),
        ('["a", "b"]', ["a", "b"]),
        ("=3", "3"),
        ("goal", "goal"),
    ],
)
def test_parse_accessor_option(value, expected):
    assert parse_accessor_option(value) == expected


def test_parse_filter():
    assert parse_filter(["type=start", "description = x"], "--pair-start") == {
        "type": "start",
        "description": " x",
    }
    assert parse_filter(None, "--pair-start") == {}


def test_parse_filter_reads_numeric_fields_as_numbers():
    assert parse_filter(["start=10", "duration=1.5", "end=@start"], "--pair-end") == {
        "start": 10,
        "duration": 1.5,
        "end": "@start",
    }
    with pytest.raises(typer.BadParameter):
        parse_filter(["start=soon"], "--pair-start")


def test_convert_numeric_pair_filter(isolated):
    events = _write_json(
        isolated / "events.json",
        [{"kind": "go", "t": 1}, {"kind": "go", "t": 4}],
    )
    mapping = _write_json(
        isolated / "m.json", {"type": ["kind"], "start": ["t"], "timestampFormat": "pythonic"}
    )
    out = isolated / "out.csv"
    result = runner.invoke(
        app,
        [
            "convert",
            str(events),
            "-m",
            str(mapping),
            "-f",
            "csv",
            "-o",
            str(out),
            "--pair-start",
            "start=1000",
            "--pair-end",
            "start=4000",
        ],
    )
    assert result.exit_code == 0, result.output
    lines = out.read_bytes().decode("utf-8").split("\r\n")
    assert lines[1:] == [",,00:00:01.000,1,00:00:04.000,4,3000,,"]


def test_convert_malformed_input_json_exits_cleanly(isolated):
    broken = isolated / "in.json"
    broken.write_text("[{bad", encoding="utf-8")
    mapping = _write_json(isolated / "m.json", {"start": ["t"]})
    result = runner.invoke(app, ["convert", str(broken), "-m", str(mapping)])
    assert result.exit_code == 1
    assert not isinstance(result.exception, ValueError)
    assert "invalid JSON" in result.output


def test_convert_malformed_meta_file_exits_cleanly(isolated):
    rows = isolated / "rows.csv"
    rows.write_text("5\n", encoding="utf-8")
    mapping = _write_json(isolated / "m.json", {"start": 0})
    meta = isolated / "meta.json"
    meta.write_text("{oops", encoding="utf-8")
    result = runner.invoke(
        app,
        ["convert", str(rows), "-m", str(mapping), "--offset-meta", str(meta), "--offset-property", "start"],
    )
    assert result.exit_code == 1
    assert "invalid JSON" in result.output
