import struct
from pathlib import Path

import pytest

from sparsefm.config import Config
from sparsefm.errors import DecodeUnderrunError, RowParseError
from sparsefm.io_utils import (
    ROW_HEADER_BYTES,
    encode_row,
    iter_feature_rows,
    load_binary_rows,
    load_rows,
    save_binary_rows,
    save_text_rows,
    split_tokens,
)
from sparsefm.types import IndexFeature, NamedFeature


def _cfg(**overrides) -> Config:
    defaults = dict(mode="indexed", show_progress=False)
    defaults.update(overrides)
    return Config(**defaults)


def test_split_tokens_whitespace_and_separator() -> None:
    assert split_tokens("1:2  3\t4:0.5\n") == ["1:2", "3", "4:0.5"]
    assert split_tokens("1:2,,3\n", ",") == ["1:2", None, "3"]
    assert split_tokens("\n") == []


def test_load_rows_parses_each_line(rows_file) -> None:
    path = rows_file(["1:2.0 3:4.0", "", "7"])

    rows = load_rows(path, _cfg())

    assert rows == [
        [IndexFeature(1, 2.0), IndexFeature(3, 4.0)],
        [],
        [IndexFeature(7, 1.0)],
    ]


def test_load_rows_keeps_rows_independent_when_reusing_probes(rows_file) -> None:
    path = rows_file(["1:1 2:2", "3:3 4:4"])

    rows = load_rows(path, _cfg(reuse_probes=True))

    assert rows[0] == [IndexFeature(1, 1.0), IndexFeature(2, 2.0)]
    assert rows[1] == [IndexFeature(3, 3.0), IndexFeature(4, 4.0)]


def test_streaming_rows_reuse_probe_objects(rows_file) -> None:
    path = rows_file(["1 2", "3 4"])

    ids = [[id(f) for f in row] for row in iter_feature_rows(path, _cfg(reuse_probes=True))]

    assert ids[0] == ids[1]


def test_separator_marks_missing_tokens(rows_file) -> None:
    path = rows_file(["user:alice:1,,item:42:1"])

    rows = load_rows(path, _cfg(mode="named", token_separator=","))

    assert rows == [[NamedFeature("alice", 1.0, field="user"), NamedFeature("42", 1.0, field="item")]]


def test_malformed_row_fails_with_line_number(rows_file) -> None:
    path = rows_file(["1:1", "2:oops"])

    with pytest.raises(RowParseError) as excinfo:
        load_rows(path, _cfg())

    assert "Line 2" in str(excinfo.value)
    assert excinfo.value.token == "2:oops"


def test_malformed_row_is_skipped_with_warning(rows_file, capsys) -> None:
    path = rows_file(["1:1", "f:2:3", "4"])

    rows = load_rows(path, _cfg(on_error="skip"))

    assert rows == [[IndexFeature(1, 1.0)], [IndexFeature(4, 1.0)]]
    assert "Skipping line 2" in capsys.readouterr().out


def test_load_rows_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_rows(tmp_path / "missing.txt", _cfg())


def test_binary_rows_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "rows.bin"
    rows = [
        [NamedFeature("alice", 1.0, field="user"), NamedFeature("x", -0.5)],
        [],
        [NamedFeature("bob", 2.0)],
    ]

    written = save_binary_rows(path, rows)

    assert written == path.stat().st_size
    assert load_binary_rows(path, "named") == rows


def test_encode_row_prefixes_feature_count() -> None:
    data = encode_row([IndexFeature(1, 2.0)])

    assert data[:4] == struct.pack(">i", 1)
    assert len(data) == 4 + 12
    assert ROW_HEADER_BYTES == 4
    assert len(encode_row([])) == ROW_HEADER_BYTES


def test_truncated_binary_file_is_an_underrun(tmp_path: Path) -> None:
    path = tmp_path / "rows.bin"
    save_binary_rows(path, [[IndexFeature(1, 2.0), IndexFeature(3, 4.0)]])
    path.write_bytes(path.read_bytes()[:-3])

    with pytest.raises(DecodeUnderrunError):
        load_binary_rows(path, "indexed")


def test_save_text_rows_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "rows.txt"
    rows = [[NamedFeature("alice", 0.25, field="user"), NamedFeature("bob", 1.0)]]

    assert save_text_rows(path, rows) == 1
    assert path.read_text(encoding="utf-8") == "user:alice:0.25 bob:1.0\n"
    assert load_rows(path, _cfg(mode="named")) == rows
