"""Reads and writes files of feature rows.

Two on-disk formats are supported:

*   **Text rows**: one row per line, tokens separated by the configured
    separator (any whitespace by default). With an explicit separator, an
    empty token between two separators stands for a missing entry and is
    skipped like a None element of an in-memory row.
*   **Binary rows**: each row is a big-endian int32 feature count followed by
    that many feature records in the layout of `sparsefm.codec`. The feature
    mode is not stored, so the reader must be given the writer's mode.

Streaming readers reuse a `ProbeArena` when `Config.reuse_probes` is set; the
rows they yield are then only valid until the next row is produced.
"""
from __future__ import annotations
import struct
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from tqdm import tqdm

from .batch import ProbeArena, copy_features, parse_row
from .codec import read_feature, required_bytes, write_feature
from .config import Config
from .errors import DecodeUnderrunError, FeatureDecodeError, RowParseError
from .types import Feature, FeatureMode, check_mode, format_feature

PathLike = Union[str, Path]

_ROW_COUNT = struct.Struct(">i")
ROW_HEADER_BYTES = _ROW_COUNT.size

def split_tokens(line: str, separator: Optional[str] = None) -> List[Optional[str]]:
    """Splits one text line into tokens; empty tokens become None."""
    line = line.rstrip("\r\n")
    if separator is None:
        return line.split()
    return [tok if tok else None for tok in line.split(separator)]

def iter_text_rows(path: PathLike, cfg: Config) -> Iterator[List[Optional[str]]]:
    """
    Yields the raw tokens of every line in a text rows file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    try:
        f = open(path, "r", encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"Rows file not found at: {path}")
    with f:
        for line in tqdm(f, desc=f"Reading {Path(path).name}", unit="row", disable=not cfg.show_progress):
            yield split_tokens(line, cfg.token_separator)

def iter_feature_rows(path: PathLike, cfg: Config) -> Iterator[List[Feature]]:
    """
    Parses a text rows file lazily, one list of features per line.

    When `cfg.reuse_probes` is set, every yielded list is backed by the same
    probe features and is overwritten by the next row. With
    ``on_error: skip`` a malformed row is reported and left out.

    Raises:
        RowParseError: If a row is malformed and ``on_error`` is ``"fail"``.
            The message names the line number.
    """
    arena = ProbeArena(mode=cfg.mode) if cfg.reuse_probes else None
    for line_no, tokens in enumerate(iter_text_rows(path, cfg), start=1):
        try:
            if arena is not None:
                features = arena.parse_row(tokens)
            else:
                features = parse_row(tokens, cfg.mode)
        except RowParseError as e:
            if cfg.on_error == "skip":
                print(f"\nWarning: Skipping line {line_no} of {path}: {e}")
                continue
            raise RowParseError(f"Line {line_no} of {path}: {e}", e.token, e.text, e.position) from e
        yield features

def load_rows(path: PathLike, cfg: Config) -> List[List[Feature]]:
    """Parses a whole text rows file into independent lists of features."""
    rows = []
    for features in iter_feature_rows(path, cfg):
        rows.append(copy_features(features) if cfg.reuse_probes else features)
    return rows

def save_text_rows(path: PathLike, rows: Iterable[Sequence[Feature]], separator: str = " ") -> int:
    """
    Writes rows of features as text, one row per line.

    Returns:
        The number of rows written.
    """
    count = 0
    with open(path, "w", encoding="utf-8") as f:
        for row in rows:
            f.write(separator.join(format_feature(feature) for feature in row))
            f.write("\n")
            count += 1
    return count

def encode_row(features: Sequence[Feature]) -> bytes:
    """Encodes one row as its feature count followed by the feature records."""
    buf = bytearray(_ROW_COUNT.size + required_bytes(features))
    _ROW_COUNT.pack_into(buf, 0, len(features))
    offset = _ROW_COUNT.size
    for feature in features:
        offset = write_feature(feature, buf, offset)
    return bytes(buf)

def save_binary_rows(path: PathLike, rows: Iterable[Sequence[Feature]], show_progress: bool = False) -> int:
    """
    Writes rows of features to a binary rows file.

    Returns:
        The number of bytes written.
    """
    written = 0
    with open(path, "wb") as f:
        for row in tqdm(rows, desc=f"Writing {Path(path).name}", unit="row", disable=not show_progress):
            written += f.write(encode_row(row))
    return written

def iter_binary_rows(path: PathLike, mode: FeatureMode) -> Iterator[List[Feature]]:
    """
    Yields the rows of a binary rows file.

    Raises:
        FileNotFoundError: If the file does not exist.
        DecodeUnderrunError: If the file ends in the middle of a row.
        FeatureDecodeError: If a record is malformed.
    """
    check_mode(mode)
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError:
        raise FileNotFoundError(f"Binary rows file not found at: {path}")

    view = memoryview(data)
    offset = 0
    while offset < len(view):
        remaining = len(view) - offset
        if remaining < _ROW_COUNT.size:
            raise DecodeUnderrunError(_ROW_COUNT.size, remaining, offset)
        (count,) = _ROW_COUNT.unpack_from(view, offset)
        if count < 0:
            raise FeatureDecodeError(f"Negative feature count {count} at offset {offset} in {path}.", offset)
        offset += _ROW_COUNT.size
        features = []
        for _ in range(count):
            feature, offset = read_feature(view, mode, offset)
            features.append(feature)
        yield features

def load_binary_rows(path: PathLike, mode: FeatureMode) -> List[List[Feature]]:
    """Reads every row of a binary rows file."""
    return list(iter_binary_rows(path, mode))
