"""Binary encoding of sparse features.

Every record is big-endian and carries no type tag; the reader has to be told
which variant to expect through the same ``mode`` the writer used.

    IndexFeature    int32 index | float64 value                           (12 bytes)
    NamedFeature    int32 len | utf-8 field | int32 len | utf-8 name | float64 value

An absent field is written as a zero-length string. The write functions pack
into a caller-supplied buffer at an offset and return the offset just past
the record; the read functions take a bytes-like source and an offset and
hand back the advanced offset, so a sequence of records can be walked
without slicing or copying the buffer.
"""
from __future__ import annotations
import math
import struct
from typing import List, Optional, Sequence, Tuple

from .errors import BufferOverflowError, DecodeUnderrunError, FeatureDecodeError
from .types import INT32_MAX, Feature, FeatureMode, IndexFeature, NamedFeature, check_mode

__all__ = [
    "INDEX_FEATURE_BYTES",
    "byte_size",
    "required_bytes",
    "write_feature",
    "read_feature",
    "read_feature_into",
    "encode_features",
    "decode_features",
]

_INT32 = struct.Struct(">i")
_FLOAT64 = struct.Struct(">d")
_INDEX_RECORD = struct.Struct(">id")

INDEX_FEATURE_BYTES = _INDEX_RECORD.size

def _encode_field(field: Optional[str]) -> bytes:
    return field.encode("utf-8") if field else b""

def byte_size(feature: Feature) -> int:
    """Returns the exact number of bytes `write_feature` emits for `feature`."""
    if isinstance(feature, IndexFeature):
        return INDEX_FEATURE_BYTES
    if isinstance(feature, NamedFeature):
        return (
            _INT32.size + len(_encode_field(feature.field))
            + _INT32.size + len(feature.name.encode("utf-8"))
            + _FLOAT64.size
        )
    raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(feature).__name__}")

def required_bytes(features: Sequence[Feature]) -> int:
    """
    Sums the encoded sizes of `features`.

    This is used to size a write buffer right before an encoding pass, so a
    missing element is treated as a caller bug rather than skipped.

    Raises:
        TypeError: If any element is None or not a feature.
    """
    total = 0
    for i, feature in enumerate(features):
        if feature is None:
            raise TypeError(f"Feature at position {i} is None; cannot size the write buffer.")
        total += byte_size(feature)
    return total

def _check_value(value: float) -> None:
    if not math.isfinite(value):
        raise ValueError(f"Feature value must be finite: {value}")

def _ensure_space(buf, offset: int, needed: int) -> None:
    remaining = len(buf) - offset
    if remaining < needed:
        raise BufferOverflowError(needed, max(remaining, 0), offset)

def write_feature(feature: Feature, buf, offset: int = 0) -> int:
    """
    Packs one feature into `buf` starting at `offset`.

    Args:
        feature: The feature to encode; it is not modified.
        buf: A writable bytes-like object (``bytearray`` or writable ``memoryview``).
        offset: Position of the first byte to write.

    Returns:
        The offset just past the written record.

    Raises:
        BufferOverflowError: If the record does not fit into the rest of `buf`.
        ValueError: If a probe holds an index outside int32, an empty name,
            or a non-finite value.
    """
    if isinstance(feature, IndexFeature):
        if not 0 <= feature.index <= INT32_MAX:
            raise ValueError(f"Feature index must be in [0, {INT32_MAX}]: {feature.index}")
        _check_value(feature.value)
        _ensure_space(buf, offset, INDEX_FEATURE_BYTES)
        _INDEX_RECORD.pack_into(buf, offset, feature.index, feature.value)
        return offset + INDEX_FEATURE_BYTES

    if isinstance(feature, NamedFeature):
        if not feature.name:
            raise ValueError("Feature name must be a non-empty string.")
        _check_value(feature.value)
        field_bytes = _encode_field(feature.field)
        name_bytes = feature.name.encode("utf-8")
        _ensure_space(buf, offset, 2 * _INT32.size + len(field_bytes) + len(name_bytes) + _FLOAT64.size)
        for chunk in (field_bytes, name_bytes):
            _INT32.pack_into(buf, offset, len(chunk))
            offset += _INT32.size
            buf[offset:offset + len(chunk)] = chunk
            offset += len(chunk)
        _FLOAT64.pack_into(buf, offset, feature.value)
        return offset + _FLOAT64.size

    raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(feature).__name__}")

def _require(buf, offset: int, needed: int) -> None:
    remaining = len(buf) - offset
    if remaining < needed:
        raise DecodeUnderrunError(needed, max(remaining, 0), offset)

def _read_index_record(buf, offset: int) -> Tuple[int, float, int]:
    _require(buf, offset, INDEX_FEATURE_BYTES)
    index, value = _INDEX_RECORD.unpack_from(buf, offset)
    if index < 0:
        raise FeatureDecodeError(f"Decoded negative feature index {index} at offset {offset}.", offset)
    if not math.isfinite(value):
        value_offset = offset + _INT32.size
        raise FeatureDecodeError(f"Decoded non-finite feature value {value} at offset {value_offset}.", value_offset)
    return index, value, offset + INDEX_FEATURE_BYTES

def _read_string(buf, offset: int) -> Tuple[str, int]:
    _require(buf, offset, _INT32.size)
    (length,) = _INT32.unpack_from(buf, offset)
    if length < 0:
        raise FeatureDecodeError(f"Negative string length {length} at offset {offset}.", offset)
    offset += _INT32.size
    _require(buf, offset, length)
    try:
        text = bytes(buf[offset:offset + length]).decode("utf-8")
    except UnicodeDecodeError as e:
        raise FeatureDecodeError(f"Invalid UTF-8 string at offset {offset}: {e}", offset) from e
    return text, offset + length

def _read_named_record(buf, offset: int) -> Tuple[str, Optional[str], float, int]:
    start = offset
    field, offset = _read_string(buf, offset)
    name, offset = _read_string(buf, offset)
    if not name:
        raise FeatureDecodeError(f"Decoded empty feature name in record at offset {start}.", start)
    _require(buf, offset, _FLOAT64.size)
    (value,) = _FLOAT64.unpack_from(buf, offset)
    if not math.isfinite(value):
        raise FeatureDecodeError(f"Decoded non-finite feature value {value} at offset {offset}.", offset)
    return name, field or None, value, offset + _FLOAT64.size

def read_feature(buf, mode: FeatureMode, offset: int = 0) -> Tuple[Feature, int]:
    """
    Decodes one feature record from `buf`.

    Args:
        buf: A bytes-like source.
        mode: The mode the record was written in.
        offset: Position of the first byte of the record.

    Returns:
        A tuple of the decoded feature and the offset just past the record;
        the offset always advances by exactly ``byte_size(feature)``.

    Raises:
        DecodeUnderrunError: If the record is truncated.
        FeatureDecodeError: If the record is malformed (negative lengths,
            invalid UTF-8, negative index, empty name).
    """
    if check_mode(mode) == "indexed":
        index, value, offset = _read_index_record(buf, offset)
        return IndexFeature(index, value), offset
    name, field, value, offset = _read_named_record(buf, offset)
    return NamedFeature(name, value, field), offset

def read_feature_into(buf, target: Feature, offset: int = 0) -> int:
    """
    Decodes one record into an existing feature, in the mode of its variant.

    Returns:
        The offset just past the record. `target` is left unchanged when
        decoding fails.
    """
    if isinstance(target, IndexFeature):
        target.index, target.value, offset = _read_index_record(buf, offset)
        return offset
    if isinstance(target, NamedFeature):
        target.name, target.field, target.value, offset = _read_named_record(buf, offset)
        return offset
    raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(target).__name__}")

def encode_features(features: Sequence[Feature]) -> bytes:
    """Encodes `features` back to back into a buffer sized by `required_bytes`."""
    buf = bytearray(required_bytes(features))
    offset = 0
    for feature in features:
        offset = write_feature(feature, buf, offset)
    return bytes(buf)

def decode_features(buf, mode: FeatureMode, count: Optional[int] = None, offset: int = 0) -> List[Feature]:
    """
    Decodes consecutive records from `buf`.

    Args:
        buf: A bytes-like source.
        mode: The mode the records were written in.
        count: Number of records to read. When None, records are read until
            the buffer is exhausted.
        offset: Position of the first record.

    Raises:
        DecodeUnderrunError: If fewer than `count` records are present, or the
            last record is truncated.
    """
    out: List[Feature] = []
    while (len(out) < count) if count is not None else (offset < len(buf)):
        feature, offset = read_feature(buf, mode, offset)
        out.append(feature)
    return out
