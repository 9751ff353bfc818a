"""Parses textual sparse-feature tokens into typed features.

A token describes one feature of a row and takes one of three shapes:

    <id>                    value defaults to 1.0
    <id>:<value>            explicit value
    <field>:<id>:<value>    field-qualified (named mode only)

In ``indexed`` mode ``<id>`` is a non-negative int32, in ``named`` mode it is
an arbitrary non-empty string. The token is split on the first ``:`` and the
remainder again on its first ``:``; there is no backtracking, so any further
``:`` ends up inside the value text and fails to parse.

`parse_feature` allocates a new feature. `parse_feature_into` overwrites a
caller-owned probe instead, which is what the batch parser uses to avoid an
allocation per token when the same rows buffer is reused across a loop.
"""
from __future__ import annotations
import math
import re
from typing import Optional, Tuple

from .errors import (
    MalformedIndexError,
    MalformedNameError,
    MalformedValueError,
    UnsupportedFieldSyntaxError,
)
from .types import INT32_MAX, Feature, FeatureMode, IndexFeature, NamedFeature, check_mode

__all__ = ["parse_feature", "parse_feature_into", "parse_index", "parse_value"]

_INDEX_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)

# (field, identifier, value text); value text is None when the token has no ':'
_Parts = Tuple[Optional[str], str, Optional[str]]

def parse_index(text: str, token: Optional[str] = None) -> int:
    """
    Parses the index part of an indexed feature token.

    Args:
        text: The index text, e.g. ``"42"``.
        token: The full token, used for error reporting.

    Returns:
        The index as a Python int in ``[0, 2**31 - 1]``.

    Raises:
        MalformedIndexError: If `text` is not an integer literal, is negative,
            or does not fit into an int32.
    """
    token = text if token is None else token
    if not _INDEX_RE.fullmatch(text):
        raise MalformedIndexError(
            f"Invalid feature index '{text}' in token '{token}': expected a non-negative integer.",
            token,
            text,
        )
    index = int(text)
    if index < 0:
        raise MalformedIndexError(
            f"Feature index must be non-negative, got '{text}' in token '{token}'.",
            token,
            text,
        )
    if index > INT32_MAX:
        raise MalformedIndexError(
            f"Feature index '{text}' in token '{token}' exceeds the int32 range.",
            token,
            text,
        )
    return index

def parse_value(text: str, token: Optional[str] = None) -> float:
    """
    Parses the value part of a feature token.

    Raises:
        MalformedValueError: If `text` is not a float literal or is not finite.
    """
    token = text if token is None else token
    try:
        if "_" in text or not text.isascii():
            raise ValueError(text)
        value = float(text)
    except ValueError:
        raise MalformedValueError(
            f"Invalid feature value '{text}' in token '{token}': expected a number.",
            token,
            text,
        ) from None
    if not math.isfinite(value):
        raise MalformedValueError(
            f"Feature value '{text}' in token '{token}' is not finite.",
            token,
            text,
        )
    return value

def _split(token: str, mode: FeatureMode) -> _Parts:
    """Splits `token` on its first two ':' delimiters."""
    pos1 = token.find(":")
    if pos1 == -1:
        return None, token, None

    lead = token[:pos1]
    rest = token[pos1 + 1:]
    pos2 = rest.find(":")
    if pos2 == -1:
        return None, lead, rest

    if mode == "indexed":
        raise UnsupportedFieldSyntaxError(
            f"Fields are unsupported for indexed features, got 'field:id:value' token '{token}'.",
            token,
        )
    return lead, rest[:pos2], rest[pos2 + 1:]

def _parse_index_parts(token: str) -> Tuple[int, float]:
    _, ident, value_text = _split(token, "indexed")
    index = parse_index(ident, token)
    value = 1.0 if value_text is None else parse_value(value_text, token)
    return index, value

def _parse_named_parts(token: str) -> Tuple[str, Optional[str], float]:
    field, name, value_text = _split(token, "named")
    if not name:
        raise MalformedNameError(f"Empty feature name in token '{token}'.", token, name)
    value = 1.0 if value_text is None else parse_value(value_text, token)
    return name, field or None, value

def parse_feature(token: str, mode: FeatureMode) -> Feature:
    """
    Parses a single token into a new feature.

    Args:
        token: The token text, e.g. ``"12:0.5"`` or ``"user:alice:1"``.
        mode: ``"indexed"`` for `IndexFeature`, ``"named"`` for `NamedFeature`.

    Returns:
        The parsed feature.

    Raises:
        MalformedIndexError: The index part is not a non-negative int32.
        MalformedValueError: The value part is not a finite number.
        MalformedNameError: The name part is empty (named mode).
        UnsupportedFieldSyntaxError: A field-qualified token in indexed mode.
    """
    if check_mode(mode) == "indexed":
        index, value = _parse_index_parts(token)
        return IndexFeature(index, value)
    name, field, value = _parse_named_parts(token)
    return NamedFeature(name, value, field)

def parse_feature_into(token: str, target: Feature, mode: FeatureMode) -> Feature:
    """
    Parses a token by overwriting an existing feature in place.

    The whole token is parsed before `target` is touched, so a token that
    fails to parse leaves the probe unchanged.

    Args:
        token: The token text.
        target: The probe to overwrite; its variant must match `mode`.
        mode: ``"indexed"`` or ``"named"``.

    Returns:
        `target`, for convenience.

    Raises:
        TypeError: If `target` is not the variant `mode` produces.
        FeatureParseError: As for `parse_feature`.
    """
    if check_mode(mode) == "indexed":
        if not isinstance(target, IndexFeature):
            raise TypeError(f"Indexed mode needs an IndexFeature probe, got {type(target).__name__}")
        target.index, target.value = _parse_index_parts(token)
        return target

    if not isinstance(target, NamedFeature):
        raise TypeError(f"Named mode needs a NamedFeature probe, got {type(target).__name__}")
    target.name, target.field, target.value = _parse_named_parts(token)
    return target
