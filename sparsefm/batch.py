"""Parses whole rows of feature tokens, optionally reusing probe features.

A row source is anything with ``len()`` and integer indexing whose items are
token strings, None for missing entries, or objects whose ``str()`` is the
token text (for example the list wrapper of a host query engine).

Reuse is an explicit aliasing contract: when a probe list is passed in, the
features returned by `parse_row` are the probe objects themselves and are
overwritten by the next call that gets the same probes. Callers that need a
row to outlive the next call must copy it with `copy_features`.
"""
from __future__ import annotations
import copy
from typing import Any, List, Optional, Sequence

from .errors import FeatureParseError, RowParseError
from .parser import parse_feature, parse_feature_into
from .types import Feature, FeatureMode, IndexFeature, NamedFeature, check_mode

__all__ = ["parse_row", "copy_features", "ProbeArena"]

_VARIANTS = {"indexed": IndexFeature, "named": NamedFeature}

def _parse_token(text: str, mode: FeatureMode, probe: Optional[Feature]) -> Feature:
    if isinstance(probe, _VARIANTS[mode]):
        return parse_feature_into(text, probe, mode)
    return parse_feature(text, mode)

def parse_row(
    tokens: Optional[Sequence[Any]],
    mode: FeatureMode,
    probes: Optional[List[Optional[Feature]]] = None,
) -> Optional[List[Feature]]:
    """
    Parses one row of tokens into a compact list of features.

    Missing (None) tokens are skipped without leaving a placeholder, so the
    result can be shorter than the row. When `probes` has the same length as
    the row, the j-th parsed token overwrites ``probes[j]`` in place; empty
    slots, or slots holding the other variant, get a fresh feature which is
    stored back into `probes` for the next call.

    Args:
        tokens: The row source, or None when there is no row.
        mode: ``"indexed"`` or ``"named"``.
        probes: Optional reusable list of features owned by the caller.

    Returns:
        None if `tokens` is None. Otherwise the parsed features in row order.
        If no token was skipped and the probes were used, this is the probe
        list itself; callers should only rely on its content.

    Raises:
        RowParseError: If any token fails to parse. The row is abandoned and
            the underlying `FeatureParseError` is chained.
    """
    if tokens is None:
        return None
    check_mode(mode)

    length = len(tokens)
    if probes is not None and len(probes) == length:
        slots = probes
    else:
        slots = [None] * length

    j = 0
    for i in range(length):
        item = tokens[i]
        if item is None:
            continue
        text = item if isinstance(item, str) else str(item)
        try:
            slots[j] = _parse_token(text, mode, slots[j])
        except FeatureParseError as e:
            raise RowParseError(f"Token {i} of row: {e}", e.token, e.text, i) from e
        j += 1

    if j == length:
        return slots
    return slots[:j]

def copy_features(features: Sequence[Feature]) -> List[Feature]:
    """Returns detached copies of `features` that later reuse will not touch."""
    return [copy.copy(f) for f in features]

class ProbeArena:
    """
    A preallocated, reusable set of features for parsing rows in a loop.

    The arena owns one slot per row position and overwrites the slots on
    every call. Rows of a different length resize the arena, after which
    slots are repopulated lazily by the first row that reaches them.

    The features returned by `parse_row` and `overwrite` stay owned by the
    arena; the next call overwrites them. An arena must not be shared
    between threads.

    Usage:
        arena = ProbeArena(mode="indexed")
        for row in rows:
            features = arena.parse_row(row)
            train_on(features)
    """

    def __init__(self, size: int = 0, mode: FeatureMode = "indexed"):
        self.mode = check_mode(mode)
        self._slots: List[Optional[Feature]] = [None] * size

    def __len__(self) -> int:
        return len(self._slots)

    @property
    def slots(self) -> List[Optional[Feature]]:
        return self._slots

    def resize(self, size: int) -> None:
        """Grows or shrinks the arena, keeping the slots that still fit."""
        if size < len(self._slots):
            del self._slots[size:]
        else:
            self._slots.extend([None] * (size - len(self._slots)))

    def overwrite(self, slot: int, token: str) -> Feature:
        """Parses `token` into slot `slot` and returns the slot's feature."""
        feature = _parse_token(token, self.mode, self._slots[slot])
        self._slots[slot] = feature
        return feature

    def parse_row(self, tokens: Optional[Sequence[Any]]) -> Optional[List[Feature]]:
        """Parses a row through the arena's slots; see `parse_row`."""
        if tokens is None:
            return None
        if len(tokens) != len(self._slots):
            self.resize(len(tokens))
        return parse_row(tokens, self.mode, self._slots)
