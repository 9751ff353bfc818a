from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Literal, Optional, Union

__all__ = [
    "FeatureMode",
    "IndexFeature",
    "NamedFeature",
    "Feature",
    "INT32_MAX",
    "check_mode",
    "mode_of",
    "format_feature",
]

FeatureMode = Literal["indexed", "named"]

INT32_MAX = 2**31 - 1

@dataclass(slots=True)
class IndexFeature:
    """
    A sparse feature addressed by a dense, non-negative integer index.

    Instances are mutable so that a caller-owned probe can be overwritten in
    place by `parse_feature_into` or `read_feature_into` instead of allocating
    a new object for every row.

    Attributes:
        index: The feature identifier, an int32 in ``[0, 2**31 - 1]``.
        value: The feature's weight/occurrence value.
    """
    index: int
    value: float = 1.0

    def __post_init__(self) -> None:
        if not 0 <= self.index <= INT32_MAX:
            raise ValueError(f"Feature index must be in [0, {INT32_MAX}]: {self.index}")
        if not math.isfinite(self.value):
            raise ValueError(f"Feature value must be finite: {self.value}")

@dataclass(slots=True)
class NamedFeature:
    """
    A sparse feature addressed by a string name, optionally namespaced by a field.

    Attributes:
        name: The non-empty feature name.
        value: The feature's weight/occurrence value.
        field: The field the feature belongs to, or None when unqualified.
    """
    name: str
    value: float = 1.0
    field: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Feature name must be a non-empty string.")
        if not math.isfinite(self.value):
            raise ValueError(f"Feature value must be finite: {self.value}")
        if self.field == "":
            self.field = None

Feature = Union[IndexFeature, NamedFeature]

def check_mode(mode: str) -> FeatureMode:
    """Returns `mode` unchanged if it names a known feature mode."""
    if mode not in ("indexed", "named"):
        raise ValueError(f"Unknown feature mode '{mode}'. Expected 'indexed' or 'named'.")
    return mode  # type: ignore[return-value]

def mode_of(feature: Feature) -> FeatureMode:
    """Returns the mode that parses or decodes into the variant of `feature`."""
    if isinstance(feature, IndexFeature):
        return "indexed"
    if isinstance(feature, NamedFeature):
        return "named"
    raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(feature).__name__}")

def _format_value(value: float) -> str:
    if not math.isfinite(value):
        raise ValueError(f"Feature value must be finite: {value}")
    return repr(float(value))

def format_feature(feature: Feature) -> str:
    """
    Renders a feature back into its token text.

    The output always carries an explicit value, so ``index:value``,
    ``name:value`` or ``field:name:value``. Parsing the result in the
    matching mode yields an equal feature.
    """
    if isinstance(feature, IndexFeature):
        return f"{feature.index}:{_format_value(feature.value)}"
    if isinstance(feature, NamedFeature):
        if feature.field is None:
            return f"{feature.name}:{_format_value(feature.value)}"
        return f"{feature.field}:{feature.name}:{_format_value(feature.value)}"
    raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(feature).__name__}")
