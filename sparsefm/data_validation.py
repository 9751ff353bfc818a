from __future__ import annotations
from typing import Any, Dict, Hashable, List, Sequence

from .types import Feature, IndexFeature, NamedFeature

def feature_key(feature: Feature) -> Hashable:
    """Returns the identity of a feature within a row, ignoring its value."""
    if isinstance(feature, IndexFeature):
        return feature.index
    if isinstance(feature, NamedFeature):
        return (feature.field, feature.name)
    raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(feature).__name__}")

def _row_issues(row_idx: int, features: Sequence[Feature]) -> List[Dict[str, Any]]:
    issues = []

    variants = {type(f) for f in features}
    if len(variants) > 1:
        issues.append({
            "type": "mixed_variant_error",
            "row": row_idx,
            "message": f"Row {row_idx} mixes indexed and named features.",
        })
        return issues

    seen: Dict[Hashable, int] = {}
    for i, f in enumerate(features):
        key = feature_key(f)
        if key in seen:
            issues.append({
                "type": "duplicate_feature_warning",
                "row": row_idx,
                "idx": i,
                "first_idx": seen[key],
                "message": f"Row {row_idx} repeats feature {key!r} at positions {seen[key]} and {i}.",
            })
        else:
            seen[key] = i
        if f.value == 0.0:
            issues.append({
                "type": "zero_value_warning",
                "row": row_idx,
                "idx": i,
                "message": f"Row {row_idx} has feature {key!r} with value 0 at position {i}.",
            })
    return issues

def validate_row(features: Sequence[Feature], row_idx: int = 0) -> Dict[str, Any]:
    """Runs the row checks of `validate_rows` on a single row."""
    issues = _row_issues(row_idx, features)
    return {"issue_count": len(issues), "issues": issues}

def validate_rows(rows: Sequence[Sequence[Feature]]) -> Dict[str, Any]:
    """
    Performs sanity checks on parsed rows before they are handed to training.

    The checks flag:
    -   Rows that mix `IndexFeature` and `NamedFeature` (an error; such a
        row cannot be written in a single mode).
    -   Features that occur more than once in the same row.
    -   Features whose value is zero and so contribute nothing.

    Args:
        rows: The parsed rows to check.

    Returns:
        A dictionary with the total `issue_count` and a list of `issues`,
        each a dictionary with a `type`, the `row` index and a `message`.
    """
    issues = []
    for row_idx, features in enumerate(rows):
        issues.extend(_row_issues(row_idx, features))
    return {"issue_count": len(issues), "issues": issues}
