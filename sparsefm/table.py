"""Converts parsed rows into tabular and sparse-matrix form for training code.

`rows_to_frame` produces a long-format pandas DataFrame, one line per
feature occurrence, which is convenient for inspecting a corpus or computing
feature statistics. `rows_to_csr` produces the compressed sparse row arrays
that factorization-machine trainers usually consume for indexed features.
"""
from __future__ import annotations
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .types import Feature, IndexFeature, NamedFeature

FRAME_COLUMNS = ["row", "field", "feature", "value"]

def rows_to_frame(rows: Sequence[Sequence[Feature]]) -> pd.DataFrame:
    """
    Flattens rows of features into a long-format DataFrame.

    Args:
        rows: Parsed rows, e.g. from `load_rows`.

    Returns:
        A DataFrame with the columns ``row`` (row number), ``field`` (None for
        indexed or unqualified features), ``feature`` (the index or the name)
        and ``value``.
    """
    records = []
    for row_idx, features in enumerate(rows):
        for f in features:
            if isinstance(f, IndexFeature):
                records.append((row_idx, None, f.index, f.value))
            elif isinstance(f, NamedFeature):
                records.append((row_idx, f.field, f.name, f.value))
            else:
                raise TypeError(f"Expected IndexFeature or NamedFeature, got {type(f).__name__}")
    return pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)

def rows_to_csr(
    rows: Sequence[Sequence[Feature]],
    num_features: Optional[int] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, Tuple[int, int]]:
    """
    Packs indexed rows into compressed sparse row arrays.

    Features keep their order within a row; duplicates are not merged.

    Args:
        rows: Rows of `IndexFeature`.
        num_features: Number of columns. Defaults to the largest index + 1.

    Returns:
        ``(indptr, indices, values, shape)`` where `indptr` is int64,
        `indices` int32 and `values` float64, matching the layout of
        ``scipy.sparse.csr_matrix((values, indices, indptr), shape=shape)``.

    Raises:
        TypeError: If a row holds a `NamedFeature`.
        ValueError: If an index does not fit into `num_features` columns.
    """
    indptr = np.zeros(len(rows) + 1, dtype=np.int64)
    for i, features in enumerate(rows):
        indptr[i + 1] = indptr[i] + len(features)

    nnz = int(indptr[-1])
    indices = np.empty(nnz, dtype=np.int32)
    values = np.empty(nnz, dtype=np.float64)
    pos = 0
    for features in rows:
        for f in features:
            if not isinstance(f, IndexFeature):
                raise TypeError(f"rows_to_csr needs IndexFeature rows, got {type(f).__name__}")
            indices[pos] = f.index
            values[pos] = f.value
            pos += 1

    max_index = int(indices.max()) if nnz else -1
    if num_features is None:
        num_features = max_index + 1
    elif max_index >= num_features:
        raise ValueError(f"Feature index {max_index} does not fit into {num_features} columns.")
    return indptr, indices, values, (len(rows), num_features)
