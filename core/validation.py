# core/validation.py
"""
Precondition and structural checks for CSR assembly.

The `validate_*` helpers run before an operation mutates anything, so a
rejected call leaves the matrix exactly as it was. `check_structure` audits a
live matrix against the compressed-row invariants and is what the tests and
the CLI's verbose mode lean on.
"""
from typing import Optional, Sequence, Tuple

import numpy as np

from core.exceptions import PreconditionError, ConsistencyError


def _as_index_array(seq, name: str) -> np.ndarray:
    arr = np.asarray(seq)
    if arr.ndim != 1:
        raise PreconditionError(f"'{name}' must be one-dimensional, got shape {arr.shape}")
    if arr.size == 0:
        return np.zeros(0, dtype=np.int64)
    if arr.dtype == np.bool_ or not np.issubdtype(arr.dtype, np.integer):
        raise PreconditionError(f"'{name}' must hold integer indices, got dtype {arr.dtype}")
    return arr.astype(np.int64, copy=False)


def _as_value_array(seq, name: str) -> np.ndarray:
    arr = np.asarray(seq, dtype=np.float64)
    if arr.ndim != 1:
        raise PreconditionError(f"'{name}' must be one-dimensional, got shape {arr.shape}")
    return arr


def _check_range(idx: np.ndarray, bound: int, name: str) -> None:
    if idx.size == 0:
        return
    bad = np.flatnonzero((idx < 0) | (idx >= bound))
    if bad.size:
        p = int(bad[0])
        raise PreconditionError(
            f"{name} index {int(idx[p])} at triplet {p} is outside [0, {bound})"
        )


def validate_triplets(
    rows: Sequence[int],
    cols: Sequence[int],
    values: Sequence[float],
    shape: Tuple[int, int],
    n_triplets: int,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Coerce a triplet input to numpy and check it against the matrix contract.

    Returns:
        (rows, cols, values) as int64, int64, float64 arrays.

    Raises:
        PreconditionError: on length mismatch, non-integer indices or an
        index outside the matrix dimensions.
    """
    r = _as_index_array(rows, "rows")
    c = _as_index_array(cols, "cols")
    v = _as_value_array(values, "values")

    if not (r.size == c.size == v.size):
        raise PreconditionError(
            f"Triplet sequences differ in length: rows={r.size}, cols={c.size}, values={v.size}"
        )
    if r.size != n_triplets:
        raise PreconditionError(
            f"Expected {n_triplets} triplets, got {r.size}"
        )
    _check_range(r, shape[0], "Row")
    _check_range(c, shape[1], "Column")
    return r, c, v


def validate_refresh_values(values: Sequence[float], n_triplets: int) -> np.ndarray:
    """Check that a refresh round supplies exactly one value per original triplet."""
    v = _as_value_array(values, "values")
    if v.size != n_triplets:
        raise PreconditionError(
            f"Refresh expects {n_triplets} values (one per original triplet), got {v.size}"
        )
    return v


def validate_pattern(pattern) -> None:
    """
    Check an exported structure before a matrix is rebuilt from it.

    Raises:
        PreconditionError: if the row offsets, column indices or triplet → slot
        map would break the compressed-row invariants.
    """
    m, n = pattern.shape
    row_ptr = _as_index_array(pattern.row_ptr, "row_ptr")
    col_ind = _as_index_array(pattern.col_ind, "col_ind")
    slots = _as_index_array(pattern.slot_of_triplet, "slot_of_triplet")
    nnz = col_ind.size

    if row_ptr.size != m + 1:
        raise PreconditionError(f"Pattern row_ptr has {row_ptr.size} entries, expected {m + 1}")
    if row_ptr[0] != 0:
        raise PreconditionError(f"Pattern row_ptr[0] is {int(row_ptr[0])}, expected 0")
    if np.any(np.diff(row_ptr) < 0):
        raise PreconditionError("Pattern row_ptr is not non-decreasing")
    if row_ptr[-1] != nnz:
        raise PreconditionError(
            f"Pattern row_ptr[-1] is {int(row_ptr[-1])} but {nnz} column indices are stored"
        )
    bad = np.flatnonzero((col_ind < 0) | (col_ind >= n))
    if bad.size:
        s = int(bad[0])
        raise PreconditionError(
            f"Pattern column index {int(col_ind[s])} at slot {s} is outside [0, {n})"
        )
    bad = np.flatnonzero((slots < 0) | (slots >= nnz))
    if bad.size:
        p = int(bad[0])
        raise PreconditionError(
            f"Pattern maps triplet {p} to slot {int(slots[p])}, outside [0, {nnz})"
        )


def check_structure(matrix, rows: Optional[Sequence[int]] = None,
                    cols: Optional[Sequence[int]] = None) -> None:
    """
    Audit every compressed-row invariant on an assembled matrix.

    If the original `rows`/`cols` are passed, also check that every triplet's
    slot lies in its own row and stores its own column.

    Raises:
        ConsistencyError describing the first violated invariant.
    """
    m, n = matrix.shape
    row_ptr = matrix.row_ptr
    col_ind = matrix.col_ind
    slots = matrix.slot_map
    nnz = col_ind.size

    if row_ptr.size != m + 1:
        raise ConsistencyError(f"row_ptr has {row_ptr.size} entries, expected {m + 1}")
    if row_ptr[0] != 0:
        raise ConsistencyError(f"row_ptr[0] is {int(row_ptr[0])}, expected 0")
    if np.any(np.diff(row_ptr) < 0):
        raise ConsistencyError("row_ptr is not non-decreasing")
    if row_ptr[-1] != nnz:
        raise ConsistencyError(f"row_ptr[-1] is {int(row_ptr[-1])} but {nnz} slots are stored")
    if matrix.values.size != nnz:
        raise ConsistencyError(
            f"{matrix.values.size} values stored for {nnz} column indices"
        )
    if nnz and (col_ind.min() < 0 or col_ind.max() >= n):
        raise ConsistencyError("column index outside matrix dimensions")
    if slots.size and (slots.min() < 0 or slots.max() >= nnz):
        raise ConsistencyError("triplet maps to a slot outside the stored range")

    row_of_slot = np.repeat(np.arange(m, dtype=np.int64), np.diff(row_ptr))

    if rows is not None and cols is not None:
        r = np.asarray(rows, dtype=np.int64)
        c = np.asarray(cols, dtype=np.int64)
        if r.size != slots.size or c.size != slots.size:
            raise ConsistencyError("original triplets do not match the slot map length")
        wrong = np.flatnonzero((row_of_slot[slots] != r) | (col_ind[slots] != c))
        if wrong.size:
            p = int(wrong[0])
            raise ConsistencyError(
                f"triplet {p} ({int(r[p])}, {int(c[p])}) maps to slot {int(slots[p])} "
                f"holding ({int(row_of_slot[slots[p]])}, {int(col_ind[slots[p]])})"
            )

    # consecutive slots of the same row
    same_row = row_of_slot[1:] == row_of_slot[:-1]
    step = np.diff(col_ind)[same_row]
    if matrix.is_sorted:
        if matrix.is_deduplicated and np.any(step <= 0):
            raise ConsistencyError("columns are not strictly ascending within a row")
        if np.any(step < 0):
            raise ConsistencyError("columns are not ascending within a row")
    if matrix.is_deduplicated and nnz:
        pairs = np.stack([row_of_slot, col_ind], axis=1)
        if np.unique(pairs, axis=0).shape[0] != nnz:
            raise ConsistencyError("duplicate column within a row after deduplication")
