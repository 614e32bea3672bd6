# core/csr/matrix.py
"""
Compressed-row matrix assembled from coordinate triplets.

A `CsrMatrix` is built once from (row, col, value) triplets and then kept
alive across many value rounds. The expensive part, grouping by row, merging
repeated coordinates and sorting columns, runs once; afterwards `refresh`
re-sums a fresh value per original triplet straight into the final slots.

That works because the matrix carries an explicit triplet → slot map which
every structural operation (`assemble`, `deduplicate`, `sort`) rewrites as it
moves slots around.

Typical use::

    A = CsrMatrix(3, 3, len(rows))
    A.assemble(rows, cols, vals)
    A.deduplicate()
    A.sort()
    for step in steps:
        A.refresh(new_vals(step))   # structure untouched

Refresh contract: `values[p]` must belong to the same coordinate as the p-th
triplet given to `assemble`. Only the length is checked by default; pass
`rows`/`cols` to `refresh` to have the coordinates checked against the
fingerprint recorded at assembly.
"""
from __future__ import annotations
import operator
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from core.exceptions import (
    AssemblyStateError,
    ConsistencyError,
    PatternMismatchError,
    PreconditionError,
)
from core.validation import validate_triplets, validate_refresh_values, validate_pattern
from core.csr.pattern import CsrPattern
from core.csr._fingerprint import pattern_fingerprint
from utils.logging_config import get_logger

logger = get_logger(__name__)

INDEX_DTYPE = np.int64
VALUE_DTYPE = np.float64


def _readonly(arr: np.ndarray) -> np.ndarray:
    view = arr.view()
    view.flags.writeable = False
    return view


def _dimension(value, name: str) -> int:
    if isinstance(value, (bool, np.bool_)):
        raise PreconditionError(f"'{name}' must be an integer, got {value!r}")
    try:
        dim = operator.index(value)
    except TypeError:
        raise PreconditionError(f"'{name}' must be an integer, got {value!r}") from None
    if dim < 0:
        raise PreconditionError(f"'{name}' must be non-negative, got {dim}")
    return dim


def _stable_row_order(rows: np.ndarray, n_rows: int) -> np.ndarray:
    """
    Triplet positions ordered by row, input order kept within a row.

    LSD radix over 16-bit digits of the row index. numpy's stable sort is a
    radix sort for 16-bit keys, so every pass is linear in the triplet count
    and the number of passes depends only on the row count.
    """
    order = np.arange(rows.size, dtype=INDEX_DTYPE)
    if rows.size == 0:
        return order
    shift = 0
    while shift == 0 or (n_rows - 1) >> shift:
        digit = ((rows[order] >> shift) & 0xFFFF).astype(np.uint16)
        order = order[np.argsort(digit, kind="stable")]
        shift += 16
    return order


class CsrMatrix:
    """
    Sparse matrix in compressed-row layout with a persistent triplet → slot map.

    Args:
        n_rows, n_cols: matrix dimensions, fixed for the lifetime of the object.
        n_triplets: number of triplets every `assemble`/`refresh` call supplies.
    """

    def __init__(self, n_rows: int, n_cols: int, n_triplets: int):
        self._shape: Tuple[int, int] = (_dimension(n_rows, "n_rows"), _dimension(n_cols, "n_cols"))
        self._n_triplets = _dimension(n_triplets, "n_triplets")

        self._row_start = np.zeros(self._shape[0] + 1, dtype=INDEX_DTYPE)
        self._columns = np.zeros(0, dtype=INDEX_DTYPE)
        self._values = np.zeros(0, dtype=VALUE_DTYPE)
        self._slot_of_triplet = np.zeros(0, dtype=INDEX_DTYPE)

        self._fingerprint: Optional[bytes] = None
        self._assembled = False
        self._deduplicated = False
        self._sorted = False

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def shape(self) -> Tuple[int, int]:
        return self._shape

    @property
    def n_triplets(self) -> int:
        return self._n_triplets

    @property
    def nnz(self) -> int:
        """Number of occupied slots."""
        return int(self._row_start[-1])

    @property
    def row_ptr(self) -> np.ndarray:
        return _readonly(self._row_start)

    @property
    def col_ind(self) -> np.ndarray:
        return _readonly(self._columns)

    @property
    def values(self) -> np.ndarray:
        return _readonly(self._values)

    @property
    def slot_map(self) -> np.ndarray:
        """Slot currently holding the contribution of each original triplet."""
        return _readonly(self._slot_of_triplet)

    @property
    def fingerprint(self) -> Optional[bytes]:
        return self._fingerprint

    @property
    def is_assembled(self) -> bool:
        return self._assembled

    @property
    def is_deduplicated(self) -> bool:
        return self._deduplicated

    @property
    def is_sorted(self) -> bool:
        return self._sorted

    def row_slice(self, row: int) -> slice:
        """Slot range of `row` inside `col_ind`/`values`."""
        m = self._shape[0]
        if not 0 <= row < m:
            raise PreconditionError(f"Row {row} is outside [0, {m})")
        return slice(int(self._row_start[row]), int(self._row_start[row + 1]))

    def entries(self) -> Iterator[Tuple[int, int, float]]:
        """Yield (row, col, value) for every slot in storage order."""
        for i in range(self._shape[0]):
            for s in range(self._row_start[i], self._row_start[i + 1]):
                yield i, int(self._columns[s]), float(self._values[s])

    def to_scipy(self) -> sp.csr_matrix:
        """Copy the current structure and values into a scipy CSR matrix."""
        return sp.csr_matrix(
            (self._values.copy(), self._columns.copy(), self._row_start.copy()),
            shape=self._shape,
        )

    def __repr__(self) -> str:
        state = "unassembled"
        if self._assembled:
            state = "+".join(
                ["assembled"]
                + (["deduplicated"] if self._deduplicated else [])
                + (["sorted"] if self._sorted else [])
            )
        return (f"CsrMatrix(shape={self._shape}, n_triplets={self._n_triplets}, "
                f"nnz={self.nnz}, {state})")

    # ------------------------------------------------------------------
    # Structure export / import
    # ------------------------------------------------------------------
    def export_pattern(self) -> CsrPattern:
        self._require_assembled("export_pattern")
        return CsrPattern(
            shape=self._shape,
            row_ptr=self._row_start.copy(),
            col_ind=self._columns.copy(),
            slot_of_triplet=self._slot_of_triplet.copy(),
            fingerprint=self._fingerprint,
            deduplicated=self._deduplicated,
            sorted=self._sorted,
        )

    @classmethod
    def from_pattern(cls, pattern: CsrPattern) -> "CsrMatrix":
        """Rebuild a matrix from an exported pattern; values start at zero."""
        self = cls(pattern.shape[0], pattern.shape[1], pattern.n_triplets)
        validate_pattern(pattern)
        self._row_start = np.array(pattern.row_ptr, dtype=INDEX_DTYPE)
        self._columns = np.array(pattern.col_ind, dtype=INDEX_DTYPE)
        self._slot_of_triplet = np.array(pattern.slot_of_triplet, dtype=INDEX_DTYPE)
        self._values = np.zeros(pattern.nnz, dtype=VALUE_DTYPE)
        self._fingerprint = pattern.fingerprint
        self._assembled = True
        self._deduplicated = pattern.deduplicated
        self._sorted = pattern.sorted
        return self

    # ------------------------------------------------------------------
    # Assemble
    # ------------------------------------------------------------------
    def assemble(self, rows: Sequence[int], cols: Sequence[int], values: Sequence[float]) -> None:
        """
        Counting-sort triplets into compressed-row layout.

        One slot per triplet; triplets sharing a row keep their input order.
        Repeated coordinates are left in separate slots until `deduplicate`.
        Calling this again rebuilds the matrix from scratch.

        Raises:
            PreconditionError: mismatched lengths, wrong triplet count or an
                index outside the matrix.
            ConsistencyError: the row histogram does not add up.
        """
        r, c, v = validate_triplets(rows, cols, values, self._shape, self._n_triplets)
        m = self._shape[0]
        nnz = r.size

        # 1) per-row histogram, 2) prefix sum into row offsets
        counts = np.bincount(r, minlength=m)
        row_start = np.zeros(m + 1, dtype=INDEX_DTYPE)
        np.cumsum(counts, out=row_start[1:])
        if row_start[-1] != nnz:
            raise ConsistencyError(
                f"Row histogram totals {int(row_start[-1])} slots for {nnz} triplets"
            )

        # 3) scatter: a stable ordering by row places each triplet exactly
        #    where a per-row write cursor starting at row_start[row] would
        order = _stable_row_order(r, m)
        slot_of_triplet = np.empty(nnz, dtype=INDEX_DTYPE)
        slot_of_triplet[order] = np.arange(nnz, dtype=INDEX_DTYPE)

        columns = np.empty(nnz, dtype=INDEX_DTYPE)
        vals = np.empty(nnz, dtype=VALUE_DTYPE)
        columns[slot_of_triplet] = c
        vals[slot_of_triplet] = v

        self._row_start = row_start
        self._columns = columns
        self._values = vals
        self._slot_of_triplet = slot_of_triplet
        self._fingerprint = pattern_fingerprint(r, c, self._shape)
        self._assembled = True
        self._deduplicated = False
        self._sorted = False
        logger.debug("Assembled %d triplets into %d rows", nnz, m)

    # ------------------------------------------------------------------
    # Deduplicate
    # ------------------------------------------------------------------
    def deduplicate(self) -> None:
        """
        Merge slots sharing a (row, col) into the first-seen one, summing values.

        Surviving slots keep their relative order, so a sorted matrix stays
        sorted. Every triplet mapped to a merged slot is redirected to the
        survivor's compacted position.
        """
        self._require_assembled("deduplicate")
        nnz = self.nnz
        if nnz == 0:
            self._deduplicated = True
            return

        m = self._shape[0]
        row_of_slot = self._row_of_slot()
        slot_idx = np.arange(nnz, dtype=INDEX_DTYPE)

        # group equal coordinates; lexsort is stable so each group leads with
        # its first-seen slot
        order = np.lexsort((self._columns, row_of_slot))
        r_sorted = row_of_slot[order]
        c_sorted = self._columns[order]
        leads = np.ones(nnz, dtype=bool)
        leads[1:] = (r_sorted[1:] != r_sorted[:-1]) | (c_sorted[1:] != c_sorted[:-1])

        group = np.cumsum(leads) - 1
        survivor = np.empty(nnz, dtype=INDEX_DTYPE)
        survivor[order] = order[leads][group]

        keep = survivor == slot_idx
        n_kept = int(np.count_nonzero(keep))
        if n_kept == nnz:
            self._deduplicated = True
            logger.debug("Deduplicate: %d slots, nothing to merge", nnz)
            return

        # old slot -> compacted slot of its survivor
        compacted = np.cumsum(keep, dtype=INDEX_DTYPE) - 1
        new_slot = compacted[survivor]

        values = np.bincount(new_slot, weights=self._values, minlength=n_kept)
        columns = self._columns[keep]
        row_start = np.zeros(m + 1, dtype=INDEX_DTYPE)
        np.cumsum(np.bincount(row_of_slot[keep], minlength=m), out=row_start[1:])

        self._slot_of_triplet = new_slot[self._slot_of_triplet]
        self._columns = columns
        self._values = values.astype(VALUE_DTYPE, copy=False)
        self._row_start = row_start
        self._deduplicated = True
        logger.debug("Deduplicate: merged %d slots into %d", nnz, n_kept)

    # ------------------------------------------------------------------
    # Order
    # ------------------------------------------------------------------
    def sort(self) -> None:
        """
        Sort each row's slots by ascending column, carrying values along.

        Ties (only possible before `deduplicate`) keep their current order.
        """
        self._require_assembled("sort")
        nnz = self.nnz
        if nnz == 0:
            self._sorted = True
            return

        order = np.lexsort((self._columns, self._row_of_slot()))
        if np.array_equal(order, np.arange(nnz)):
            self._sorted = True
            logger.debug("Sort: %d slots already in order", nnz)
            return

        new_pos = np.empty(nnz, dtype=INDEX_DTYPE)
        new_pos[order] = np.arange(nnz, dtype=INDEX_DTYPE)

        self._columns = self._columns[order]
        self._values = self._values[order]
        self._slot_of_triplet = new_pos[self._slot_of_triplet]
        self._sorted = True
        logger.debug("Sort: permuted %d slots", int(np.count_nonzero(order != np.arange(nnz))))

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------
    def refresh(self, values: Sequence[float],
                rows: Optional[Sequence[int]] = None,
                cols: Optional[Sequence[int]] = None) -> None:
        """
        Replace all slot values by re-summing one new value per original triplet.

        Structure is left untouched. `values` must follow the triplet order
        given to `assemble`; supply `rows` and `cols` as well to have that
        checked against the assembled pattern.

        Raises:
            PreconditionError: wrong number of values.
            PatternMismatchError: `rows`/`cols` differ from the assembled ones.
            AssemblyStateError: nothing has been assembled yet.
        """
        self._require_assembled("refresh")
        v = validate_refresh_values(values, self._n_triplets)

        if rows is not None or cols is not None:
            if rows is None or cols is None:
                raise PreconditionError("Pattern check needs both 'rows' and 'cols'")
            r, c, _ = validate_triplets(rows, cols, v, self._shape, self._n_triplets)
            if pattern_fingerprint(r, c, self._shape) != self._fingerprint:
                raise PatternMismatchError(
                    "Refresh coordinates differ from the triplets this matrix was assembled from"
                )

        self._values[...] = np.bincount(self._slot_of_triplet, weights=v, minlength=self.nnz)
        logger.debug("Refreshed %d slots from %d triplet values", self.nnz, v.size)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_assembled(self, op: str) -> None:
        if not self._assembled:
            raise AssemblyStateError(f"'{op}' called before 'assemble'")

    def _row_of_slot(self) -> np.ndarray:
        m = self._shape[0]
        return np.repeat(np.arange(m, dtype=INDEX_DTYPE), np.diff(self._row_start))
