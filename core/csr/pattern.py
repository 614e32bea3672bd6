# core/csr/pattern.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class CsrPattern:
    """
    Everything about an assembled matrix that does not depend on values:
    the compressed-row structure plus the triplet → slot map.

    Pickle-safe, so a structure assembled once can be shipped to a worker
    and refreshed there with `CsrMatrix.from_pattern(...).refresh(values)`.
    """
    shape: Tuple[int, int]
    row_ptr: np.ndarray          # int64, len == shape[0] + 1
    col_ind: np.ndarray          # int64, len == nnz
    slot_of_triplet: np.ndarray  # int64, len == n_triplets
    fingerprint: bytes           # of the (rows, cols) assembled from
    deduplicated: bool = False
    sorted: bool = False

    @property
    def nnz(self) -> int:
        return int(self.col_ind.size)

    @property
    def n_triplets(self) -> int:
        return int(self.slot_of_triplet.size)
