# core/csr/_fingerprint.py
from __future__ import annotations
import hashlib
from typing import Tuple

import numpy as np


def pattern_fingerprint(rows: np.ndarray, cols: np.ndarray, shape: Tuple[int, int]) -> bytes:
    """
    Return a fingerprint of a triplet index sequence.

    Position-sensitive: the same coordinates in a different order give a
    different digest, which is what refresh needs to reject.
    """
    h = hashlib.blake2b(digest_size=16)
    h.update(np.asarray(shape, dtype=np.int64).tobytes())
    h.update(np.ascontiguousarray(rows, dtype=np.int64).tobytes())
    h.update(np.ascontiguousarray(cols, dtype=np.int64).tobytes())
    return h.digest()


def values_checksum(values: np.ndarray) -> int:
    """Cheap numeric checksum (64‑bit xor) insensitive to permutations."""
    arr = np.ascontiguousarray(values, dtype=np.float64)
    if arr.size == 0:
        return 0
    arr64 = arr.view(np.uint64)
    return int(np.bitwise_xor.reduce(arr64, dtype=np.uint64))
