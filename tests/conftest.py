import logging

import numpy as np
import pytest

from core.csr.matrix import CsrMatrix


def _merge_sources(sources):
    """Concatenate local triplet blocks into one global triplet list."""
    rows, cols, vals = [], [], []
    for local_rows, local_cols, local_vals, to_global in sources:
        rows.extend(to_global[r] for r in local_rows)
        cols.extend(to_global[c] for c in local_cols)
        vals.extend(local_vals)
    return rows, cols, vals

@pytest.fixture
def two_source_triplets():
    """
    3x3 system stamped by two overlapping sources.

    Source 0 owns nodes (0, 1, 2); source 1 is a 2x2 block whose local
    nodes (0, 1) land on global nodes (1, 0). Both touch (0, 0).
    """
    source0 = ([0, 0, 1, 2], [0, 2, 1, 2], [2.4, 0.6, 3.1, 5.0], [0, 1, 2])
    source1 = ([0, 1, 1], [1, 0, 1], [0.5, 4.5, 1.1], [1, 0])
    return _merge_sources([source0, source1])

@pytest.fixture
def refresh_values():
    # same seven positions, next time step
    return [4.8, 1.2, 6.2, 10.0, 1.0, 9.0, 2.2]

@pytest.fixture
def assembled(two_source_triplets):
    rows, cols, vals = two_source_triplets
    matrix = CsrMatrix(3, 3, len(rows))
    matrix.assemble(rows, cols, vals)
    return matrix

@pytest.fixture
def canonical(assembled):
    assembled.deduplicate()
    assembled.sort()
    return assembled

@pytest.fixture
def random_triplets():
    """Factory for seeded random triplet sets with plenty of repeats."""
    def make(seed, m=12, n=9, nnz=200):
        rng = np.random.default_rng(seed)
        rows = rng.integers(0, m, size=nnz)
        cols = rng.integers(0, n, size=nnz)
        vals = rng.normal(size=nnz)
        return (m, n), rows, cols, vals
    return make

@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)

@pytest.fixture
def dummy_logger(caplog):
    caplog.set_level("DEBUG")
    return caplog
