import numpy as np
import pytest

from core.csr.matrix import CsrMatrix
from core.exceptions import AssemblyStateError, PreconditionError
from core.validation import check_structure


def test_assemble_two_sources(assembled):
    """Counting sort groups by row and keeps input order within each row."""
    np.testing.assert_array_equal(assembled.row_ptr, [0, 4, 6, 7])
    np.testing.assert_array_equal(assembled.col_ind, [0, 2, 1, 0, 1, 0, 2])
    np.testing.assert_allclose(assembled.values, [2.4, 0.6, 4.5, 1.1, 3.1, 0.5, 5.0])
    np.testing.assert_array_equal(assembled.slot_map, [0, 1, 4, 6, 5, 2, 3])
    assert assembled.nnz == 7
    assert assembled.is_assembled
    assert not assembled.is_deduplicated
    assert not assembled.is_sorted

def test_assemble_slot_holds_its_triplet(assembled, two_source_triplets):
    rows, cols, vals = two_source_triplets
    check_structure(assembled, rows, cols)
    for p, slot in enumerate(assembled.slot_map):
        assert assembled.col_ind[slot] == cols[p]
        assert assembled.values[slot] == vals[p]
        rng = assembled.row_slice(rows[p])
        assert rng.start <= slot < rng.stop

def test_assemble_accepts_numpy_input(two_source_triplets):
    rows, cols, vals = (np.asarray(x) for x in two_source_triplets)
    matrix = CsrMatrix(3, 3, rows.size)
    matrix.assemble(rows.astype(np.int32), cols.astype(np.int32), vals)
    np.testing.assert_array_equal(matrix.row_ptr, [0, 4, 6, 7])

def test_reassemble_resets_state(canonical, two_source_triplets):
    rows, cols, vals = two_source_triplets
    canonical.assemble(rows, cols, vals)
    assert not canonical.is_deduplicated and not canonical.is_sorted
    np.testing.assert_array_equal(canonical.row_ptr, [0, 4, 6, 7])

def test_empty_rows_are_kept():
    matrix = CsrMatrix(4, 2, 3)
    matrix.assemble([3, 0, 3], [1, 1, 0], [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(matrix.row_ptr, [0, 1, 1, 1, 3])
    np.testing.assert_array_equal(matrix.col_ind, [1, 1, 0])
    assert matrix.row_slice(1) == slice(1, 1)

def test_zero_triplets():
    matrix = CsrMatrix(3, 3, 0)
    matrix.assemble([], [], [])
    np.testing.assert_array_equal(matrix.row_ptr, [0, 0, 0, 0])
    assert matrix.col_ind.size == 0
    assert matrix.values.size == 0

    matrix.deduplicate()
    matrix.sort()
    matrix.refresh([])
    np.testing.assert_array_equal(matrix.row_ptr, [0, 0, 0, 0])
    assert matrix.nnz == 0
    assert list(matrix.entries()) == []

def test_accessors_are_read_only(assembled):
    with pytest.raises(ValueError):
        assembled.values[0] = 99.0
    with pytest.raises(ValueError):
        assembled.row_ptr[1] = 0

def test_entries_and_scipy_export(canonical):
    assert list(canonical.entries())[:3] == [(0, 0, 3.5), (0, 1, 4.5), (0, 2, 0.6)]
    dense = canonical.to_scipy().toarray()
    np.testing.assert_allclose(dense, [[3.5, 4.5, 0.6],
                                       [0.5, 3.1, 0.0],
                                       [0.0, 0.0, 5.0]])

@pytest.mark.parametrize("op", ["deduplicate", "sort", "export_pattern"])
def test_structural_ops_need_assembly(op):
    matrix = CsrMatrix(2, 2, 1)
    with pytest.raises(AssemblyStateError):
        getattr(matrix, op)()

@pytest.mark.parametrize("dims", [(-1, 3, 0), (3, -2, 0), (3, 3, -1), (2.5, 3, 0),
                                  (True, 3, 0), (3, False, 0), (3, 3, np.True_)])
def test_invalid_dimensions(dims):
    with pytest.raises(PreconditionError):
        CsrMatrix(*dims)

def test_repr_reports_state(canonical):
    text = repr(canonical)
    assert "nnz=6" in text
    assert "deduplicated" in text and "sorted" in text

def test_rows_beyond_one_radix_digit():
    """Rows sharing their low 16 bits must still land in their own row."""
    m = 65538
    rows = [65536, 0, 65537, 1, 65536, 0]
    matrix = CsrMatrix(m, 4, len(rows))
    matrix.assemble(rows, [0, 1, 2, 3, 1, 2], [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
    np.testing.assert_array_equal(matrix.slot_map, [3, 0, 5, 2, 4, 1])
    np.testing.assert_array_equal(matrix.col_ind, [1, 2, 3, 0, 1, 2])
    assert matrix.row_slice(65536) == slice(3, 5)
    check_structure(matrix, rows, [0, 1, 2, 3, 1, 2])

@pytest.mark.parametrize("m", [1, 300, 70000, 5_000_000])
def test_slot_placement_is_stable_by_row(m):
    rng = np.random.default_rng(m)
    rows = rng.integers(0, m, size=400)
    cols = rng.integers(0, 5, size=400)
    matrix = CsrMatrix(m, 5, rows.size)
    matrix.assemble(rows, cols, np.ones(rows.size))

    expected = np.empty(rows.size, dtype=np.int64)
    expected[np.argsort(rows, kind="stable")] = np.arange(rows.size)
    np.testing.assert_array_equal(matrix.slot_map, expected)
