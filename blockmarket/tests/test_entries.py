import pytest
import numpy as np

from ..entries import (PATTERN, IndexedValue, Numeric, RowEntries,
                       collect_entries, read_slot, read_sparse_entries)
from ..errors import MatrixMarketFormatError, UnsupportedFeatureError
from ..header import MMHeader, StorageKind, StructureKind, ValueKind
from ..matrix import BlockSparseMatrix
from ..scanner import Scanner


def test_row_entries_order_and_duplicates():
    row = RowEntries()
    assert row.insert(IndexedValue(3, Numeric(1.0)))
    assert row.insert(IndexedValue(0, Numeric(2.0)))
    assert not row.insert(IndexedValue(3, Numeric(9.0)))
    assert len(row) == 2
    assert 3 in row
    assert [e.index for e in row] == [0, 3]
    # The first entry at a column wins
    assert [e.slot for e in row] == [Numeric(2.0), Numeric(1.0)]


def test_read_slot():
    s = Scanner("1.5 7 2.0 -1.0")
    assert read_slot(s, ValueKind.real) == Numeric(1.5)
    assert read_slot(s, ValueKind.integer) == Numeric(7)
    assert read_slot(s, ValueKind.complex) == Numeric(complex(2.0, -1.0))
    assert read_slot(s, ValueKind.pattern) is PATTERN
    assert s.token() == ""


def test_collect_entries():
    s = Scanner("2 1 5.0\n% interleaved comment\n\n1 2 4.0\n2 1 6.0\n")
    rows = collect_entries(s, 3, rows=2, cols=2, header=MMHeader())
    assert [[(e.index, e.slot.value) for e in row] for row in rows] == [[(1, 4.0)], [(0, 5.0)]]


@pytest.mark.parametrize("text", [
    "3 1 1.0\n",
    "0 1 1.0\n",
    "1 3 1.0\n",
    "1 0 1.0\n",
])
def test_collect_entries_out_of_bounds(text):
    with pytest.raises(MatrixMarketFormatError):
        collect_entries(Scanner(text), 1, rows=2, cols=2, header=MMHeader())


def test_collect_entries_truncated():
    with pytest.raises(MatrixMarketFormatError):
        collect_entries(Scanner("1 1 1.0\n2 2\n"), 2, rows=2, cols=2, header=MMHeader())


def test_read_blocked_entries():
    m = BlockSparseMatrix(block_shape=(2, 2))
    m.set_size(2, 2)
    text = "4 4 1.0\n% comment\n1 1 2.0\n2 2 3.0\n3 4 5.0\n1 2 4.0\n"
    read_sparse_entries(m, Scanner(text), 5, MMHeader())

    assert m.nnz_blocks == 2
    assert m.row_cols(0) == [0]
    assert m.row_cols(1) == [1]
    assert np.array_equal(m.block(0, 0), [[2.0, 4.0], [0.0, 3.0]])
    assert np.array_equal(m.block(1, 1), [[0.0, 5.0], [0.0, 1.0]])


def test_read_entries_non_general():
    m = BlockSparseMatrix()
    m.set_size(2, 2)
    header = MMHeader(StorageKind.coordinate, ValueKind.real, StructureKind.symmetric)
    with pytest.raises(UnsupportedFeatureError) as e:
        read_sparse_entries(m, Scanner("1 1 1.0\n2 1 2.0\n"), 2, header)
    assert isinstance(e.value, NotImplementedError)
    assert isinstance(e.value, MatrixMarketFormatError)


def test_read_pattern_entries():
    m = BlockSparseMatrix(dtype=None)
    m.set_size(3, 3)
    header = MMHeader(ctype=ValueKind.pattern)
    read_sparse_entries(m, Scanner("3 1\n1 3\n1 1\n"), 3, header)
    assert m.row_cols(0) == [0, 2]
    assert m.row_cols(1) == []
    assert m.row_cols(2) == [0]


def test_read_pattern_entries_into_valued_matrix():
    m = BlockSparseMatrix()
    m.set_size(2, 2)
    read_sparse_entries(m, Scanner("2 2\n"), 1, MMHeader(ctype=ValueKind.pattern))
    assert m.row_cols(1) == [1]
    assert m.block(1, 1)[0, 0] == 0.0


def test_read_complex_entries():
    m = BlockSparseMatrix(dtype=np.complex128)
    m.set_size(2, 2)
    read_sparse_entries(m, Scanner("1 2 1.5 -2.5\n"), 1, MMHeader(ctype=ValueKind.complex))
    assert m.block(0, 1)[0, 0] == complex(1.5, -2.5)
