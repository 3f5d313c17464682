from bisect import bisect_left
from enum import IntEnum, auto
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from .errors import MatrixError, MatrixDimError
from .header import ValueKind, value_kind_for


class MatrixState(IntEnum):
    CREATED = auto()
    BUILDING = auto()
    BUILT = auto()


class RowBuilder(object):
    """ Collects the block-column indices of one block row during a row-wise build. """

    def __init__(self, index: int):
        self.index = index
        self.cols = set()

    def insert(self, col: int):
        self.cols.add(col)

    def __len__(self):
        return len(self.cols)


class BlockSparseMatrix(object):
    """ Block compressed row storage.
    Each stored entry is a dense `block_shape` numpy block.
    The sparsity pattern is declared row by row (`set_size`, then `create_rows`)
    before any value can be written. `dtype=None` makes a pattern-only matrix, which stores no values. """

    def __init__(self, block_shape: Tuple[int, int] = (1, 1), dtype=np.float64):
        block_shape = tuple(block_shape)
        MatrixError.assert_true(len(block_shape) == 2 and min(block_shape) > 0,
                                f"Invalid block shape {block_shape}")
        self.block_shape = block_shape
        self.dtype = None if dtype is None else np.dtype(dtype)
        # Fails for dtypes without a MatrixMarket representation
        self.value_kind = value_kind_for(self.dtype)
        self.state = MatrixState.CREATED
        self.nrows = 0
        self.ncols = 0
        self.row_ptr: List[int] = [0]
        self.col_idx: List[int] = []
        self.blocks: Optional[np.ndarray] = None

    @property
    def is_pattern(self) -> bool:
        return self.value_kind is ValueKind.pattern

    @property
    def shape(self) -> Tuple[int, int]:
        """ Shape in scalars """
        return self.nrows * self.block_shape[0], self.ncols * self.block_shape[1]

    @property
    def nnz_blocks(self) -> int:
        return len(self.col_idx)

    def set_size(self, nrows: int, ncols: int):
        """ Set the size in blocks, discarding any existing structure. """
        MatrixError.assert_true(self.state is not MatrixState.BUILDING, "Cannot resize while building")
        MatrixDimError.assert_true(nrows >= 0 and ncols >= 0, f"Invalid size {nrows}x{ncols}")
        self.nrows = nrows
        self.ncols = ncols
        self.row_ptr = [0]
        self.col_idx = []
        self.blocks = None
        self.state = MatrixState.CREATED

    def create_rows(self) -> Iterator[RowBuilder]:
        """ Row-wise build.  Yields a `RowBuilder` per block row, in order.
        Column indices inserted into each are committed when the next row is requested.
        Block storage is allocated (zeroed) once the last row is done. """
        MatrixError.assert_true(self.state is MatrixState.CREATED, "Matrix is already built")
        self.state = MatrixState.BUILDING
        for r in range(self.nrows):
            row = RowBuilder(r)
            yield row
            cols = sorted(row.cols)
            if cols and (cols[0] < 0 or cols[-1] >= self.ncols):
                raise MatrixDimError(f"Column index out of range in row {r}: {cols}")
            self.col_idx.extend(cols)
            self.row_ptr.append(len(self.col_idx))
        if not self.is_pattern:
            self.blocks = np.zeros((len(self.col_idx),) + self.block_shape, dtype=self.dtype)
        self.state = MatrixState.BUILT

    def fill(self, val):
        """ Set every stored scalar to `val` """
        MatrixError.assert_true(self.state is MatrixState.BUILT, "Matrix is not built")
        if self.blocks is not None:
            self.blocks[...] = val

    def _find(self, row: int, col: int) -> Optional[int]:
        if not 0 <= row < self.nrows: return None
        start, end = self.row_ptr[row], self.row_ptr[row + 1]
        k = bisect_left(self.col_idx, col, start, end)
        if k < end and self.col_idx[k] == col:
            return k
        return None

    def exists(self, row: int, col: int) -> bool:
        return self._find(row, col) is not None

    def get(self, row: int, col: int) -> Optional[np.ndarray]:
        """ Get the (writable) block at (row, col), or None if no block is stored there """
        MatrixError.assert_true(not self.is_pattern, "Pattern matrices store no values")
        k = self._find(row, col)
        if k is None: return None
        return self.blocks[k]

    def block(self, row: int, col: int) -> np.ndarray:
        """ Like `get`, but the block must be part of the sparsity pattern. """
        b = self.get(row, col)
        if b is None:
            raise MatrixError(f"No block at ({row}, {col})")
        return b

    def row_cols(self, row: int) -> List[int]:
        return self.col_idx[self.row_ptr[row]:self.row_ptr[row + 1]]

    def items(self) -> Iterator[Tuple[int, int, Optional[np.ndarray]]]:
        """ (row, col, block) for every stored block, row-major.
        Blocks are None for pattern matrices. """
        for r in range(self.nrows):
            for k in range(self.row_ptr[r], self.row_ptr[r + 1]):
                yield r, self.col_idx[k], None if self.blocks is None else self.blocks[k]

    def count_nonzeros(self) -> int:
        """ Number of scalar slots in stored blocks, explicit zeros included """
        return self.nnz_blocks * self.block_shape[0] * self.block_shape[1]

    def to_dense(self) -> np.ndarray:
        MatrixError.assert_true(not self.is_pattern, "Pattern matrices store no values")
        br, bc = self.block_shape
        dense = np.zeros(self.shape, dtype=self.dtype)
        for r, c, b in self.items():
            dense[r * br:(r + 1) * br, c * bc:(c + 1) * bc] = b
        return dense

    def display(self) -> str:
        """ Create a string "X" versus " " display of stored blocks. """
        s = ''
        for r in range(self.nrows):
            row = [' '] * self.ncols
            for c in self.row_cols(r):
                row[c] = 'X'
            s += ''.join(row) + '\n'
        return s

    def __eq__(self, other):
        if not isinstance(other, BlockSparseMatrix): return NotImplemented
        if self.block_shape != other.block_shape: return False
        if (self.nrows, self.ncols) != (other.nrows, other.ncols): return False
        if self.row_ptr != other.row_ptr or self.col_idx != other.col_idx: return False
        if self.blocks is None or other.blocks is None:
            return self.blocks is None and other.blocks is None
        return bool(np.array_equal(self.blocks, other.blocks))

    def __repr__(self):
        return (f"<{self.__class__.__name__}({self.nrows}x{self.ncols} blocks of {self.block_shape}, "
                f"{self.value_kind.value}, nnz_blocks={self.nnz_blocks})>")

    @classmethod
    def from_blocks(cls, nrows: int, ncols: int, blocks: Dict[Tuple[int, int], object],
                    block_shape: Tuple[int, int] = (1, 1), dtype=np.float64):
        """ Build from a {(row, col): block} dictionary, in block coordinates.
        For pattern matrices (`dtype=None`) the dictionary values are ignored. """
        m = cls(block_shape=block_shape, dtype=dtype)
        m.set_size(nrows, ncols)
        by_row: Dict[int, List[int]] = {}
        for (r, c) in blocks:
            by_row.setdefault(r, []).append(c)
        for row in m.create_rows():
            for c in by_row.get(row.index, []):
                row.insert(c)
        if not m.is_pattern:
            for (r, c), b in blocks.items():
                m.block(r, c)[...] = b
        return m

    @classmethod
    def from_dense(cls, dense, block_shape: Tuple[int, int] = (1, 1), dtype=None):
        """ Build from a dense 2-D array, storing every block with a nonzero scalar. """
        dense = np.asarray(dense)
        br, bc = block_shape
        MatrixDimError.assert_true(dense.ndim == 2, "Dense input must be two-dimensional")
        MatrixDimError.assert_true(dense.shape[0] % br == 0 and dense.shape[1] % bc == 0,
                                   f"Shape {dense.shape} is not divisible into {block_shape} blocks")
        blocks = {}
        for r in range(dense.shape[0] // br):
            for c in range(dense.shape[1] // bc):
                b = dense[r * br:(r + 1) * br, c * bc:(c + 1) * bc]
                if np.any(b):
                    blocks[(r, c)] = b
        return cls.from_blocks(dense.shape[0] // br, dense.shape[1] // bc, blocks,
                               block_shape=block_shape, dtype=dense.dtype if dtype is None else dtype)


class BlockVector(object):
    """ Dense vector of `block_size`-long numpy blocks """

    def __init__(self, size: int = 0, block_size: int = 1, dtype=np.float64):
        MatrixError.assert_true(block_size > 0, f"Invalid block size {block_size}")
        MatrixError.assert_true(dtype is not None, "Vectors cannot be pattern-only")
        self.block_size = block_size
        self.dtype = np.dtype(dtype)
        self.value_kind = value_kind_for(self.dtype)
        self.data = np.zeros((size, block_size), dtype=self.dtype)

    def resize(self, size: int):
        """ Change the number of blocks, keeping leading values and zeroing new ones """
        data = np.zeros((size, self.block_size), dtype=self.dtype)
        keep = min(size, len(self))
        data[:keep] = self.data[:keep]
        self.data = data

    def __len__(self):
        return self.data.shape[0]

    def __getitem__(self, i: int) -> np.ndarray:
        return self.data[i]

    def __setitem__(self, i: int, block):
        self.data[i] = block

    def __iter__(self):
        return iter(self.data)

    def __eq__(self, other):
        if not isinstance(other, BlockVector): return NotImplemented
        return self.block_size == other.block_size and bool(np.array_equal(self.data, other.data))

    def __repr__(self):
        return f"<{self.__class__.__name__}({len(self)} blocks of {self.block_size}, {self.value_kind.value})>"

    @classmethod
    def from_values(cls, values, block_size: int = 1, dtype=None):
        """ Build from a flat sequence of scalars """
        values = np.asarray(values)
        MatrixDimError.assert_true(values.size % block_size == 0,
                                   f"{values.size} values are not divisible into blocks of {block_size}")
        v = cls(size=values.size // block_size, block_size=block_size,
                dtype=values.dtype if dtype is None else dtype)
        v.data[...] = values.reshape(-1, block_size)
        return v
