"""
Sparse Entry Assembly

Converts a stream of scalar (row, col[, value]) entries, in any order, into a
block sparse matrix. The matrix requires each block row's sparsity pattern
before any value can be stored, so assembly runs in passes:

1. Collect entries per scalar row, ordered and de-duplicated by column.
2. Declare each block row's pattern: the union of its scalar rows' block columns.
3. Copy each value into its slot within its block.
"""

import logging
from typing import Dict, Iterator, List, Optional, Sequence

from .errors import MatrixMarketFormatError, UnsupportedFeatureError
from .header import MMHeader, StructureKind, ValueKind
from .matrix import BlockSparseMatrix
from .scanner import Scanner

logger = logging.getLogger(__name__)


class Numeric(object):
    """ Value slot carrying a number """
    __slots__ = ("value",)

    def __init__(self, value):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, Numeric) and self.value == other.value

    def __repr__(self):
        return f"Numeric({self.value!r})"


class _Pattern(object):
    """ Value slot of a `pattern` entry: a position without a value """

    def __repr__(self):
        return "PATTERN"


PATTERN = _Pattern()


class IndexedValue(object):
    """ A column index and its value slot """
    __slots__ = ("index", "slot")

    def __init__(self, index: int, slot):
        self.index = index
        self.slot = slot

    def __lt__(self, other):
        return self.index < other.index

    def __eq__(self, other):
        return self.index == other.index and self.slot == other.slot

    def __repr__(self):
        return f"<{self.__class__.__name__}(index={self.index}, slot={self.slot!r})>"


class RowEntries(object):
    """ Entries of one scalar row, ordered by column index.
    Only the first entry inserted at a given column is kept. """

    def __init__(self):
        self._entries: Dict[int, IndexedValue] = {}
        self._sorted: Optional[List[IndexedValue]] = None

    def insert(self, entry: IndexedValue) -> bool:
        """ Add `entry`.  Returns False, discarding it, if its column is already present. """
        if entry.index in self._entries:
            return False
        self._entries[entry.index] = entry
        self._sorted = None
        return True

    def __iter__(self) -> Iterator[IndexedValue]:
        if self._sorted is None:
            self._sorted = sorted(self._entries.values())
        return iter(self._sorted)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, col: int):
        return col in self._entries


def read_number(scanner: Scanner, kind: ValueKind, what: str = "value"):
    """ Read one value of MatrixMarket type `kind`. Complex values span two tokens. """
    if kind is ValueKind.integer:
        return scanner.read_int(what)
    if kind is ValueKind.real:
        return scanner.read_float(what)
    if kind is ValueKind.complex:
        re = scanner.read_float(f"real part of {what}")
        im = scanner.read_float(f"imaginary part of {what}")
        return complex(re, im)
    raise MatrixMarketFormatError(f"Cannot read a {what} of type {kind.value}")


def read_slot(scanner: Scanner, kind: ValueKind):
    if kind is ValueKind.pattern:
        return PATTERN
    return Numeric(read_number(scanner, kind))


def collect_entries(scanner: Scanner, entries: int, rows: int, cols: int,
                    header: MMHeader, log: Optional[logging.Logger] = None) -> List[RowEntries]:
    """ First pass: read `entries` scalar entries of a `rows` x `cols` matrix into per-row sets. """
    log = log or logger
    collected = [RowEntries() for _ in range(rows)]
    for n in range(entries):
        scanner.skip_comments()
        row = scanner.read_int(f"row index of entry {n + 1}") - 1
        col = scanner.read_int(f"column index of entry {n + 1}") - 1
        if not 0 <= row < rows:
            raise MatrixMarketFormatError(f"Row index {row + 1} of entry {n + 1} is outside [1, {rows}]")
        if not 0 <= col < cols:
            raise MatrixMarketFormatError(f"Column index {col + 1} of entry {n + 1} is outside [1, {cols}]")
        slot = read_slot(scanner, header.ctype)
        if not collected[row].insert(IndexedValue(col, slot)):
            log.debug("Dropping duplicate entry at (%d, %d)", row + 1, col + 1)
    return collected


def assemble(matrix: BlockSparseMatrix, rows: Sequence[RowEntries]):
    """ Second and third passes: declare the block pattern of a sized `matrix`, then fill its values.
    `rows` holds the entries of each scalar row. """
    br, bc = matrix.block_shape

    for builder in matrix.create_rows():
        start = builder.index * br
        for entries in rows[start:start + br]:
            for entry in entries:
                builder.insert(entry.index // bc)

    if matrix.is_pattern:
        return
    matrix.fill(0)
    for brow in range(matrix.nrows):
        for srow in range(brow * br, brow * br + br):
            for entry in rows[srow]:
                if entry.slot is PATTERN:
                    continue
                matrix.block(brow, entry.index // bc)[srow % br, entry.index % bc] = entry.slot.value


def read_sparse_entries(matrix: BlockSparseMatrix, scanner: Scanner, entries: int,
                        header: MMHeader, log: Optional[logging.Logger] = None):
    """ Read `entries` coordinate entries into `matrix`, already sized in blocks via `set_size`. """
    rows, cols = matrix.shape
    collected = collect_entries(scanner, entries, rows, cols, header, log)

    # TODO: expand the stored triangle of symmetric, skew-symmetric and hermitian matrices
    if header.structure is not StructureKind.general:
        raise UnsupportedFeatureError(f"Only general is supported right now, not {header.structure.value}")

    assemble(matrix, collected)
