"""
MatrixMarket Writing

Header fields and the block annotation are derived from the container's type,
never from its contents.
"""

import logging
from typing import Iterator, NamedTuple, Optional, TextIO, Tuple

import numpy as np

from .header import BANNER, BLOCKED, StorageKind, ValueKind, value_kind_for
from .matrix import BlockSparseMatrix, BlockVector
from .scanner import COMMENT

logger = logging.getLogger(__name__)


class MarketTraits(NamedTuple):
    is_sparse: bool
    block_shape: Tuple[int, int]
    value_kind: ValueKind

    @property
    def storage(self) -> StorageKind:
        return StorageKind.coordinate if self.is_sparse else StorageKind.array


def traits_of(container) -> MarketTraits:
    """ Resolve how `container` is represented in MatrixMarket.
    Raises `TypeError` for containers (or dtypes) without a representation. """
    if isinstance(container, BlockSparseMatrix):
        return MarketTraits(True, container.block_shape, container.value_kind)
    if isinstance(container, BlockVector):
        return MarketTraits(False, (container.block_size, 1), container.value_kind)
    if isinstance(container, np.ndarray):
        if container.ndim != 1:
            raise TypeError(f"Only one-dimensional arrays are written as vectors, not shape {container.shape}")
        kind = value_kind_for(container.dtype)
        return MarketTraits(False, (1, 1), kind)
    raise TypeError(f"Cannot write {type(container).__name__} in MatrixMarket format")


def write_header(traits: MarketTraits, ostr: TextIO):
    ostr.write(f"{BANNER} matrix {traits.storage.value} {traits.value_kind.value} general\n")


def write_block_structure(traits: MarketTraits, ostr: TextIO):
    """ Non-standard block annotation.  Scalar (1x1) blocks get none. """
    rows, cols = traits.block_shape
    if (rows, cols) == (1, 1):
        return
    ostr.write(f"{COMMENT} {BLOCKED} {rows} {cols}\n")


def format_value(value, kind: ValueKind) -> str:
    if kind is ValueKind.integer:
        return str(int(value))
    if kind is ValueKind.real:
        return repr(float(value))
    if kind is ValueKind.complex:
        value = complex(value)
        return f"{value.real!r} {value.imag!r}"
    raise ValueError(f"No values of kind {kind}")


def write_matrix_entries(matrix: BlockSparseMatrix, ostr: TextIO):
    rows, cols = matrix.shape
    ostr.write(f"{rows} {cols} {matrix.count_nonzeros()}\n")

    br, bc = matrix.block_shape
    for r, c, block in matrix.items():
        for i in range(br):
            for j in range(bc):
                # MatrixMarket indexing starts at 1
                line = f"{r * br + i + 1} {c * bc + j + 1}"
                if block is not None:
                    line += " " + format_value(block[i, j], matrix.value_kind)
                ostr.write(line + "\n")


def scalars(vector) -> Iterator:
    """ Scalars of a (possibly nested) block vector, in order """
    if isinstance(vector, np.ndarray):
        yield from vector.ravel()
    elif isinstance(vector, (BlockVector, list, tuple)):
        for block in vector:
            yield from scalars(block)
    else:
        yield vector


def write_vector_entries(vector, kind: ValueKind, ostr: TextIO):
    values = list(scalars(vector))
    ostr.write(f"{len(values)} 1\n")
    for v in values:
        ostr.write(format_value(v, kind) + "\n")


def write_matrix_market(container, ostr: TextIO, log: Optional[logging.Logger] = None):
    """ Write a block sparse matrix, block vector or 1-D array to `ostr`.
    `log` receives diagnostics (default: this module's logger). """
    log = log or logger
    traits = traits_of(container)
    log.debug("Writing %s %s with block shape %s", traits.storage.value, traits.value_kind.value, traits.block_shape)
    write_header(traits, ostr)
    write_block_structure(traits, ostr)
    if traits.is_sparse:
        write_matrix_entries(container, ostr)
    else:
        write_vector_entries(container, traits.value_kind, ostr)
