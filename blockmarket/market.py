"""
Reading & Writing MatrixMarket Files

Entry points for block sparse matrices and block vectors, on streams or by filename.
"""

import logging
from pathlib import Path
from typing import Optional, TextIO, Tuple, Union

from .entries import read_number, read_sparse_entries
from .errors import MatrixMarketFormatError, UnsupportedFeatureError
from .header import Dimensions, MMHeader, StorageKind, calculate_nnz, check_value_kind, read_header
from .matrix import BlockSparseMatrix, BlockVector
from .scanner import Scanner
from .writer import write_matrix_market

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _check_blocked(header: MMHeader, block_shape: Tuple[int, int], log: logging.Logger):
    if header.blocked is not None and header.blocked != tuple(block_shape):
        log.warning("File is blocked %s, reading with block shape %s", header.blocked, block_shape)


def read_vector(vector: BlockVector, scanner: Scanner, log: Optional[logging.Logger] = None):
    log = log or logger
    header, dims = read_header(scanner, is_vector=True, log=log)
    _check_blocked(header, (vector.block_size, 1), log)
    if dims.cols != 1:
        raise MatrixMarketFormatError(f"{dims.cols} columns, therefore this is no vector!")
    if header.type is not StorageKind.array:
        raise MatrixMarketFormatError("Vectors have to be stored in array format!")
    check_value_kind(header.ctype, vector.value_kind)

    bs = vector.block_size
    size, rem = divmod(dims.rows, bs)
    if rem:
        raise MatrixMarketFormatError(f"Vector length {dims.rows} is not divisible by block size {bs}")
    vector.resize(size)

    for i in range(dims.rows):
        scanner.skip_comments()
        vector[i // bs][i % bs] = read_number(scanner, header.ctype, f"vector entry {i + 1}")


def read_matrix(matrix: BlockSparseMatrix, scanner: Scanner, log: Optional[logging.Logger] = None):
    log = log or logger
    header, dims = read_header(scanner, is_vector=False, log=log)
    _check_blocked(header, matrix.block_shape, log)

    if header.type is StorageKind.array:
        raise UnsupportedFeatureError("Array format currently not supported for matrices!")
    check_value_kind(header.ctype, matrix.value_kind)
    block_rows, block_cols, nnz = calculate_nnz(dims.rows, dims.cols, dims.entries,
                                                matrix.block_shape, header.structure)

    log.debug("Reading %dx%d blocks, about %d stored", block_rows, block_cols, nnz)
    matrix.set_size(block_rows, block_cols)
    read_sparse_entries(matrix, scanner, dims.entries, header, log)


def read_matrix_market(container, istr: TextIO, log: Optional[logging.Logger] = None):
    """ Read MatrixMarket content from `istr` into `container`, a `BlockSparseMatrix` or `BlockVector`.
    The container's block shape and dtype are kept; its size and contents are replaced.
    `log` receives diagnostics (default: this module's logger). """
    scanner = Scanner.from_stream(istr)
    if isinstance(container, BlockVector):
        return read_vector(container, scanner, log)
    if isinstance(container, BlockSparseMatrix):
        return read_matrix(container, scanner, log)
    raise TypeError(f"Cannot read MatrixMarket into {type(container).__name__}")


def peek_header(filename: PathLike, is_vector: bool = False,
                log: Optional[logging.Logger] = None) -> Tuple[MMHeader, Dimensions]:
    """ Header and dimensions of a file, without reading its entries """
    with open(filename) as f:
        return read_header(Scanner.from_stream(f), is_vector=is_vector, log=log)


def store_matrix_market(container, filename: PathLike, log: Optional[logging.Logger] = None):
    """ Write `container` to file `filename` """
    with open(filename, "w") as f:
        write_matrix_market(container, f, log)


def load_matrix_market(container, filename: PathLike, log: Optional[logging.Logger] = None):
    """ Read file `filename` into `container`.  Raises `OSError` if it cannot be opened. """
    with open(filename) as f:
        read_matrix_market(container, f, log)
