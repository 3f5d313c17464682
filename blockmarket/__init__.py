"""
MatrixMarket I/O for block sparse matrices and block vectors,
with an extension for storing distributed (per-process) data.
"""

from .errors import (
    MatrixError,
    MatrixDimError,
    MatrixMarketFormatError,
    BannerError,
    UnsupportedFeatureError,
    InvalidIndexSetState,
)
from .header import MMHeader, Dimensions, StorageKind, ValueKind, StructureKind, calculate_nnz, check_value_kind
from .matrix import BlockSparseMatrix, BlockVector
from .market import (
    read_matrix_market,
    load_matrix_market,
    peek_header,
    store_matrix_market,
)
from .writer import write_matrix_market
from .parallel import (
    Attribute,
    Communication,
    LocalIndex,
    ParallelIndexSet,
    RemoteIndices,
    load_distributed,
    store_distributed,
)
