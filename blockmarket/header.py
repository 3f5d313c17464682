"""
MatrixMarket Header Parsing

The banner, block-structure annotation and dimension line(s) at the top of a
MatrixMarket file, plus the block-level entry-count calculation derived from them.
"""

import re
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .errors import BannerError, MatrixMarketFormatError, UnsupportedFeatureError
from .scanner import Scanner

logger = logging.getLogger(__name__)

BANNER = "%%MatrixMarket"
BLOCKED = "blocked"

# Block annotations, as written by us ("% blocked 2 2") and by older ISTL writers
_BLOCKED_RE = re.compile(r"^%\s*(?:ISTL_STRUCT\s+)?blocked\s+(\d+)\s+(\d+)\s*$")


class StorageKind(Enum):
    coordinate = "coordinate"
    array = "array"


class ValueKind(Enum):
    integer = "integer"
    real = "real"
    complex = "complex"
    pattern = "pattern"


class StructureKind(Enum):
    general = "general"
    symmetric = "symmetric"
    skew_symmetric = "skew-symmetric"
    hermitian = "hermitian"


class MMHeader(object):
    def __init__(self,
                 type: StorageKind = StorageKind.coordinate,
                 ctype: ValueKind = ValueKind.real,
                 structure: StructureKind = StructureKind.general):
        self.type = type
        self.ctype = ctype
        self.structure = structure
        self.blocked: Optional[Tuple[int, int]] = None

    @classmethod
    def default(cls, is_vector: bool) -> "MMHeader":
        """ Header assumed for files without a valid banner """
        if is_vector:
            return cls(type=StorageKind.array)
        return cls()

    def banner(self) -> str:
        return f"{BANNER} matrix {self.type.value} {self.ctype.value} {self.structure.value}"

    def __eq__(self, other):
        if not isinstance(other, MMHeader): return NotImplemented
        return (self.type is other.type
                and self.ctype is other.ctype
                and self.structure is other.structure)

    def __repr__(self):
        return f"<{self.__class__.__name__}({self.type.value} {self.ctype.value} {self.structure.value})>"


@dataclass(frozen=True)
class Dimensions:
    rows: int  # scalar rows
    cols: int  # scalar cols
    entries: Optional[int] = None  # declared scalar entries, coordinate matrices only


def value_kind_for(dtype) -> ValueKind:
    """ Resolve the MatrixMarket value type of numpy `dtype`.
    `None` designates a pattern-only container. Raises `TypeError` for anything else
    without a MatrixMarket representation, e.g. booleans or strings. """
    if dtype is None:
        return ValueKind.pattern
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer): return ValueKind.integer
    if np.issubdtype(dtype, np.floating): return ValueKind.real
    if np.issubdtype(dtype, np.complexfloating): return ValueKind.complex
    raise TypeError(f"No MatrixMarket value type for dtype {dtype}")


def dtype_for(kind: ValueKind):
    """ Inverse of `value_kind_for`: the natural numpy dtype for a value type """
    if kind is ValueKind.integer: return np.int64
    if kind is ValueKind.real: return np.float64
    if kind is ValueKind.complex: return np.complex128
    if kind is ValueKind.pattern: return None
    raise ValueError(kind)


# Value types a container of the key type can hold without losing information
_WIDENS_TO = {
    ValueKind.integer: (ValueKind.integer,),
    ValueKind.real: (ValueKind.integer, ValueKind.real),
    ValueKind.complex: (ValueKind.integer, ValueKind.real, ValueKind.complex),
}


def check_value_kind(file_kind: ValueKind, container_kind: ValueKind):
    """ Raise `MatrixMarketFormatError` if values of `file_kind` cannot be stored in a
    `container_kind` container without loss, e.g. real values into an integer matrix.
    Pattern files fit any container, and pattern containers take the positions of any file. """
    if file_kind is ValueKind.pattern or container_kind is ValueKind.pattern:
        return
    if file_kind not in _WIDENS_TO[container_kind]:
        raise MatrixMarketFormatError(
            f"Cannot read {file_kind.value} values into a {container_kind.value} container")


_STORAGE_TOKENS = {
    "a": StorageKind.array,
    "c": StorageKind.coordinate,
}
_VALUE_TOKENS = {
    "i": ValueKind.integer,
    "r": ValueKind.real,
    "c": ValueKind.complex,
    "p": ValueKind.pattern,
}
_STRUCTURE_TOKENS = {
    "g": StructureKind.general,
    "h": StructureKind.hermitian,
    "s": {
        "y": StructureKind.symmetric,
        "k": StructureKind.skew_symmetric,
    },
}


def _read_enumerant(scanner: Scanner, what: str, table: dict):
    """ Read one banner field, dispatching on its first letter(s) and then validating all of it. """
    if scanner.line_feed():
        raise BannerError(f"Premature end of banner line, expected {what}")
    token = scanner.token().lower()
    if not token:
        raise BannerError(f"Missing {what}")
    candidate = table.get(token[0])
    if isinstance(candidate, dict):  # `s`-prefixed structures
        candidate = candidate.get(token[1:2])
    if candidate is None or token != candidate.value:
        raise BannerError(f"Invalid {what}: {token!r}")
    return candidate


def read_banner(scanner: Scanner) -> MMHeader:
    """ Parse the `%%MatrixMarket` banner line.
    Raises `BannerError` on any deviation. On success the scanner sits at the start of the next line. """
    token = scanner.token()
    if token != BANNER:
        raise BannerError(f"Expected {BANNER}, found {token!r}")
    if scanner.line_feed():
        raise BannerError("Premature end of banner line")
    token = scanner.token()
    if token != "matrix":
        raise BannerError(f"Expected 'matrix', found {token!r}")

    header = MMHeader()
    header.type = _read_enumerant(scanner, "object type", _STORAGE_TOKENS)
    header.ctype = _read_enumerant(scanner, "value type", _VALUE_TOKENS)
    header.structure = _read_enumerant(scanner, "structure", _STRUCTURE_TOKENS)

    trailing = scanner.ignore_line().strip()
    if trailing:
        raise BannerError(f"Unexpected trailing banner content: {trailing!r}")
    return header


def parse_blocked(comment: str) -> Optional[Tuple[int, int]]:
    """ Block shape from a `% blocked <rows> <cols>` comment line, or None for any other comment """
    m = _BLOCKED_RE.match(comment.strip())
    if m is None:
        return None
    return int(m.group(1)), int(m.group(2))


def read_header(scanner: Scanner, is_vector: bool, log: Optional[logging.Logger] = None) -> Tuple[MMHeader, Dimensions]:
    """ Read the banner (or fall back to a default), skip comments, and read the dimension line.
    Vectors and array matrices carry `rows cols`; coordinate matrices also carry the number of stored entries. """
    log = log or logger
    try:
        header = read_banner(scanner)
        log.debug("Read banner: %s", header.banner())
    except BannerError as e:
        # Many producers omit the banner. Start over, assuming raw dimensions.
        header = MMHeader.default(is_vector)
        log.info("First line was not a correct MatrixMarket banner (%s). Using default: %s", e, header.banner())
        scanner.rewind()

    for comment in scanner.skip_comments():
        blocked = parse_blocked(comment)
        if blocked is not None:
            header.blocked = blocked

    if scanner.line_feed():
        raise MatrixMarketFormatError("Missing number of rows")
    rows = scanner.read_int("number of rows")
    if scanner.line_feed():
        raise MatrixMarketFormatError("Missing number of columns")
    cols = scanner.read_int("number of columns")

    entries = None
    if not is_vector and header.type is StorageKind.coordinate:
        if scanner.line_feed():
            raise MatrixMarketFormatError("Missing number of entries")
        entries = scanner.read_int("number of entries")

    scanner.ignore_line()
    return header, Dimensions(rows=rows, cols=cols, entries=entries)


def calculate_nnz(rows: int, cols: int, entries: int,
                  block_shape: Tuple[int, int],
                  structure: StructureKind) -> Tuple[int, int, int]:
    """ Block rows, block columns and number of stored blocks for a file
    of `rows` x `cols` scalars holding `entries` entries.
    Symmetric-like storage keeps one triangle, so the full count is rebuilt
    from it before dividing by the block size. """
    brows, bcols = block_shape
    block_rows, rrem = divmod(rows, brows)
    block_cols, crem = divmod(cols, bcols)
    if rrem:
        raise MatrixMarketFormatError(f"{rows} rows are not divisible by block size {brows}")
    if crem:
        raise MatrixMarketFormatError(f"{cols} columns are not divisible by block size {bcols}")

    blocksize = brows * bcols
    if structure is StructureKind.general:
        block_entries = entries // blocksize
    elif structure is StructureKind.skew_symmetric:
        block_entries = 2 * entries // blocksize
    elif structure in (StructureKind.symmetric, StructureKind.hermitian):
        block_entries = (2 * entries - rows) // blocksize
    else:
        raise UnsupportedFeatureError(f"Unsupported structure: {structure}")
    return block_rows, block_cols, block_entries
