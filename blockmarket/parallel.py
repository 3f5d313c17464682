"""
Distributed MatrixMarket Storage

Each process stores its local matrix or vector as `<basename>_<rank>.mm` and,
optionally, its global-to-local index mapping and neighbouring ranks as
`<basename>_<rank>.idx`:

    <global> <local> <attribute> <public:0|1>
    ...
    neighbours: <rank> <rank> ...

Building the remote index information from the neighbours is the communication
layer's job. Loading only hands the neighbours over and requests a rebuild.
"""

import logging
from enum import Enum, IntEnum, auto
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set, TextIO, Union

from .errors import InvalidIndexSetState, MatrixMarketFormatError
from .market import load_matrix_market, store_matrix_market
from .scanner import Scanner

logger = logging.getLogger(__name__)

MM_SUFFIX = ".mm"
IDX_SUFFIX = ".idx"
NEIGHBOURS = "neighbours:"

PathLike = Union[str, Path]


class Attribute(IntEnum):
    """ Ownership of an index on this process """
    copy = 0
    owner = 1
    overlap = 2


class LocalIndex(object):
    def __init__(self, local: int, attribute: int = Attribute.owner, public: bool = True):
        self.local = local
        self.attribute = attribute
        self.public = public

    def __eq__(self, other):
        return (self.local == other.local
                and self.attribute == other.attribute
                and self.public == other.public)

    def __repr__(self):
        return f"<{self.__class__.__name__}(local={self.local}, attribute={self.attribute}, public={self.public})>"


class IndexPair(object):
    def __init__(self, global_index: int, local: LocalIndex):
        self.global_index = global_index
        self.local = local

    def __eq__(self, other):
        return self.global_index == other.global_index and self.local == other.local

    def __repr__(self):
        return f"<{self.__class__.__name__}(global={self.global_index}, local={self.local})>"


class IndexSetState(Enum):
    GROUND = auto()
    RESIZE = auto()


class ParallelIndexSet(object):
    """ Mapping of global indices to process-local ones, sorted by global index.
    Pairs can only be added between `begin_resize` and `end_resize`. """

    def __init__(self):
        self.state = IndexSetState.GROUND
        self.pairs: List[IndexPair] = []
        self._added: List[IndexPair] = []

    def begin_resize(self):
        InvalidIndexSetState.assert_true(self.state is IndexSetState.GROUND, "Index set is already resizing")
        self.state = IndexSetState.RESIZE

    def add(self, global_index: int, local: LocalIndex):
        InvalidIndexSetState.assert_true(self.state is IndexSetState.RESIZE,
                                         "Indices can only be added while resizing")
        self._added.append(IndexPair(global_index, local))

    def end_resize(self):
        InvalidIndexSetState.assert_true(self.state is IndexSetState.RESIZE, "Index set is not resizing")
        pairs = sorted(self.pairs + self._added, key=lambda p: p.global_index)
        for a, b in zip(pairs, pairs[1:]):
            if a.global_index == b.global_index:
                raise InvalidIndexSetState(f"Global index {a.global_index} added twice")
        self.pairs = pairs
        self._added = []
        self.state = IndexSetState.GROUND

    def find(self, global_index: int) -> Optional[IndexPair]:
        for p in self.pairs:
            if p.global_index == global_index:
                return p
        return None

    def __len__(self):
        return len(self.pairs)

    def __iter__(self) -> Iterator[IndexPair]:
        return iter(self.pairs)


class RemoteIndices(object):
    """ Neighbour ranks of this process, plus the hook that rebuilds remote index information.
    `exchange`, if provided, is called with this object on `rebuild`. """

    def __init__(self, index_set: ParallelIndexSet, exchange: Optional[Callable[["RemoteIndices"], None]] = None):
        self.index_set = index_set
        self.exchange = exchange
        self.neighbours: Set[int] = set()
        self.built = False

    def set_neighbours(self, neighbours: Iterable[int]):
        self.neighbours = set(neighbours)
        self.built = False

    def get_neighbours(self) -> Set[int]:
        return self.neighbours

    def rebuild(self):
        if self.exchange is not None:
            self.exchange(self)
        self.built = True


class Communication(object):
    """ Data distribution info of one process: its rank, index set and remote indices """

    def __init__(self, rank: int = 0, exchange: Optional[Callable[[RemoteIndices], None]] = None):
        self.rank = rank
        self.index_set = ParallelIndexSet()
        self.remote_indices = RemoteIndices(self.index_set, exchange=exchange)


def rank_filename(basename: PathLike, rank: int, suffix: str) -> Path:
    return Path(f"{basename}_{rank}{suffix}")


def write_indices(comm: Communication, ostr: TextIO):
    for pair in comm.index_set:
        local = pair.local
        ostr.write(f"{pair.global_index} {local.local} {int(local.attribute)} {int(bool(local.public))}\n")
    # Neighbours allow setting up the remote indices without global communication
    ostr.write(NEIGHBOURS)
    for rank in sorted(comm.remote_indices.get_neighbours()):
        ostr.write(f" {rank}")
    ostr.write("\n")


def read_indices(comm: Communication, istr: TextIO):
    """ Load index pairs and neighbours into `comm`, whose index set must be empty,
    then rebuild its remote indices. Nothing is modified if the content is malformed. """
    if len(comm.index_set) != 0:
        raise MatrixMarketFormatError("Index set already populated")

    scanner = Scanner.from_stream(istr)
    pairs = []
    while True:
        token = scanner.token()
        if not token:
            raise MatrixMarketFormatError(f"Was expecting the string {NEIGHBOURS!r}")
        if token == NEIGHBOURS:
            break
        try:
            global_index = int(token)
        except ValueError as e:
            raise MatrixMarketFormatError(f"Expected global index or {NEIGHBOURS!r}, found {token!r}") from e
        local = scanner.read_int(f"local index of global index {global_index}")
        attribute = scanner.read_int(f"attribute of global index {global_index}")
        public = scanner.read_int(f"public flag of global index {global_index}")
        if public not in (0, 1):
            raise MatrixMarketFormatError(f"Public flag of global index {global_index} must be 0 or 1, not {public}")
        pairs.append((global_index, LocalIndex(local, attribute, bool(public))))

    neighbours = set()
    while True:
        token = scanner.token()
        if not token:
            break
        try:
            neighbours.add(int(token))
        except ValueError as e:
            raise MatrixMarketFormatError(f"Invalid neighbour rank {token!r}") from e

    pis = comm.index_set
    pis.begin_resize()
    for global_index, local in pairs:
        pis.add(global_index, local)
    pis.end_resize()

    comm.remote_indices.set_neighbours(neighbours)
    comm.remote_indices.rebuild()


def store_distributed(container, basename: PathLike, comm: Communication, store_indices: bool = True):
    """ Store this process's part of a distributed matrix or vector.
    Rank `r` writes `<basename>_<r>.mm`, and with `store_indices` also `<basename>_<r>.idx`. """
    filename = rank_filename(basename, comm.rank, MM_SUFFIX)
    logger.debug("Storing %s", filename)
    store_matrix_market(container, filename)

    if not store_indices:
        return

    with open(rank_filename(basename, comm.rank, IDX_SUFFIX), "w") as f:
        write_indices(comm, f)


def load_distributed(container, basename: PathLike, comm: Communication, load_indices: bool = True,
                     log: Optional[logging.Logger] = None):
    """ Load this process's part of a distributed matrix or vector, stored by `store_distributed`.
    With `load_indices`, also load the index set and neighbours into `comm` and rebuild its remote indices. """
    load_matrix_market(container, rank_filename(basename, comm.rank, MM_SUFFIX), log)

    if not load_indices:
        return

    with open(rank_filename(basename, comm.rank, IDX_SUFFIX)) as f:
        read_indices(comm, f)
