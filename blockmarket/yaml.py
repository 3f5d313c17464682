"""
Support for storing array-of-entries form matrices to YAML
"""

from pathlib import Path
from typing import List, Optional, Tuple

import ruamel.yaml

from .entries import PATTERN, IndexedValue, Numeric, RowEntries, assemble
from .errors import MatrixDimError
from .header import ValueKind, dtype_for
from .matrix import BlockSparseMatrix

yaml = ruamel.yaml.YAML()


@yaml.register_class
class MatrixYaml(object):
    def __init__(self):
        self.desc: str = ""
        self.rows: int = 0
        self.cols: int = 0
        self.block_shape: Tuple[int, int] = (1, 1)
        self.ntype: str = "real"
        self.entries: List[list] = []

    @classmethod
    def from_matrix(cls, m: BlockSparseMatrix, desc: str = ""):
        if not isinstance(m, BlockSparseMatrix):
            raise TypeError(m)

        self = MatrixYaml()
        self.desc = desc
        self.rows, self.cols = m.shape
        self.block_shape = m.block_shape
        self.ntype = m.value_kind.value
        br, bc = m.block_shape
        for r, c, block in m.items():
            for i in range(br):
                for j in range(bc):
                    e = [r * br + i, c * bc + j]
                    if block is not None:
                        e.append(self._to_yaml_value(block[i, j], m.value_kind))
                    self.entries.append(e)
        return self

    @staticmethod
    def _to_yaml_value(v, kind: ValueKind):
        if kind is ValueKind.integer: return int(v)
        if kind is ValueKind.complex: return [float(v.real), float(v.imag)]
        return float(v)

    @staticmethod
    def _from_yaml_value(v, kind: ValueKind):
        if kind is ValueKind.complex: return complex(float(v[0]), float(v[1]))
        if kind is ValueKind.integer: return int(v)
        return float(v)

    def to_dict(self):
        return dict(
            desc=self.desc,
            rows=self.rows,
            cols=self.cols,
            block_shape=list(self.block_shape),
            ntype=self.ntype,
            entries=self.entries,
        )

    @classmethod
    def to_yaml(cls, representer, node):
        d = node.to_dict()
        return representer.represent_dict(d)

    @classmethod
    def from_dict(cls, d: dict):
        self = cls()
        self.desc = d['desc']
        self.rows = d['rows']
        self.cols = d['cols']
        self.block_shape = tuple(d['block_shape'])
        self.ntype = d['ntype']
        self.entries = d['entries']
        return self

    def to_mat(self, block_shape: Optional[Tuple[int, int]] = None) -> BlockSparseMatrix:
        """ Assemble into a block sparse matrix, by default of our stored block shape """
        kind = ValueKind(self.ntype)
        m = BlockSparseMatrix(block_shape=block_shape or self.block_shape, dtype=dtype_for(kind))
        br, bc = m.block_shape
        MatrixDimError.assert_true(self.rows % br == 0 and self.cols % bc == 0,
                                   f"{self.rows}x{self.cols} is not divisible into {m.block_shape} blocks")
        m.set_size(self.rows // br, self.cols // bc)

        rows = [RowEntries() for _ in range(self.rows)]
        for e in self.entries:
            MatrixDimError.assert_true(0 <= e[0] < self.rows and 0 <= e[1] < self.cols,
                                       f"Entry {e} is outside {self.rows}x{self.cols}")
            slot = PATTERN if kind is ValueKind.pattern else Numeric(self._from_yaml_value(e[2], kind))
            rows[e[0]].insert(IndexedValue(e[1], slot))
        assemble(m, rows)
        return m

    def dump(self, file):
        p = Path(file)
        yaml.dump([self], p)

    @classmethod
    def load(cls, file):
        p = Path(file)
        y = yaml.load(p)[0]
        d = dict(
            desc=str(y['desc']),
            rows=int(y['rows']),
            cols=int(y['cols']),
            block_shape=[int(x) for x in y['block_shape']],
            ntype=str(y['ntype']),
            entries=[list(e) for e in y['entries']],
        )
        return cls.from_dict(d)
