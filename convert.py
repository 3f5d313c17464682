"""
Convert a directory of MatrixMarket matrices to YAML entry lists
"""

import os
from pathlib import Path

from blockmarket import BlockSparseMatrix, MatrixMarketFormatError, load_matrix_market, peek_header
from blockmarket.header import dtype_for
from blockmarket.yaml import MatrixYaml


def convert_mm_to_yaml():
    """ Convert all *.mm files in $MM_DIR to YAML """
    results = []
    for path in sorted(Path(os.environ['MM_DIR']).glob("*.mm")):
        print(f"Reading {path}")
        res = dict(
            file=path.name,
            header=False,
            read=False,
            yaml=False,
        )
        results.append(res)

        try:
            header, dims = peek_header(path)
        except MatrixMarketFormatError as e:
            print(e)
            continue
        else:
            res['header'] = True

        try:
            m = BlockSparseMatrix(block_shape=header.blocked or (1, 1), dtype=dtype_for(header.ctype))
            load_matrix_market(m, path)
        except MatrixMarketFormatError as e:
            print(e)
            continue
        else:
            res['read'] = True

        y = MatrixYaml.from_matrix(m, desc=path.stem)
        y.dump(path.with_suffix(".yaml"))
        res['yaml'] = True

    # Print some summary info
    summary = 'File'.ljust(30)
    for k in ('header', 'read', 'yaml'):
        summary += k.ljust(8)
    summary += '\n'
    for r in results:
        s = r.pop('file').ljust(30)
        for k in r: s += str(r[k]).ljust(8)
        summary += s + '\n'
    print(summary)


if __name__ == '__main__':
    convert_mm_to_yaml()
