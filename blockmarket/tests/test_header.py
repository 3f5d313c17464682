import logging

import pytest
import numpy as np

from ..errors import BannerError, MatrixMarketFormatError, UnsupportedFeatureError
from ..header import (MMHeader, StorageKind, ValueKind, StructureKind,
                      read_banner, read_header, calculate_nnz, check_value_kind, parse_blocked,
                      value_kind_for, dtype_for)
from ..scanner import Scanner


def test_read_banner():
    s = Scanner("%%MatrixMarket matrix coordinate real general\n4 4 3\n")
    h = read_banner(s)
    assert h.type is StorageKind.coordinate
    assert h.ctype is ValueKind.real
    assert h.structure is StructureKind.general
    assert s.token() == "4"


def test_read_banner_case_insensitive():
    h = read_banner(Scanner("%%MatrixMarket matrix COORDINATE Integer Symmetric\n"))
    assert h.type is StorageKind.coordinate
    assert h.ctype is ValueKind.integer
    assert h.structure is StructureKind.symmetric


@pytest.mark.parametrize("tokens, expected", [
    ("array real general", (StorageKind.array, ValueKind.real, StructureKind.general)),
    ("coordinate complex hermitian", (StorageKind.coordinate, ValueKind.complex, StructureKind.hermitian)),
    ("coordinate pattern skew-symmetric", (StorageKind.coordinate, ValueKind.pattern, StructureKind.skew_symmetric)),
])
def test_read_banner_fields(tokens, expected):
    h = read_banner(Scanner(f"%%MatrixMarket matrix {tokens}\n"))
    assert (h.type, h.ctype, h.structure) == expected


@pytest.mark.parametrize("line", [
    "%%MatrixMarket matrix grid real general",
    "%%MatrixMarket matrix coordinate rational general",
    "%%MatrixMarket matrix coordinate real sy",
    "%%MatrixMarket matrix coordinate real s",
    "%%MatrixMarket matrix coordinate real skew",
    "%%MatrixMarket vector coordinate real general",
    "%%MatrixMarket matrix coordinate real",
    "%%MatrixMarket matrix coordinate real general extra",
    "%%MatrixMarket",
    "%MatrixMarket matrix coordinate real general",
    "4 4 3",
])
def test_read_banner_invalid(line):
    with pytest.raises(BannerError):
        read_banner(Scanner(line + "\n1 1 1\n"))


def test_banner_error_is_format_error():
    assert issubclass(BannerError, MatrixMarketFormatError)


def test_read_header():
    s = Scanner("%%MatrixMarket matrix coordinate integer general\n% a comment\n4 5 6\n1 1 1\n")
    h, dims = read_header(s, is_vector=False)
    assert h.ctype is ValueKind.integer
    assert (dims.rows, dims.cols, dims.entries) == (4, 5, 6)
    assert h.blocked is None
    assert s.token() == "1"


def test_read_header_without_banner():
    s = Scanner("4 4 3\n1 1 2.0\n")
    h, dims = read_header(s, is_vector=False)
    assert h == MMHeader(StorageKind.coordinate, ValueKind.real, StructureKind.general)
    assert (dims.rows, dims.cols, dims.entries) == (4, 4, 3)
    assert s.token() == "1"


def test_read_vector_header_without_banner():
    s = Scanner("% only a comment\n3 1\n1.0\n")
    h, dims = read_header(s, is_vector=True)
    assert h == MMHeader(StorageKind.array, ValueKind.real, StructureKind.general)
    assert (dims.rows, dims.cols, dims.entries) == (3, 1, None)
    assert s.token() == "1.0"


def test_read_header_malformed_banner_rewinds(caplog):
    # Fails on the last banner field, mid-line. Parsing must restart from the top.
    s = Scanner("%%MatrixMarket matrix coordinate real gen\n2 2 1\n1 2 3.0\n")
    with caplog.at_level(logging.INFO, logger="blockmarket.header"):
        h, dims = read_header(s, is_vector=False)
    assert "Using default" in caplog.text
    assert h.structure is StructureKind.general
    assert (dims.rows, dims.cols, dims.entries) == (2, 2, 1)
    assert s.token() == "1"


def test_read_header_injected_log():
    class Recorder(object):
        def __init__(self):
            self.records = []

        def debug(self, msg, *args):
            self.records.append(("debug", msg % args))

        def info(self, msg, *args):
            self.records.append(("info", msg % args))

    log = Recorder()
    read_header(Scanner("%%MatrixMarket matrix grid real general\n2 1\n"), is_vector=True, log=log)
    assert [level for level, _ in log.records] == ["info"]

    log = Recorder()
    read_header(Scanner("%%MatrixMarket matrix array real general\n2 1\n"), is_vector=True, log=log)
    assert log.records == [("debug", "Read banner: %%MatrixMarket matrix array real general")]


def test_read_header_blocked():
    s = Scanner("%%MatrixMarket matrix coordinate real general\n% blocked 2 3\n% other\n4 6 24\n")
    h, dims = read_header(s, is_vector=False)
    assert h.blocked == (2, 3)
    assert dims.entries == 24


def test_parse_blocked():
    assert parse_blocked("% blocked 2 3") == (2, 3)
    assert parse_blocked("% ISTL_STRUCT blocked 4 1") == (4, 1)
    assert parse_blocked("% blocked") is None
    assert parse_blocked("% some other comment") is None


def test_read_header_missing_cols():
    s = Scanner("%%MatrixMarket matrix coordinate real general\n4\n4 3\n")
    with pytest.raises(MatrixMarketFormatError):
        read_header(s, is_vector=False)


def test_read_header_missing_entries():
    s = Scanner("4 4\n3\n")
    with pytest.raises(MatrixMarketFormatError):
        read_header(s, is_vector=False)


def test_read_header_array_matrix():
    s = Scanner("%%MatrixMarket matrix array real general\n2 2\n1.0\n")
    h, dims = read_header(s, is_vector=False)
    assert h.type is StorageKind.array
    assert dims.entries is None


def test_calculate_nnz():
    assert calculate_nnz(4, 4, 6, (1, 1), StructureKind.general) == (4, 4, 6)
    assert calculate_nnz(4, 4, 6, (1, 1), StructureKind.symmetric) == (4, 4, 8)
    assert calculate_nnz(4, 4, 6, (1, 1), StructureKind.hermitian) == (4, 4, 8)
    assert calculate_nnz(4, 4, 6, (1, 1), StructureKind.skew_symmetric) == (4, 4, 12)
    assert calculate_nnz(4, 6, 24, (2, 3), StructureKind.general) == (2, 2, 4)


def test_calculate_nnz_not_divisible():
    with pytest.raises(MatrixMarketFormatError):
        calculate_nnz(5, 4, 6, (2, 2), StructureKind.general)
    with pytest.raises(MatrixMarketFormatError):
        calculate_nnz(4, 5, 6, (2, 2), StructureKind.general)


def test_calculate_nnz_unknown_structure():
    with pytest.raises(UnsupportedFeatureError):
        calculate_nnz(4, 4, 6, (1, 1), "diagonal")


def test_value_kind_for():
    assert value_kind_for(np.int32) is ValueKind.integer
    assert value_kind_for(np.float32) is ValueKind.real
    assert value_kind_for(np.complex64) is ValueKind.complex
    assert value_kind_for(None) is ValueKind.pattern
    with pytest.raises(TypeError):
        value_kind_for(np.bool_)
    with pytest.raises(TypeError):
        value_kind_for("U3")


def test_dtype_for():
    for kind in ValueKind:
        assert value_kind_for(dtype_for(kind)) is kind


@pytest.mark.parametrize("file_kind, container_kind", [
    (ValueKind.integer, ValueKind.integer),
    (ValueKind.integer, ValueKind.real),
    (ValueKind.integer, ValueKind.complex),
    (ValueKind.real, ValueKind.real),
    (ValueKind.real, ValueKind.complex),
    (ValueKind.complex, ValueKind.complex),
    (ValueKind.pattern, ValueKind.integer),
    (ValueKind.real, ValueKind.pattern),
])
def test_check_value_kind(file_kind, container_kind):
    check_value_kind(file_kind, container_kind)


@pytest.mark.parametrize("file_kind, container_kind", [
    (ValueKind.real, ValueKind.integer),
    (ValueKind.complex, ValueKind.integer),
    (ValueKind.complex, ValueKind.real),
])
def test_check_value_kind_lossy(file_kind, container_kind):
    with pytest.raises(MatrixMarketFormatError):
        check_value_kind(file_kind, container_kind)
