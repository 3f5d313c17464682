"""
Exception Types
"""


class MatrixError(Exception):
    @classmethod
    def assert_true(cls, cond, msg: str = ""):
        if not cond:
            raise cls(msg)

    @classmethod
    def assert_eq(cls, x, y, msg: str = ""):
        if x != y:
            raise cls(msg or f"{x} != {y}")

    @classmethod
    def assert_is(cls, x, y, msg: str = ""):
        if x is not y:
            raise cls(msg)


class MatrixDimError(MatrixError): pass


class InvalidIndexSetState(MatrixError): pass


class MatrixMarketFormatError(MatrixError):
    """ Malformed or inconsistent MatrixMarket content """
    pass


class BannerError(MatrixMarketFormatError):
    """ The first line is not a valid `%%MatrixMarket` banner.
    The only recoverable format error: readers fall back to a default header. """
    pass


class UnsupportedFeatureError(MatrixMarketFormatError, NotImplementedError):
    """ Valid MatrixMarket content we do not (yet) know how to load """
    pass
