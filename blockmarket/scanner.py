"""
Line & Token Scanning

A cursor over the full text of a MatrixMarket (or index) file.
Tokens are whitespace-separated; line boundaries matter only in the header.
"""

import re
from typing import List, TextIO

from .errors import MatrixMarketFormatError

COMMENT = "%"
# Characters skipped while looking for a line boundary
SPACES = " \t\r"

_TOKEN = re.compile(r"\s*(\S*)")


class Scanner(object):
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    @classmethod
    def from_stream(cls, stream: TextIO) -> "Scanner":
        return cls(stream.read())

    @property
    def eof(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        """ Next character, or the empty string at end of input """
        if self.eof: return ""
        return self.text[self.pos]

    def rewind(self):
        self.pos = 0

    def _skip_spaces(self, pos: int) -> int:
        while pos < len(self.text) and self.text[pos] in SPACES:
            pos += 1
        return pos

    def line_feed(self) -> bool:
        """ Skip spaces, tabs and carriage returns (so CRLF files read like LF ones).
        If a line terminator follows, consume it and return True.
        Returns False, leaving any non-terminator character in place, otherwise. """
        self.pos = self._skip_spaces(self.pos)
        if self.peek() == "\n":
            self.pos += 1
            return True
        return False

    def ignore_line(self) -> str:
        """ Discard (and return) the remainder of the current line, including its terminator. """
        end = self.text.find("\n", self.pos)
        if end < 0:
            rest, self.pos = self.text[self.pos:], len(self.text)
        else:
            rest, self.pos = self.text[self.pos:end], end + 1
        return rest

    def skip_comments(self) -> List[str]:
        """ Consume a pending line boundary, then any blank or comment lines.
        Leaves the cursor at the first substantive character.
        Returns the skipped comment lines. """
        comments = []
        self.line_feed()
        while not self.eof:
            pos = self._skip_spaces(self.pos)
            if pos >= len(self.text):
                self.pos = pos
                break
            c = self.text[pos]
            if c == "\n":
                self.pos = pos + 1
            elif c == COMMENT:
                self.pos = pos
                comments.append(self.ignore_line())
            else:
                self.pos = pos
                break
        return comments

    def token(self) -> str:
        """ Next whitespace-delimited token, crossing lines. Empty string at end of input. """
        m = _TOKEN.match(self.text, self.pos)
        self.pos = m.end()
        return m.group(1)

    def read_int(self, what: str) -> int:
        token = self.token()
        if not token:
            raise MatrixMarketFormatError(f"Expected {what}, found end of file")
        try:
            return int(token)
        except ValueError as e:
            raise MatrixMarketFormatError(f"Expected {what}, found {token!r}") from e

    def read_float(self, what: str) -> float:
        token = self.token()
        if not token:
            raise MatrixMarketFormatError(f"Expected {what}, found end of file")
        try:
            return float(token)
        except ValueError as e:
            raise MatrixMarketFormatError(f"Expected {what}, found {token!r}") from e
