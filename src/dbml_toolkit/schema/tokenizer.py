"""Quote-aware scanner splitting schema text into logical lines and braces."""

from collections.abc import Iterator
from enum import StrEnum, auto
from typing import NamedTuple

TRIPLE_QUOTE = "'''"
LINE_QUOTES = frozenset("\"'")


class TokenKind(StrEnum):
    """Kinds of tokens produced by the scanner."""

    TEXT = auto()
    OPEN = auto()
    CLOSE = auto()


class Token(NamedTuple):
    """A logical line of text, or a block brace outside any string."""

    kind: TokenKind
    text: str
    comment: str | None = None
    line: int = 1


class _Scanner:
    """Single pass over the text tracking quotes, comments and line numbers."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.position = 0
        self.line = 1
        self.start_line = 1
        self.buffer: list[str] = []
        self.comment: str | None = None

    def flush(self) -> Iterator[Token]:
        if text := "".join(self.buffer).strip():
            yield Token(TokenKind.TEXT, text, self.comment, self.start_line)
        self.buffer.clear()
        self.comment = None
        self.start_line = self.line

    def read_string(self, quote: str) -> None:
        """Copy a quoted string into the buffer, braces and slashes included."""
        text = self.text
        self.buffer.append(quote)
        self.position += len(quote)
        while self.position < len(text):
            char = text[self.position]
            if quote == TRIPLE_QUOTE:
                if text.startswith(TRIPLE_QUOTE, self.position):
                    self.buffer.append(TRIPLE_QUOTE)
                    self.position += len(TRIPLE_QUOTE)
                    return
                if char == "\n":
                    self.line += 1
            elif char == "\n":
                # Single-line strings never swallow the next line
                return
            elif char == "\\" and self.position + 1 < len(text):
                self.buffer.append(text[self.position : self.position + 2])
                self.position += 2
                continue
            elif char == quote:
                self.buffer.append(char)
                self.position += 1
                return
            self.buffer.append(char)
            self.position += 1

    def read_comment(self) -> None:
        end = self.text.find("\n", self.position)
        if end == -1:
            end = len(self.text)
        self.comment = self.text[self.position + 2 : end].strip() or None
        self.position = end

    def tokens(self) -> Iterator[Token]:
        text = self.text
        while self.position < len(text):
            char = text[self.position]
            if text.startswith(TRIPLE_QUOTE, self.position):
                self.read_string(TRIPLE_QUOTE)
            elif char in LINE_QUOTES:
                self.read_string(char)
            elif text.startswith("//", self.position):
                self.read_comment()
            elif char in "{}":
                yield from self.flush()
                kind = TokenKind.OPEN if char == "{" else TokenKind.CLOSE
                yield Token(kind, char, line=self.line)
                self.position += 1
            elif char == "\n":
                yield from self.flush()
                self.line += 1
                self.start_line = self.line
                self.position += 1
            else:
                self.buffer.append(char)
                self.position += 1
        yield from self.flush()


def tokenize(text: str) -> Iterator[Token]:
    """Split schema text into TEXT lines and OPEN/CLOSE braces.

    Braces, commas and slashes inside quoted strings belong to the string.
    A trailing ``// comment`` is attached to the line it ends. Braces split
    lines, so ``Table t { id unique`` yields a TEXT, an OPEN and a TEXT.
    """
    return _Scanner(text).tokens()
