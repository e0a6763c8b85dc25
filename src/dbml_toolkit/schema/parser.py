"""Recursive-descent parser for the DBML subset."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterator, Sequence
from logging import getLogger

from dbml_toolkit.errors import (
    NoTablesDefinedError,
    SchemaValidationError,
    UnbalancedBracesError,
)
from dbml_toolkit.schema.tokenizer import Token, TokenKind, tokenize
from dbml_toolkit.schema.types import (
    Cardinality,
    Field,
    GroupMember,
    Ref,
    Schema,
    Table,
    TableGroup,
    unquote,
)

logger = getLogger(__name__)

# Reusable regex components
NAME = r'"[^"]+"|\w+'
ENDPOINT = rf"(?P<{{0}}_table>{NAME})\.(?P<{{0}}_field>{NAME})"
SETTINGS = r"(?:\s*\[[^\]]*\])?"

TABLE_HEADER = re.compile(
    rf'^Table\s+(?P<name>"[^"]+"|[\w.]+)(?:\s+as\s+\w+)?{SETTINGS}$',
    re.IGNORECASE,
)
GROUP_HEADER = re.compile(
    rf"^TableGroup\s+(?P<name>{NAME})"
    r"(?:\s*\[\s*color\s*:\s*(?P<color>#?\w+)\s*\])?$",
    re.IGNORECASE,
)
REF_LINE = re.compile(
    rf"^Ref(?:\s+\w+)?\s*:\s*{ENDPOINT.format('source')}"
    rf"\s*(?P<op>[<>-])\s*{ENDPOINT.format('target')}{SETTINGS}$",
    re.IGNORECASE,
)
NOTE_LINE = re.compile(r"^Note\s*:\s*(?P<value>.+)$", re.IGNORECASE | re.DOTALL)
FIELD_LINE = re.compile(
    rf"^(?P<name>{NAME})\s+(?P<type>[^\[]+?)\s*(?:\[(?P<constraints>.*)\])?$",
    re.DOTALL,
)
ESCAPE = re.compile(r"\\(.)", re.DOTALL)


def string_value(literal: str) -> str:
    """Return the content of a quoted string literal.

    Triple-quoted content is returned verbatim; single-line strings are
    unescaped. Unquoted text is returned stripped.
    """
    literal = literal.strip()
    if len(literal) >= 6 and literal.startswith("'''") and literal.endswith("'''"):  # noqa: PLR2004
        return literal[3:-3]
    if len(literal) >= 2 and literal[0] == literal[-1] and literal[0] in "\"'":  # noqa: PLR2004
        return ESCAPE.sub(r"\1", literal[1:-1])
    return literal


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on a separator that is not inside a quoted string."""
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    position = 0
    while position < len(text):
        char = text[position]
        if quote is None and text.startswith("'''", position):
            end = text.find("'''", position + 3)
            end = len(text) if end == -1 else end + 3
            current.append(text[position:end])
            position = end
            continue
        if quote is not None and char == "\\":
            current.append(text[position : position + 2])
            position += 2
            continue
        if char in "\"'":
            if quote is None:
                quote = char
            elif quote == char:
                quote = None
        if char == separator and quote is None:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        position += 1
    parts.append("".join(current).strip())
    return [part for part in parts if part]


def parse_field(text: str) -> Field | None:
    """Parse one field declaration line, extracting a ``Note:`` constraint."""
    match = FIELD_LINE.match(text)
    if not match or match["name"] == "Note":
        return None

    note: str | None = None
    constraints: list[str] = []
    for constraint in split_top_level(match["constraints"] or ""):
        if note_match := NOTE_LINE.match(constraint):
            note = string_value(note_match["value"])
        else:
            constraints.append(constraint)

    return Field(
        name=unquote(match["name"]),
        type=match["type"].strip(),
        note=note,
        constraints=tuple(constraints),
    )


def parse_ref(text: str) -> Ref | None:
    """Parse a standalone ``Ref:`` line."""
    if not (match := REF_LINE.match(text)):
        return None
    operator: Cardinality = match["op"]  # pyright: ignore[reportAssignmentType]
    return Ref(
        source_table=unquote(match["source_table"]),
        source_field=unquote(match["source_field"]),
        operator=operator,
        target_table=unquote(match["target_table"]),
        target_field=unquote(match["target_field"]),
    )


def validate_tokens(tokens: Sequence[Token]) -> None:
    """Reject token streams without tables or with unbalanced braces."""
    if not any(
        token.kind is TokenKind.TEXT and TABLE_HEADER.match(token.text)
        for token in tokens
    ):
        raise NoTablesDefinedError

    open_count = close_count = 0
    for token in tokens:
        if token.kind is TokenKind.OPEN:
            open_count += 1
        elif token.kind is TokenKind.CLOSE:
            close_count += 1
            if close_count > open_count:
                break
    else:
        if open_count == close_count:
            return

    raise UnbalancedBracesError(
        sum(token.kind is TokenKind.OPEN for token in tokens),
        sum(token.kind is TokenKind.CLOSE for token in tokens),
    )


def validate_text(text: str) -> tuple[Token, ...]:
    """Tokenize and validate schema text, returning the tokens."""
    tokens = tuple(tokenize(text))
    validate_tokens(tokens)
    return tokens


def validate_schema(schema: Schema) -> Schema:
    """Reject a schema whose table names are not unique."""
    counts = Counter(schema.table_names)
    if duplicates := [name for name, count in counts.items() if count > 1]:
        raise SchemaValidationError(duplicates)
    return schema


class _Parser:
    """Builds a Schema from a validated token stream."""

    def __init__(self, tokens: Sequence[Token]) -> None:
        self._tokens = tokens
        self._position = 0
        self._refs: list[Ref] = []

    def _next(self) -> Token | None:
        if self._position >= len(self._tokens):
            return None
        token = self._tokens[self._position]
        self._position += 1
        return token

    def _opens_block(self) -> bool:
        return (
            self._position < len(self._tokens)
            and self._tokens[self._position].kind is TokenKind.OPEN
        )

    def _block(self) -> Iterator[Token]:
        """Yield tokens up to the matching close brace, skipping nested blocks."""
        while (token := self._next()) is not None:
            if token.kind is TokenKind.CLOSE:
                return
            if token.kind is TokenKind.OPEN:
                self._skip_block()
                continue
            if self._opens_block():
                logger.debug(
                    "Skipping nested block on line %d: %s",
                    token.line,
                    token.text,
                )
                self._next()
                self._skip_block()
                continue
            yield token

    def _skip_block(self) -> None:
        for _ in self._block():
            pass

    def schema(self) -> Schema:
        tables: list[Table] = []
        groups: list[TableGroup] = []

        while (token := self._next()) is not None:
            if token.kind is TokenKind.OPEN:
                self._skip_block()
                continue
            if token.kind is TokenKind.CLOSE:
                continue
            if ref := parse_ref(token.text):
                self._refs.append(ref)
                continue
            if not self._opens_block():
                logger.debug("Ignoring line %d: %s", token.line, token.text)
                continue

            self._next()
            if match := TABLE_HEADER.match(token.text):
                tables.append(self._table(unquote(match["name"])))
            elif match := GROUP_HEADER.match(token.text):
                groups.append(self._group(unquote(match["name"]), match["color"]))
            else:
                logger.debug("Skipping unsupported block: %s", token.text)
                self._skip_block()

        return Schema(tables=tuple(tables), refs=tuple(self._refs), groups=tuple(groups))

    def _table(self, name: str) -> Table:
        fields: list[Field] = []
        note: str | None = None

        for token in self._block():
            if ref := parse_ref(token.text):
                self._refs.append(ref)
            elif note_match := NOTE_LINE.match(token.text):
                if note is None:
                    note = string_value(note_match["value"])
            elif field := parse_field(token.text):
                fields.append(field)
            else:
                logger.debug("Ignoring line %d in table %s", token.line, name)

        return Table(name=name, fields=tuple(fields), note=note)

    def _group(self, name: str, color: str | None) -> TableGroup:
        members: list[GroupMember] = []
        note: str | None = None

        for token in self._block():
            if note_match := NOTE_LINE.match(token.text):
                note = string_value(note_match["value"])
                continue
            names = [unquote(part) for part in split_top_level(token.text)]
            members.extend(GroupMember(table) for table in names[:-1])
            if names:
                members.append(GroupMember(names[-1], token.comment))

        return TableGroup(name=name, members=tuple(members), note=note, color=color)


def parse(text: str) -> Schema:
    """Parse schema text into a Schema.

    Raises NoTablesDefinedError when the text declares no table and
    UnbalancedBracesError when braces outside strings do not pair up. No
    partial Schema is ever returned.
    """
    tokens = validate_text(text)
    return _Parser(tokens).schema()
