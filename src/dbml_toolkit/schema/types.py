"""Typed values for parsed schema descriptions."""

from __future__ import annotations

import re
from typing import Literal, NamedTuple

type Cardinality = Literal[">", "<", "-"]

# Inline relationship constraint: ref: > table.field
INLINE_REF = re.compile(
    r'^ref\s*:\s*(?P<op>[<>-])\s*(?P<table>"[^"]+"|\w+)\.(?P<field>"[^"]+"|\w+)$',
    re.IGNORECASE,
)


def unquote(name: str) -> str:
    """Strip one pair of surrounding double quotes."""
    if len(name) >= 2 and name[0] == name[-1] == '"':  # noqa: PLR2004
        return name[1:-1]
    return name


class Field(NamedTuple):
    """A field declaration inside a table."""

    name: str
    type: str
    note: str | None = None
    constraints: tuple[str, ...] = ()

    @property
    def ref_target(self) -> str | None:
        """Table named by an inline ref constraint, if the field carries one."""
        for constraint in self.constraints:
            if match := INLINE_REF.match(constraint.strip()):
                return unquote(match["table"])
        return None

    @property
    def is_blank(self) -> bool:
        """A field missing either its name or its type cannot be emitted."""
        return not self.name.strip() or not self.type.strip()


class Table(NamedTuple):
    """A table block with its fields in declaration order."""

    name: str
    fields: tuple[Field, ...] = ()
    note: str | None = None

    @property
    def field_names(self) -> frozenset[str]:
        """Names of all fields, the identity used for diffing."""
        return frozenset(field.name for field in self.fields)

    def has_field(self, name: str) -> bool:
        """Check whether a field with the given name is declared."""
        return any(field.name == name for field in self.fields)


class Ref(NamedTuple):
    """A standalone relationship statement."""

    source_table: str
    source_field: str
    operator: Cardinality
    target_table: str
    target_field: str


class GroupMember(NamedTuple):
    """A table listed in a TableGroup with its optional inline comment."""

    table: str
    comment: str | None = None


class TableGroup(NamedTuple):
    """A named, colored, presentation-only cluster of tables."""

    name: str
    members: tuple[GroupMember, ...] = ()
    note: str | None = None
    color: str | None = None

    @property
    def tables(self) -> tuple[str, ...]:
        """Member table names in listed order."""
        return tuple(member.table for member in self.members)


class Schema(NamedTuple):
    """Root value for a complete schema description."""

    tables: tuple[Table, ...] = ()
    refs: tuple[Ref, ...] = ()
    groups: tuple[TableGroup, ...] = ()

    @property
    def table_names(self) -> tuple[str, ...]:
        """Table names in declaration order."""
        return tuple(table.name for table in self.tables)

    def table(self, name: str) -> Table | None:
        """Get the first table with the given name."""
        return next((table for table in self.tables if table.name == name), None)

    def has_table(self, name: str) -> bool:
        """Check whether a table with the given name is declared."""
        return self.table(name) is not None
