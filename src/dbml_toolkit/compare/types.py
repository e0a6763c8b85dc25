"""Type definitions for schema comparison."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from dbml_toolkit.schema.types import Field

type Section = Literal["new_tables", "new_fields"]

SECTIONS: tuple[Section, ...] = ("new_tables", "new_fields")


@dataclass
class ChangeSet:
    """Pending additions not yet committed into a base schema.

    ``new_tables`` holds tables absent from the base; ``new_fields`` holds
    fields added to tables the base already has. Both keep insertion order.
    """

    new_tables: dict[str, list[Field]] = field(default_factory=dict)
    new_fields: dict[str, list[Field]] = field(default_factory=dict)
    table_descriptions: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """True when neither section holds a table."""
        return not self.new_tables and not self.new_fields

    def section(self, name: Section) -> dict[str, list[Field]]:
        """Get one section by name."""
        match name:
            case "new_tables":
                return self.new_tables
            case "new_fields":
                return self.new_fields

    def section_of(self, table: str) -> Section | None:
        """Name of the section holding a table, new tables first."""
        return next((name for name in SECTIONS if table in self.section(name)), None)

    @property
    def table_names(self) -> tuple[str, ...]:
        """Tables in both sections, new tables first."""
        return (
            *self.new_tables,
            *(name for name in self.new_fields if name not in self.new_tables),
        )

    def copy(self) -> ChangeSet:
        """Copy deep enough that edits to the copy never touch this ChangeSet."""
        return ChangeSet(
            new_tables={name: list(fields) for name, fields in self.new_tables.items()},
            new_fields={name: list(fields) for name, fields in self.new_fields.items()},
            table_descriptions=dict(self.table_descriptions),
        )
