"""Editing session over a ChangeSet: renames, additions and deletions."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import Literal

from dbml_toolkit.compare.main import diff
from dbml_toolkit.compare.types import ChangeSet, Section
from dbml_toolkit.config import CONVENTIONS
from dbml_toolkit.errors import DuplicateTableNameError, UnknownTableError
from dbml_toolkit.merge.main import MergeResult, TableOrder, merge_schemas
from dbml_toolkit.schema.parser import parse
from dbml_toolkit.schema.text import clean_generated_text
from dbml_toolkit.schema.types import Field, Schema
from dbml_toolkit.typemap.canonical import PrimitiveType

logger = getLogger(__name__)

type FieldProperty = Literal["name", "type", "description"]


@dataclass
class EditSession:
    """Everything one editing cycle needs, threaded through every operation.

    ``changes`` starts as the diff between ``base`` and ``generated`` and is
    then edited in place. ``rename_map`` maps every earlier table name to its
    current one. The order lists fix the display and merge order of the two
    ChangeSet sections.
    """

    base: Schema
    generated: Schema
    changes: ChangeSet = field(default_factory=ChangeSet)
    rename_map: dict[str, str] = field(default_factory=dict)
    new_table_order: list[str] = field(default_factory=list)
    new_field_order: list[str] = field(default_factory=list)

    @classmethod
    def start(cls, base: Schema, generated: Schema) -> EditSession:
        """Open a session on the differences between two schemas."""
        changes = diff(base, generated)
        return cls(
            base=base,
            generated=generated,
            changes=changes,
            new_table_order=list(changes.new_tables),
            new_field_order=list(changes.new_fields),
        )

    @classmethod
    def from_text(cls, base_text: str, generated_text: str) -> EditSession:
        """Parse both texts, cleaning up the generated one first."""
        return cls.start(parse(base_text), parse(clean_generated_text(generated_text)))

    def order(self, section: Section) -> list[str]:
        """The order list for one ChangeSet section."""
        return self.new_table_order if section == "new_tables" else self.new_field_order

    def table_order(self) -> TableOrder:
        return TableOrder(tuple(self.new_table_order), tuple(self.new_field_order))

    def base_table_names(self) -> frozenset[str]:
        """Base table names as they will be emitted, renames applied."""
        names = self.base.table_names
        return frozenset(self.rename_map.get(name, name) for name in names)

    def live_table_names(self) -> frozenset[str]:
        """Every table name a merge could emit right now."""
        return self.base_table_names() | frozenset(self.changes.table_names)

    def taken_names(self, renaming: str | None = None) -> frozenset[str]:
        """Names a new or renamed table cannot take.

        Names given up by a rename stay taken, since the rename map still
        routes them to the renamed table; only that table may take its old
        name back.
        """
        released = frozenset(
            old for old, new in self.rename_map.items() if new != renaming
        )
        return self.live_table_names() | released

    def snapshot(self) -> EditSession:
        """Copy that later edits to this session never touch."""
        return EditSession(
            base=self.base,
            generated=self.generated,
            changes=self.changes.copy(),
            rename_map=dict(self.rename_map),
            new_table_order=list(self.new_table_order),
            new_field_order=list(self.new_field_order),
        )

    def _section_of(self, table: str, section: Section | None) -> Section:
        if section is None:
            section = self.changes.section_of(table)
        if section is None or table not in self.changes.section(section):
            raise UnknownTableError(table)
        return section

    def _fields(self, table: str, section: Section | None) -> list[Field]:
        return self.changes.section(self._section_of(table, section))[table]

    def _drop(self, table: str, section: Section) -> None:
        del self.changes.section(section)[table]
        order = self.order(section)
        order[:] = [name for name in order if name != table]
        self.changes.table_descriptions.pop(table, None)

    def rename_table(self, old: str, new: str, section: Section | None = None) -> None:
        """Rename a table, keeping its position, description and references.

        Base tables outside the ChangeSet can be renamed too; the rename map
        alone carries them. A name already in use raises
        DuplicateTableNameError and leaves the session unchanged.
        """
        new = new.strip()
        if not new:
            msg = "Table name must not be empty"
            raise ValueError(msg)
        if new == old:
            return

        in_changes = section is not None or self.changes.section_of(old) is not None
        if not in_changes and old not in self.base_table_names():
            raise UnknownTableError(old)
        if new in self.taken_names(renaming=old):
            raise DuplicateTableNameError(new)

        if in_changes:
            section = self._section_of(old, section)
            entries = self.changes.section(section)
            renamed = {
                new if name == old else name: fields for name, fields in entries.items()
            }
            entries.clear()
            entries.update(renamed)

            order = self.order(section)
            if not order:
                order.extend(name for name in entries if name != new)
            order[:] = [new if name == old else name for name in order]
            if new not in order:
                order.append(new)

        descriptions = self.changes.table_descriptions
        if old in descriptions:
            descriptions[new] = descriptions.pop(old)

        for previous, current in list(self.rename_map.items()):
            if current == old:
                self.rename_map[previous] = new
        self.rename_map[old] = new
        for previous, current in list(self.rename_map.items()):
            if previous == current:
                del self.rename_map[previous]

        logger.debug("Renamed table %s to %s", old, new)

    def add_table(self, name: str | None = None) -> str:
        """Add a new table seeded with an identifier field; returns its name.

        Without a name the first free placeholder is used: ``new_table``,
        then ``new_table_1``, ``new_table_2`` and so on.
        """
        placeholders = CONVENTIONS["placeholders"]
        live = self.taken_names()

        if name is None:
            name = placeholders["table"]
            counter = 1
            while name in live:
                name = f"{placeholders['table']}_{counter}"
                counter += 1
        else:
            name = name.strip()
            if not name:
                msg = "Table name must not be empty"
                raise ValueError(msg)
            if name in live:
                raise DuplicateTableNameError(name)

        identifier = Field(
            name=CONVENTIONS["identifiers"]["sentinel"],
            type=PrimitiveType.UNIQUE.value,
            note=placeholders["table_note"],
        )
        self.changes.new_tables[name] = [identifier]
        self.new_table_order.append(name)
        logger.debug("Added table %s", name)
        return name

    def delete_table(self, name: str, section: Section | None = None) -> None:
        """Remove a table from the ChangeSet and from its order list."""
        self._drop(name, self._section_of(name, section))
        logger.debug("Deleted table %s", name)

    def add_field(self, table: str, section: Section | None = None) -> int:
        """Append a placeholder field; returns its index."""
        placeholders = CONVENTIONS["placeholders"]
        fields = self._fields(table, section)
        fields.append(Field(name=placeholders["field"], type=placeholders["field_type"]))
        logger.debug("Added field to %s", table)
        return len(fields) - 1

    def edit_field(
        self,
        table: str,
        index: int,
        prop: FieldProperty,
        value: str,
        section: Section | None = None,
    ) -> None:
        """Update one field's name, type or description in place.

        An empty description clears the note. Out-of-range indexes raise
        IndexError.
        """
        fields = self._fields(table, section)
        current = fields[index]
        match prop:
            case "name":
                fields[index] = current._replace(name=value)
            case "type":
                fields[index] = current._replace(type=value)
            case "description":
                fields[index] = current._replace(note=value or None)
        logger.debug("Set %s of %s[%d]", prop, table, index)

    def delete_field(
        self,
        table: str,
        index: int,
        section: Section | None = None,
    ) -> None:
        """Remove one field; a table left without fields leaves the ChangeSet."""
        section = self._section_of(table, section)
        fields = self.changes.section(section)[table]
        del fields[index]
        if not fields:
            logger.debug("Removing emptied table %s", table)
            self._drop(table, section)

    def merge_result(self) -> MergeResult:
        """Merge the current edits without changing the session."""
        return merge_schemas(
            self.base,
            self.generated,
            self.changes,
            self.rename_map,
            order=self.table_order(),
        )

    def merge(self) -> str:
        """Merged schema text for the current edits."""
        return self.merge_result().text

    def apply(self) -> Schema:
        """Commit the merge as the new base and start over with no pending changes."""
        schema = self.merge_result().schema
        self.base = self.generated = schema
        self.changes = ChangeSet()
        self.rename_map.clear()
        self.new_table_order.clear()
        self.new_field_order.clear()
        logger.debug("Applied changes; %d tables in base", len(schema.tables))
        return schema
