"""Structural comparison of two parsed schemas."""

from collections.abc import Iterable
from logging import getLogger

from dbml_toolkit.compare.types import ChangeSet
from dbml_toolkit.schema.types import Field, Schema, Table

logger = getLogger(__name__)


def first_tables(schema: Schema) -> dict[str, Table]:
    """Tables by name; the first declaration of a repeated name wins."""
    tables: dict[str, Table] = {}
    for table in schema.tables:
        if table.name in tables:
            logger.debug("Ignoring repeated declaration of table %s", table.name)
            continue
        tables[table.name] = table
    return tables


def unique_fields(fields: Iterable[Field]) -> list[Field]:
    """Drop repeated field names, keeping the first declaration."""
    seen: set[str] = set()
    kept: list[Field] = []
    for field in fields:
        if field.name not in seen:
            seen.add(field.name)
            kept.append(field)
    return kept


def added_fields(base: Table, proposed: Table) -> list[Field]:
    """Fields of the proposed table whose names the base table lacks.

    Type and constraint changes on an existing name are never additions.
    """
    existing = base.field_names
    return unique_fields(field for field in proposed.fields if field.name not in existing)


def diff(base: Schema, proposed: Schema) -> ChangeSet:
    """Compare a base schema with a proposed one.

    Tables absent from the base land in ``new_tables`` with all their
    fields. Tables present in both land in ``new_fields`` with only the
    added fields, and only when something was added. Table notes are
    carried into ``table_descriptions``. Entries follow the proposed
    schema's declaration order.
    """
    changes = ChangeSet()
    base_tables = first_tables(base)

    for name, table in first_tables(proposed).items():
        if (original := base_tables.get(name)) is None:
            changes.new_tables[name] = unique_fields(table.fields)
        elif added := added_fields(original, table):
            changes.new_fields[name] = added
        else:
            continue

        if table.note:
            changes.table_descriptions[name] = table.note

    logger.debug(
        "Found %d new tables and %d modified tables",
        len(changes.new_tables),
        len(changes.new_fields),
    )
    return changes
