"""Emit schema values back to DBML-subset text."""

import re
from collections.abc import Iterable
from typing import Any

from dbml_toolkit.schema.types import Field, Ref, Schema, Table, TableGroup

BARE_NAME = re.compile(r"\w+")
INDENT = "  "


def quote_name(name: str) -> str:
    """Quote a table or field name unless it is a bare identifier."""
    return name if BARE_NAME.fullmatch(name) else f'"{name}"'


def string_literal(value: str) -> str:
    """Render a note value, switching to triple quotes for multi-line text."""
    if "\n" in value:
        return f"'''{value}'''"
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def field_to_text(field: Field) -> str:
    """Render one field declaration without indentation."""
    constraints = list(field.constraints)
    if field.note is not None:
        constraints.append(f"Note: {string_literal(field.note)}")
    text = f"{quote_name(field.name)} {field.type}"
    if constraints:
        text += f" [{', '.join(constraints)}]"
    return text


def table_to_text(table: Table) -> str:
    """Render a table block."""
    lines = [f"Table {quote_name(table.name)} {{"]
    if table.note is not None:
        lines.append(f"{INDENT}Note: {string_literal(table.note)}")
    lines.extend(f"{INDENT}{field_to_text(field)}" for field in table.fields)
    lines.append("}")
    return "\n".join(lines)


def ref_to_text(ref: Ref) -> str:
    """Render a standalone relationship line."""
    source = f"{quote_name(ref.source_table)}.{quote_name(ref.source_field)}"
    target = f"{quote_name(ref.target_table)}.{quote_name(ref.target_field)}"
    return f"Ref: {source} {ref.operator} {target}"


def group_to_text(group: TableGroup) -> str:
    """Render a TableGroup block; the note is written verbatim."""
    header = f'TableGroup "{group.name}"'
    if group.color:
        header += f" [color: {group.color}]"
    lines = [f"{header} {{"]
    for member in group.members:
        line = f"{INDENT}{quote_name(member.table)}"
        if member.comment:
            line += f" // {member.comment}"
        lines.append(line)
    if group.note is not None:
        lines.append(f"{INDENT}Note: '''{group.note}'''")
    lines.append("}")
    return "\n".join(lines)


def join_sections(sections: Iterable[str]) -> str:
    """Join non-empty sections with blank lines."""
    text = "\n\n".join(section for section in sections if section)
    return f"{text}\n" if text else ""


def serialize(schema: Schema) -> str:
    """Render a complete schema: tables, then refs, then table groups."""
    return join_sections(
        (
            "\n\n".join(table_to_text(table) for table in schema.tables),
            "\n".join(ref_to_text(ref) for ref in schema.refs),
            "\n\n".join(group_to_text(group) for group in schema.groups),
        ),
    )


def schema_to_dict(schema: Schema) -> dict[str, Any]:
    """Convert a schema into JSON-serializable dictionaries."""
    return {
        "tables": [
            {
                "name": table.name,
                "note": table.note,
                "fields": [field._asdict() for field in table.fields],
            }
            for table in schema.tables
        ],
        "refs": [ref._asdict() for ref in schema.refs],
        "groups": [
            {
                "name": group.name,
                "color": group.color,
                "note": group.note,
                "members": [member._asdict() for member in group.members],
            }
            for group in schema.groups
        ],
    }
