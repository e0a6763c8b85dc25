"""Render a ChangeSet for people: summaries, JSON and HTML."""

import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from dbml_toolkit.compare.types import SECTIONS, ChangeSet
from dbml_toolkit.schema.types import Field

TEMPLATE_DIR = Path(__file__).parent / "templates"

CHANGE_TYPES = {"new_tables": "new_table", "new_fields": "new_fields"}


def _field_dict(field: Field) -> dict[str, Any]:
    return {
        "name": field.name,
        "type": field.type,
        "note": field.note,
        "constraints": list(field.constraints),
    }


def changes_to_summary(changes: ChangeSet) -> list[dict[str, Any]]:
    """Convert a ChangeSet to one summary row per table.

    Each dictionary contains:
        - name: table name
        - change_type: "new_table" or "new_fields"
        - fields: number of fields added
        - description: the recorded table description, or ""
    """
    return [
        {
            "name": name,
            "change_type": CHANGE_TYPES[section],
            "fields": len(fields),
            "description": changes.table_descriptions.get(name, ""),
        }
        for section in SECTIONS
        for name, fields in changes.section(section).items()
    ]


def changes_to_dict(changes: ChangeSet) -> dict[str, Any]:
    """Convert a ChangeSet into JSON-serializable dictionaries."""
    return {
        section: {
            name: [_field_dict(field) for field in fields]
            for name, fields in changes.section(section).items()
        }
        for section in SECTIONS
    } | {"table_descriptions": dict(changes.table_descriptions)}


def changes_to_json(changes: ChangeSet) -> str:
    """Convert a ChangeSet to a JSON string."""
    return json.dumps(changes_to_dict(changes), ensure_ascii=False)


def changes_to_html(changes: ChangeSet, title: str = "Schema changes") -> str:
    """Render a ChangeSet as a standalone HTML page."""
    env = Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template("changes.html")
    return template.render(
        title=title,
        summary=changes_to_summary(changes),
        changes=changes_to_dict(changes),
    )
