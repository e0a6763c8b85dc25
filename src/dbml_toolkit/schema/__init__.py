"""Schema text parsing and serialization for the DBML subset."""

from dbml_toolkit.schema.parser import parse, validate_schema, validate_text
from dbml_toolkit.schema.serializer import schema_to_dict, serialize
from dbml_toolkit.schema.text import (
    clean_generated_text,
    common_suffix,
    consolidated_name,
    extract_table,
    outline,
    table_names,
)
from dbml_toolkit.schema.types import (
    Field,
    GroupMember,
    Ref,
    Schema,
    Table,
    TableGroup,
)

__all__ = [
    "Field",
    "GroupMember",
    "Ref",
    "Schema",
    "Table",
    "TableGroup",
    "clean_generated_text",
    "common_suffix",
    "consolidated_name",
    "extract_table",
    "outline",
    "parse",
    "schema_to_dict",
    "serialize",
    "table_names",
    "validate_schema",
    "validate_text",
]
