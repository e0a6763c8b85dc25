"""Type mapping and relation inference for schema fields."""

from dbml_toolkit.typemap.canonical import (
    PrimitiveType,
    canonical_field_type,
    canonicalize,
    is_identifier,
)
from dbml_toolkit.typemap.inference import (
    find_referenced_table,
    infer_relation_type,
    normalize_types,
    pluralize,
    singularize,
)
from dbml_toolkit.typemap.sqlalchemy_export import (
    read_only_sqlite,
    schema_to_ddl,
    schema_to_metadata,
    sqlite_to_schema,
)

__all__ = [
    "PrimitiveType",
    "canonical_field_type",
    "canonicalize",
    "find_referenced_table",
    "infer_relation_type",
    "is_identifier",
    "normalize_types",
    "pluralize",
    "read_only_sqlite",
    "schema_to_ddl",
    "schema_to_metadata",
    "singularize",
    "sqlite_to_schema",
]
