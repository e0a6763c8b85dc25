"""Parse, compare, edit and merge DBML-subset schema descriptions."""

from dbml_toolkit.compare import ChangeSet, diff
from dbml_toolkit.edit import EditSession
from dbml_toolkit.merge import MergeResult, TableOrder, dedup, merge, merge_schemas
from dbml_toolkit.schema import Schema, parse, serialize
from dbml_toolkit.typemap import PrimitiveType, canonicalize, infer_relation_type

__all__ = [
    "ChangeSet",
    "EditSession",
    "MergeResult",
    "PrimitiveType",
    "Schema",
    "TableOrder",
    "canonicalize",
    "dedup",
    "diff",
    "infer_relation_type",
    "merge",
    "merge_schemas",
    "parse",
    "serialize",
]
