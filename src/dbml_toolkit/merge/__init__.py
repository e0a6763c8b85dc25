"""Merge pending changes back into schema text."""

from dbml_toolkit.merge.dedup import dedup
from dbml_toolkit.merge.groups import add_table_group, rebuild_groups
from dbml_toolkit.merge.main import MergeResult, TableOrder, merge, merge_schemas
from dbml_toolkit.merge.refs import ensure_refs, relation_refs

__all__ = [
    "MergeResult",
    "TableOrder",
    "add_table_group",
    "dedup",
    "ensure_refs",
    "merge",
    "merge_schemas",
    "rebuild_groups",
    "relation_refs",
]
