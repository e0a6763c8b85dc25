"""Rebuild and add TableGroup blocks."""

from collections.abc import Iterable, Mapping, Sequence
from logging import getLogger

from dbml_toolkit.config import CONVENTIONS
from dbml_toolkit.errors import MergeWarning, MergeWarningKind
from dbml_toolkit.schema.types import GroupMember, Schema, TableGroup

logger = getLogger(__name__)


def rebuild_groups(
    groups: Iterable[TableGroup],
    emitted: Sequence[str],
    touched: Sequence[str],
    rename_map: Mapping[str, str],
) -> tuple[list[TableGroup], list[MergeWarning]]:
    """Rebuild groups against the tables a merge actually emitted.

    Members are renamed through the rename map and dropped when the table
    is gone. Every group then gains the touched tables (created or modified
    by the merge) it does not list yet. Notes and colors are kept verbatim.
    """
    available = frozenset(emitted)
    added = [table for table in dict.fromkeys(touched) if table in available]
    warnings: list[MergeWarning] = []
    rebuilt: list[TableGroup] = []

    for group in groups:
        members: list[GroupMember] = []
        listed: set[str] = set()
        for member in group.members:
            table = rename_map.get(member.table, member.table)
            if table not in available:
                warnings.append(
                    MergeWarning(
                        MergeWarningKind.ORPHAN_GROUP_MEMBER_DROPPED,
                        f"Dropped {member.table} from group {group.name}",
                    ),
                )
                continue
            if table in listed:
                continue
            listed.add(table)
            members.append(member._replace(table=table))
        members.extend(GroupMember(table) for table in added if table not in listed)
        rebuilt.append(group._replace(members=tuple(members)))

    return rebuilt, warnings


def add_table_group(
    schema: Schema,
    name: str,
    members: Iterable[str | GroupMember],
    note: str | None = None,
    color: str = CONVENTIONS["groups"]["color"],
) -> Schema:
    """Add a TableGroup, replacing any group with the same name.

    Members naming tables the schema does not declare are skipped; member
    comments are kept.
    """
    kept: list[GroupMember] = []
    for member in members:
        entry = GroupMember(member) if isinstance(member, str) else member
        if not schema.has_table(entry.table):
            logger.warning("Skipping unknown table %s in group %s", entry.table, name)
            continue
        kept.append(entry)

    group = TableGroup(name=name, members=tuple(kept), note=note, color=color)
    groups = [existing for existing in schema.groups if existing.name != name]
    return schema._replace(groups=(*groups, group))
