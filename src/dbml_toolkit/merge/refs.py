"""Relationship statements derived from relation-typed fields."""

from collections.abc import Iterable, Sequence
from logging import getLogger

from dbml_toolkit.config import CONVENTIONS, Conventions
from dbml_toolkit.schema.types import Ref, Schema, Table
from dbml_toolkit.typemap.canonical import canonical_identifier, identifier_field
from dbml_toolkit.typemap.inference import find_referenced_table, relation_stem

logger = getLogger(__name__)

type RefKey = tuple[str, str, str, str]


def ref_key(ref: Ref, conventions: Conventions = CONVENTIONS) -> RefKey:
    """Identity of a relationship regardless of direction or identifier spelling.

    ``a.x > b._id``, ``a.x > b.id`` and ``b._id < a.x`` share one key.
    """
    source = (ref.source_table, ref.source_field)
    target = (ref.target_table, ref.target_field)
    if ref.operator == "<":
        source, target = target, source
    return (*source, target[0], canonical_identifier(target[1], conventions))


def target_identifier(table: Table, conventions: Conventions = CONVENTIONS) -> str:
    """Name of the field a relationship to this table points at."""
    if field := identifier_field(table, conventions):
        return field.name
    return conventions["identifiers"]["sentinel"]


def relation_refs(
    tables: Sequence[Table],
    covered: Iterable[Ref] = (),
    conventions: Conventions = CONVENTIONS,
) -> list[Ref]:
    """Synthesize a Ref for every field typed as one of the given tables.

    Pairs already covered by an existing Ref are skipped.
    """
    by_name = {table.name: table for table in tables}
    seen = {ref_key(ref, conventions) for ref in covered}
    refs: list[Ref] = []

    for table in tables:
        for field in table.fields:
            if (target := by_name.get(field.type)) is None:
                continue
            ref = Ref(
                table.name,
                field.name,
                ">",
                target.name,
                target_identifier(target, conventions),
            )
            if (key := ref_key(ref, conventions)) not in seen:
                seen.add(key)
                refs.append(ref)

    return refs


def ensure_refs(schema: Schema, conventions: Conventions = CONVENTIONS) -> Schema:
    """Add the Refs a schema implies but does not declare.

    A field implies a Ref when its type names a table, or when its name
    carries the identifier suffix and ``find_referenced_table`` resolves it.
    Declared Refs are kept as they are.
    """
    known = schema.table_names
    by_name = {table.name: table for table in schema.tables}
    seen = {ref_key(ref, conventions) for ref in schema.refs}
    added: list[Ref] = []

    for table in schema.tables:
        for field in table.fields:
            target_name = field.type if field.type in by_name else None
            if target_name is None and (stem := relation_stem(field.name, conventions)):
                target_name = find_referenced_table(stem, known)
            if target_name is None:
                continue
            target = by_name[target_name]
            ref = Ref(
                table.name,
                field.name,
                ">",
                target.name,
                target_identifier(target, conventions),
            )
            if (key := ref_key(ref, conventions)) not in seen:
                seen.add(key)
                added.append(ref)

    if added:
        logger.debug("Adding %d implied refs", len(added))
    return schema._replace(refs=(*schema.refs, *added))
