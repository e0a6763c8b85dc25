"""Relation inference: decide whether a field's type names another table."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from logging import getLogger

from dbml_toolkit.config import CONVENTIONS, Conventions, identifier_spellings
from dbml_toolkit.schema.types import Schema
from dbml_toolkit.typemap.canonical import canonical_field_type

logger = getLogger(__name__)

SIBILANT_ENDINGS = ("s", "x", "z", "ch", "sh")
VOWELS = frozenset("aeiou")


def singularize(word: str) -> str:
    """Best-effort English singular form, used only for name matching."""
    lower = word.lower()
    if lower.endswith("ies") and len(word) > 3:  # noqa: PLR2004
        return word[:-3] + "y"
    if lower.endswith(("sses", "xes", "zes", "ches", "shes", "uses")):
        return word[:-2]
    if lower.endswith("s") and not lower.endswith(("ss", "us", "is")) and len(word) > 1:
        return word[:-1]
    return word


def pluralize(word: str) -> str:
    """Best-effort English plural form, used only for name matching."""
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in VOWELS:
        return word[:-1] + "ies"
    if lower.endswith(SIBILANT_ENDINGS):
        return word + "es"
    return word + "s"


def name_variants(name: str) -> frozenset[str]:
    """Lowercased singular and plural spellings of a name."""
    lower = name.lower()
    return frozenset((lower, singularize(lower), pluralize(lower)))


def relation_stem(field_name: str, conventions: Conventions = CONVENTIONS) -> str | None:
    """Field name minus the identifier suffix, or None for non-relational names.

    ``user_id`` gives ``user``; ``_id``, ``id`` and ``email`` give None.
    """
    if field_name in identifier_spellings(conventions):
        return None
    suffix = conventions["identifiers"]["suffix"]
    if not field_name.lower().endswith(suffix.lower()):
        return None
    return field_name[: -len(suffix)] or None


def _exact(candidate: str, tables: Iterable[str]) -> str | None:
    for table in tables:
        if table == candidate:
            return table
    lower = candidate.lower()
    return next((table for table in tables if table.lower() == lower), None)


def _plural(candidate: str, tables: Iterable[str]) -> str | None:
    variants = name_variants(candidate)
    return next((table for table in tables if variants & name_variants(table)), None)


def find_referenced_table(stem: str, known_tables: Collection[str]) -> str | None:
    """Find the table a relation stem refers to.

    Candidates are tried in order: the stem itself, its singular or plural
    form, then each shorter trailing part of a compound stem (longest
    first) with the same two checks, so ``creator_user`` finds ``users``
    when no ``creator_user`` table exists. Tables are scanned in sorted
    order so ties resolve the same way every time.
    """
    tables = sorted(known_tables)
    parts = stem.split("_")
    candidates = ["_".join(parts[index:]) for index in range(len(parts))]

    for candidate in filter(None, candidates):
        if table := _exact(candidate, tables) or _plural(candidate, tables):
            return table
    return None


def infer_relation_type(
    field_name: str,
    current_type: str,
    known_tables: Collection[str],
    inline_ref: str | None = None,
    conventions: Conventions = CONVENTIONS,
) -> str:
    """Decide the DSL type of a field: a known table name or a primitive.

    Precedence, highest first:
        1. an explicit inline ref target
        2. a current type that already names a known table
        3. a table found from the field name by ``find_referenced_table``
        4. the canonical primitive type, Unique for identifier fields

    """
    if inline_ref:
        return inline_ref

    if current_type in known_tables:
        return current_type

    if (stem := relation_stem(field_name, conventions)) and (
        table := find_referenced_table(stem, known_tables)
    ):
        logger.debug("Inferred %s -> %s", field_name, table)
        return table

    return canonical_field_type(field_name, current_type, conventions).value


def normalize_types(schema: Schema, conventions: Conventions = CONVENTIONS) -> Schema:
    """Rewrite every field type to its inferred DSL type."""
    known = frozenset(schema.table_names)
    return schema._replace(
        tables=tuple(
            table._replace(
                fields=tuple(
                    field._replace(
                        type=infer_relation_type(
                            field.name,
                            field.type,
                            known,
                            field.ref_target,
                            conventions,
                        ),
                    )
                    for field in table.fields
                ),
            )
            for table in schema.tables
        ),
    )
