"""Map raw type spellings onto the five canonical primitive types."""

import re
from enum import StrEnum

from dbml_toolkit.config import CONVENTIONS, Conventions, identifier_spellings
from dbml_toolkit.schema.types import Field, Table


class PrimitiveType(StrEnum):
    """Canonical types; each value is the DSL spelling emitted on output."""

    TEXT = "text"
    NUMBER = "number"
    YES_NO = "Y_N"
    DATE = "date"
    UNIQUE = "unique"


# Length, precision or array suffixes are not part of the type family
TYPE_MODIFIERS = re.compile(r"[\s(\[].*$", re.DOTALL)


def base_spelling(raw_type: str) -> str:
    """Lowercase a raw type and strip modifiers such as ``(255)``."""
    return TYPE_MODIFIERS.sub("", raw_type.strip()).lower()


def canonicalize(raw_type: str, conventions: Conventions = CONVENTIONS) -> PrimitiveType:
    """Map a raw type spelling to its canonical type.

    Exact spellings are matched first, then substrings in family order, so
    ``varchar2`` is Text and ``datetime2`` is Date. Unrecognized spellings
    default to Text: the DSL treats unknown types as free-form text.
    """
    spelling = base_spelling(raw_type)
    families = conventions["types"]

    for family in families:
        if spelling in family["spellings"]:
            return PrimitiveType(family["name"])

    for family in families:
        if any(candidate in spelling for candidate in family["spellings"]):
            return PrimitiveType(family["name"])

    return PrimitiveType.TEXT


def is_known_spelling(raw_type: str, conventions: Conventions = CONVENTIONS) -> bool:
    """Check whether a raw type belongs to any configured type family."""
    spelling = base_spelling(raw_type)
    return any(
        candidate in spelling
        for family in conventions["types"]
        for candidate in family["spellings"]
    )


def is_primitive(type_name: str) -> bool:
    """Check whether a type is already one of the canonical DSL spellings."""
    return type_name in set(PrimitiveType)


def is_identifier(field_name: str, conventions: Conventions = CONVENTIONS) -> bool:
    """Identifier fields are the sentinel, a legacy spelling, or end in the suffix."""
    name = field_name.lower()
    suffix = conventions["identifiers"]["suffix"].lower()
    return name in identifier_spellings(conventions) or name.endswith(suffix)


def identifier_field(
    table: Table,
    conventions: Conventions = CONVENTIONS,
) -> Field | None:
    """The field holding a table's own identifier, if it declares one."""
    names = identifier_spellings(conventions)
    return next((field for field in table.fields if field.name in names), None)


def canonical_identifier(field_name: str, conventions: Conventions = CONVENTIONS) -> str:
    """Collapse every identifier spelling to the sentinel; other names pass through."""
    if field_name in identifier_spellings(conventions):
        return conventions["identifiers"]["sentinel"]
    return field_name


def canonical_field_type(
    field_name: str,
    raw_type: str,
    conventions: Conventions = CONVENTIONS,
) -> PrimitiveType:
    """Canonical type of a field, forcing identifier fields to Unique."""
    if is_identifier(field_name, conventions):
        return PrimitiveType.UNIQUE
    return canonicalize(raw_type, conventions)
