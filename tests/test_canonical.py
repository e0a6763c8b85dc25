"""Tests for canonical type mapping."""

import pytest

from dbml_toolkit.schema.types import Field, Table
from dbml_toolkit.typemap.canonical import (
    PrimitiveType,
    base_spelling,
    canonical_field_type,
    canonical_identifier,
    canonicalize,
    identifier_field,
    is_identifier,
    is_known_spelling,
    is_primitive,
)


@pytest.mark.parametrize(
    ("raw_type", "expected"),
    [
        ("text", PrimitiveType.TEXT),
        ("varchar(255)", PrimitiveType.TEXT),
        ("VARCHAR2", PrimitiveType.TEXT),
        ("INTEGER", PrimitiveType.NUMBER),
        ("decimal(10, 2)", PrimitiveType.NUMBER),
        ("boolean", PrimitiveType.YES_NO),
        ("Y_N", PrimitiveType.YES_NO),
        ("timestamp", PrimitiveType.DATE),
        ("datetime2", PrimitiveType.DATE),
        ("uuid", PrimitiveType.UNIQUE),
        ("unique", PrimitiveType.UNIQUE),
    ],
)
def test_canonicalize(raw_type: str, expected: PrimitiveType) -> None:
    """Test mapping of common spellings to their canonical type."""
    assert canonicalize(raw_type) is expected


def test_unknown_spelling_defaults_to_text() -> None:
    """Test that unrecognized types fall back to Text."""
    assert canonicalize("geometry") is PrimitiveType.TEXT
    assert not is_known_spelling("geometry")


def test_dsl_spellings() -> None:
    """Test the DSL spelling of each canonical type."""
    assert [primitive.value for primitive in PrimitiveType] == [
        "text",
        "number",
        "Y_N",
        "date",
        "unique",
    ]
    assert is_primitive("Y_N")
    assert not is_primitive("users")


def test_base_spelling() -> None:
    """Test that modifiers are stripped and case is folded."""
    assert base_spelling(" NVARCHAR(50) ") == "nvarchar"
    assert base_spelling("int[]") == "int"


def test_is_identifier() -> None:
    """Test identifier field detection by name."""
    assert is_identifier("_id")
    assert is_identifier("id")
    assert is_identifier("user_id")
    assert is_identifier("USER_ID")
    assert not is_identifier("email")
    assert not is_identifier("identity")


def test_identifier_fields_are_unique() -> None:
    """Test that identifier fields become Unique whatever their spelling."""
    assert canonical_field_type("user_id", "integer") is PrimitiveType.UNIQUE
    assert canonical_field_type("_id", "number") is PrimitiveType.UNIQUE
    assert canonical_field_type("age", "integer") is PrimitiveType.NUMBER


def test_canonical_identifier() -> None:
    """Test that identifier spellings collapse to the sentinel."""
    assert canonical_identifier("id") == "_id"
    assert canonical_identifier("_id") == "_id"
    assert canonical_identifier("code") == "code"


def test_identifier_field() -> None:
    """Test finding a table's own identifier field."""
    table = Table("t", (Field("name", "text"), Field("id", "unique")))

    assert identifier_field(table) == Field("id", "unique")
    assert identifier_field(Table("t", (Field("name", "text"),))) is None
