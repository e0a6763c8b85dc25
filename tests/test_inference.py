"""Tests for relation inference from field names."""

import pytest

from dbml_toolkit.schema.parser import parse
from dbml_toolkit.typemap.inference import (
    find_referenced_table,
    infer_relation_type,
    normalize_types,
    pluralize,
    relation_stem,
    singularize,
)


@pytest.mark.parametrize(
    ("word", "expected"),
    [
        ("categories", "category"),
        ("addresses", "address"),
        ("users", "user"),
        ("boxes", "box"),
        ("status", "status"),
        ("class", "class"),
        ("user", "user"),
    ],
)
def test_singularize(word: str, expected: str) -> None:
    """Test singular forms used for name matching."""
    assert singularize(word) == expected


@pytest.mark.parametrize(
    ("word", "expected"),
    [("category", "categories"), ("day", "days"), ("box", "boxes"), ("user", "users")],
)
def test_pluralize(word: str, expected: str) -> None:
    """Test plural forms used for name matching."""
    assert pluralize(word) == expected


def test_relation_stem() -> None:
    """Test stripping the identifier suffix from relational names."""
    assert relation_stem("user_id") == "user"
    assert relation_stem("creator_user_id") == "creator_user"
    assert relation_stem("_id") is None
    assert relation_stem("id") is None
    assert relation_stem("email") is None


def test_find_exact_table() -> None:
    """Test that an exact table name wins over a plural variant."""
    assert find_referenced_table("order", {"order", "orders"}) == "order"


def test_find_plural_table() -> None:
    """Test matching a singular stem to a plural table name."""
    assert find_referenced_table("user", {"users", "posts"}) == "users"
    assert find_referenced_table("category", {"categories"}) == "categories"


def test_find_compound_stem() -> None:
    """Test that a trailing part of a compound stem is tried."""
    assert find_referenced_table("creator_user", {"users"}) == "users"


def test_find_prefers_full_compound_table() -> None:
    """Test that the whole stem is tried before its parts."""
    tables = {"users", "creator_users"}

    assert find_referenced_table("creator_user", tables) == "creator_users"


def test_find_nothing() -> None:
    """Test that an unknown stem gives None."""
    assert find_referenced_table("invoice", {"users"}) is None


@pytest.mark.parametrize(
    ("field_name", "current_type", "expected"),
    [
        ("buyer", "users", "users"),
        ("order_id", "integer", "order"),
        ("user_id", "unique", "users"),
        ("creator_user_id", "int", "users"),
        ("external_id", "integer", "unique"),
        ("price", "decimal(10,2)", "number"),
        ("_id", "number", "unique"),
        ("active", "boolean", "Y_N"),
    ],
)
def test_infer_relation_type(field_name: str, current_type: str, expected: str) -> None:
    """Test each level of inference precedence."""
    known = {"order", "users"}

    assert infer_relation_type(field_name, current_type, known) == expected


def test_inline_ref_wins() -> None:
    """Test that an explicit inline ref beats the name-based guess."""
    known = {"accounts", "owners"}

    assert infer_relation_type("owner_id", "unique", known, "accounts") == "accounts"


def test_normalize_types() -> None:
    """Test rewriting every field type of a schema."""
    schema = parse(
        """
Table order {
  id integer
  placed timestamp
}

Table line_item {
  _id integer
  order_id int
  qty integer
}
""",
    )

    normalized = normalize_types(schema)

    line_item = normalized.table("line_item")
    assert line_item is not None
    assert [field.type for field in line_item.fields] == ["unique", "order", "number"]
    order = normalized.table("order")
    assert order is not None
    assert [field.type for field in order.fields] == ["unique", "date"]
