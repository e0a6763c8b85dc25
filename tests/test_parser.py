"""Tests for parsing DBML-subset text into a Schema."""

import pytest

from dbml_toolkit.errors import (
    NoTablesDefinedError,
    ParseError,
    SchemaValidationError,
    UnbalancedBracesError,
)
from dbml_toolkit.schema.parser import (
    parse,
    parse_field,
    split_top_level,
    string_value,
    validate_schema,
)
from dbml_toolkit.schema.types import Field, GroupMember, Ref

SCHEMA_TEXT = """
Table users {
  Note: "Accounts"
  _id unique [pk]
  email text [Note: "Login address"]
}

Table "order items" {
  _id unique
  user_id unique [ref: > users._id]
}

Ref: "order items".user_id > users._id

TableGroup "Billing" [color: #FFBD94] {
  users // who pays
  "order items"
  Note: '''Money
flows'''
}
"""


@pytest.fixture(name="schema_text")
def create_schema_text() -> str:
    """Schema text using every supported construct."""
    return SCHEMA_TEXT


def test_parse_tables_and_fields(schema_text: str) -> None:
    """Test that tables, notes and field constraints are parsed."""
    schema = parse(schema_text)

    assert schema.table_names == ("users", "order items")
    users = schema.table("users")
    assert users is not None
    assert users.note == "Accounts"
    assert users.fields == (
        Field("_id", "unique", None, ("pk",)),
        Field("email", "text", "Login address", ()),
    )


def test_parse_inline_ref(schema_text: str) -> None:
    """Test that an inline ref constraint is kept and exposes its target."""
    schema = parse(schema_text)

    items = schema.table("order items")
    assert items is not None
    assert items.fields[1].constraints == ("ref: > users._id",)
    assert items.fields[1].ref_target == "users"


def test_parse_standalone_ref(schema_text: str) -> None:
    """Test that a Ref line with a quoted table is parsed."""
    schema = parse(schema_text)

    assert schema.refs == (Ref("order items", "user_id", ">", "users", "_id"),)


def test_parse_table_group(schema_text: str) -> None:
    """Test that group color, member comments and the multi-line note are parsed."""
    schema = parse(schema_text)

    (group,) = schema.groups
    assert group.name == "Billing"
    assert group.color == "#FFBD94"
    assert group.members == (
        GroupMember("users", "who pays"),
        GroupMember("order items", None),
    )
    assert group.note == "Money\nflows"


def test_no_tables_defined() -> None:
    """Test that text without a Table is rejected."""
    with pytest.raises(NoTablesDefinedError):
        parse("Ref: a.b > c.d")


def test_unbalanced_braces() -> None:
    """Test that a missing close brace is rejected with the counts."""
    with pytest.raises(UnbalancedBracesError) as excinfo:
        parse("Table t {\n  id unique\n")

    assert excinfo.value.open_count == 1
    assert excinfo.value.close_count == 0


def test_extra_close_brace() -> None:
    """Test that a stray close brace is rejected."""
    with pytest.raises(UnbalancedBracesError):
        parse("Table t {\n  id unique\n}\n}")


def test_parse_errors_are_value_errors() -> None:
    """Test that parse errors can be caught as ValueError."""
    with pytest.raises(ValueError, match="No tables"):
        parse("")
    assert issubclass(UnbalancedBracesError, ParseError)


def test_braces_in_notes_do_not_count() -> None:
    """Test that braces inside a note do not unbalance the text."""
    schema = parse('Table t {\n  Note: "use {curly} braces"\n  id unique\n}')

    table = schema.table("t")
    assert table is not None
    assert table.note == "use {curly} braces"
    assert table.field_names == {"id"}


def test_unknown_blocks_are_skipped() -> None:
    """Test that unsupported top-level and nested blocks are ignored."""
    text = """
Project shop {
  database_type: 'PostgreSQL'
}

Table t {
  id unique
  indexes {
    id
  }
}
"""
    schema = parse(text)

    assert schema.table_names == ("t",)
    table = schema.table("t")
    assert table is not None
    assert table.fields == (Field("id", "unique"),)


def test_field_named_note_is_a_field() -> None:
    """Test that a lowercase field called note is not mistaken for a table note."""
    schema = parse("Table t {\n  note text\n}")

    table = schema.table("t")
    assert table is not None
    assert table.note is None
    assert table.fields == (Field("note", "text"),)


def test_parse_field_with_comma_in_note() -> None:
    """Test that commas inside the note do not split constraints."""
    field = parse_field('title varchar(255) [Note: "a, b", not null]')

    assert field == Field("title", "varchar(255)", "a, b", ("not null",))


def test_split_top_level_respects_quotes() -> None:
    """Test splitting on commas outside quoted strings."""
    assert split_top_level("a, 'b, c', \"d\"") == ["a", "'b, c'", '"d"']


def test_string_value_unescapes() -> None:
    """Test unquoting of single-line and triple-quoted strings."""
    assert string_value('"say \\"hi\\""') == 'say "hi"'
    assert string_value("'''keep \\n as is'''") == "keep \\n as is"
    assert string_value("bare") == "bare"


def test_repeated_tables_rejected_by_validation() -> None:
    """Test that the parser tolerates repeated tables but validation does not."""
    schema = parse("Table a {\n  x text\n}\nTable a {\n  y text\n}")

    assert schema.table_names == ("a", "a")
    with pytest.raises(SchemaValidationError) as excinfo:
        validate_schema(schema)
    assert excinfo.value.duplicates == ("a",)
