"""Tests for merging a ChangeSet back into a schema."""

import pytest

from dbml_toolkit.compare.main import diff
from dbml_toolkit.compare.types import ChangeSet
from dbml_toolkit.edit.session import EditSession
from dbml_toolkit.errors import DuplicateTableNameError, MergeWarningKind
from dbml_toolkit.merge.dedup import dedup
from dbml_toolkit.merge.main import (
    TableOrder,
    merge,
    merge_schemas,
    ordered,
    remap_constraint,
    remap_field,
)
from dbml_toolkit.schema.parser import parse
from dbml_toolkit.schema.serializer import serialize
from dbml_toolkit.schema.types import Field, Schema

ORDERS_TEXT = "Table orders {\n  _id unique\n  customer_id int\n}"

CUSTOMERS_TEXT = """
Table customers {
  _id unique
  name text
}
"""


@pytest.fixture(name="customers")
def create_customers() -> Schema:
    """Base schema with a single customers table."""
    return parse(CUSTOMERS_TEXT)


def test_rename_cascades_to_untouched_tables() -> None:
    """Test that renaming a base table rewrites types and refs pointing at it."""
    base = parse(
        """
Table user {
  id unique
}

Table order {
  id unique
  user_id user
}

Ref: order.user_id > user._id
""",
    )
    session = EditSession.start(base, base)

    session.rename_table("user", "customer")

    assert session.merge() == (
        "Table customer {\n"
        "  id unique\n"
        "}\n"
        "\n"
        "Table order {\n"
        "  id unique\n"
        "  user_id customer\n"
        "}\n"
        "\n"
        "Ref: order.user_id > customer._id\n"
    )


def test_merge_without_changes() -> None:
    """Test that an empty ChangeSet reproduces the generated schema."""
    generated = parse(
        """
Table a {
  _id unique
  b_id b
}

Table b {
  _id unique
}

Ref: a.b_id > b._id
""",
    )

    assert merge(generated, generated, ChangeSet(), {}) == dedup(serialize(generated))


def test_merge_is_deterministic(customers: Schema) -> None:
    """Test that the same inputs give the same text."""
    generated = parse(CUSTOMERS_TEXT + ORDERS_TEXT)
    changes = diff(customers, generated)

    assert merge(customers, generated, changes) == merge(customers, generated, changes)


def test_relation_is_inferred_and_ref_synthesized(customers: Schema) -> None:
    """Test that a suffixed field name becomes a relation with a Ref."""
    generated = parse(CUSTOMERS_TEXT + ORDERS_TEXT)

    result = merge_schemas(customers, generated, diff(customers, generated))

    assert result.text == (
        "Table orders {\n"
        "  _id unique\n"
        "  customer_id customers\n"
        "}\n"
        "\n"
        "Table customers {\n"
        "  _id unique\n"
        "  name text\n"
        "}\n"
        "\n"
        "Ref: orders.customer_id > customers._id\n"
    )
    assert result.warnings == ()


def test_unresolved_relation_warns(customers: Schema) -> None:
    """Test that a suffixed field without a matching table is reported."""
    generated = parse(CUSTOMERS_TEXT + "Table orders {\n  _id unique\n  vendor_id int\n}")

    result = merge_schemas(customers, generated, diff(customers, generated))

    orders = result.schema.table("orders")
    assert orders is not None
    assert orders.fields[1] == Field("vendor_id", "unique")
    assert [warning.kind for warning in result.warnings] == [
        MergeWarningKind.AMBIGUOUS_RELATION_INFERENCE,
    ]


def test_dangling_inline_ref_is_dropped(customers: Schema) -> None:
    """Test that an inline ref to a missing table is removed."""
    changes = ChangeSet(
        new_tables={
            "notes": [
                Field("_id", "unique"),
                Field("ghost_id", "unique", None, ("ref: > ghosts._id",)),
            ],
        },
    )

    result = merge_schemas(customers, customers, changes)

    assert "ghosts" not in result.text
    assert MergeWarningKind.DANGLING_REF_DROPPED in {w.kind for w in result.warnings}


def test_inline_ref_to_emitted_table_sets_type(customers: Schema) -> None:
    """Test that a valid inline ref decides the relation type."""
    changes = ChangeSet(
        new_tables={
            "notes": [
                Field("_id", "unique"),
                Field("author", "unique", None, ("ref: > customers._id",)),
            ],
        },
    )

    result = merge_schemas(customers, customers, changes)

    assert "  author customers [ref: > customers._id]\n" in result.text
    assert "Ref: notes.author > customers._id" in result.text


def test_original_fields_keep_their_types() -> None:
    """Test that only added fields of a modified table are canonicalized."""
    base = parse("Table t {\n  _id unique\n  size varchar(10)\n}")
    generated = parse("Table t {\n  _id unique\n  size varchar(10)\n  weight decimal\n}")

    text = merge(base, generated, diff(base, generated))

    assert "  size varchar(10)\n" in text
    assert "  weight number\n" in text


def test_modified_table_prefers_description() -> None:
    """Test the note order: description, then generated note, then base note."""
    base = parse('Table t {\n  Note: "Old"\n  _id unique\n}')
    generated = parse('Table t {\n  Note: "New"\n  _id unique\n  a text\n}')
    changes = diff(base, generated)

    assert 'Note: "New"' in merge(base, generated, changes)

    changes.table_descriptions["t"] = "Edited"
    assert 'Note: "Edited"' in merge(base, generated, changes)

    changes.table_descriptions.clear()
    assert 'Note: "Old"' in merge(base, base, changes)


def test_table_order_is_followed(customers: Schema) -> None:
    """Test that ChangeSet tables follow the editor's order."""
    changes = ChangeSet(
        new_tables={name: [Field("_id", "unique")] for name in ("a", "b", "c")},
    )

    result = merge_schemas(
        customers,
        customers,
        changes,
        order=TableOrder(new_tables=("c", "a")),
    )

    assert result.schema.table_names == ("c", "a", "b", "customers")


def test_blank_fields_and_tables_are_skipped(customers: Schema) -> None:
    """Test that nameless or typeless fields and empty tables are not emitted."""
    changes = ChangeSet(
        new_tables={
            "t": [Field("", "text"), Field("a", " "), Field("b", "text")],
            "empty": [Field("", "")],
            " ": [Field("c", "text")],
        },
    )

    result = merge_schemas(customers, customers, changes)

    assert result.schema.table_names == ("t", "customers")
    table = result.schema.table("t")
    assert table is not None
    assert table.fields == (Field("b", "text"),)


def test_repeated_generated_refs_collapse(customers: Schema) -> None:
    """Test that equivalent Refs in the generated schema are kept once."""
    generated = parse(
        CUSTOMERS_TEXT
        + """
Table orders {
  _id unique
  customer_id customers
}

Ref: orders.customer_id > customers._id
Ref: orders.customer_id > customers.id
Ref: customers._id < orders.customer_id
""",
    )

    text = merge(customers, generated, diff(customers, generated))

    assert text.count("Ref:") == 1


def test_ordered() -> None:
    """Test ordering names by a preferred order."""
    assert ordered(["a", "b", "c"], ["c", "x", "a"]) == ["c", "a", "b"]


def test_remap_constraint() -> None:
    """Test pointing an inline ref at a renamed table."""
    renames = {"users": "people", "old": "new table"}

    assert remap_constraint("ref: > users._id", renames) == "ref: > people._id"
    assert remap_constraint("ref: > old._id", renames) == 'ref: > "new table"._id'
    assert remap_constraint("not null", renames) == "not null"


def test_remap_field() -> None:
    """Test that relation types follow renames and primitives do not."""
    renames = {"users": "people"}

    assert remap_field(Field("owner", "users"), renames) == Field("owner", "people")
    assert remap_field(Field("name", "text"), renames) == Field("name", "text")


USER_ORDER_TEXT = """
Table user {
  id unique
}

Table order {
  id unique
  user_id user
}

Ref: order.user_id > user._id
"""


def test_renamed_base_table_survives_reused_old_name() -> None:
    """Test that a new table under a renamed-away name does not hide the renamed one."""
    base = parse(USER_ORDER_TEXT)
    changes = ChangeSet(new_tables={"user": [Field("_id", "unique")]})

    result = merge_schemas(base, base, changes, {"user": "customer"})

    assert result.schema.table_names == ("user", "customer", "order")
    assert "  user_id customer\n" in result.text
    assert "Ref: order.user_id > customer._id" in result.text
    assert result.warnings == ()


def test_renamed_away_name_is_not_reusable() -> None:
    """Test that the session keeps a renamed table's old name reserved."""
    base = parse(USER_ORDER_TEXT)
    session = EditSession.start(base, base)
    session.rename_table("user", "customer")

    with pytest.raises(DuplicateTableNameError):
        session.add_table("user")

    assert session.merge_result().schema.table_names == ("customer", "order")


def test_created_table_joins_every_group() -> None:
    """Test that each generated group lists a table the merge created."""
    generated = parse(
        """
Table a {
  _id unique
}

Table b {
  _id unique
}

TableGroup "One" {
  a
}

TableGroup "Two" {
  b
}
""",
    )
    changes = ChangeSet(new_tables={"c": [Field("_id", "unique")]})

    result = merge_schemas(generated, generated, changes)

    assert [group.tables for group in result.schema.groups] == [
        ("a", "c"),
        ("b", "c"),
    ]
