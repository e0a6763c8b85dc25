"""Convert between schema descriptions and SQLAlchemy metadata."""

from pathlib import Path
from typing import Any, Literal
from warnings import catch_warnings, filterwarnings

from sqlalchemy import Engine, MetaData, create_engine
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.engine.interfaces import Dialect
from sqlalchemy.exc import SAWarning
from sqlalchemy.schema import Column, CreateTable, ForeignKey
from sqlalchemy.schema import Table as SQLTable
from sqlalchemy.types import (
    Boolean,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Time,
    TypeEngine,
)

from dbml_toolkit.config import CONVENTIONS, Conventions, identifier_spellings
from dbml_toolkit.schema.types import Field, Ref, Schema, Table
from dbml_toolkit.typemap.canonical import (
    PrimitiveType,
    canonical_field_type,
    identifier_field,
)

type SQLDialect = Literal["sqlite", "postgresql", "mysql"]
type ForeignKeys = dict[tuple[str, str], list[str]]

DIALECTS: dict[str, Dialect] = {
    "sqlite": sqlite.dialect(),
    "postgresql": postgresql.dialect(),
    "mysql": mysql.dialect(),
}
TEXT_LENGTH = 255
UNIQUE_LENGTH = 36


def primitive_to_sql(primitive: PrimitiveType) -> TypeEngine[Any]:
    """Map a canonical type to a SQLAlchemy column type."""
    match primitive:
        case PrimitiveType.NUMBER:
            return Numeric()
        case PrimitiveType.YES_NO:
            return Boolean()
        case PrimitiveType.DATE:
            return DateTime()
        case PrimitiveType.UNIQUE:
            return String(UNIQUE_LENGTH)
        case PrimitiveType.TEXT:
            return String(TEXT_LENGTH)


def sql_to_primitive(sql_type: TypeEngine[Any]) -> PrimitiveType:
    """Map a reflected SQLAlchemy type to a canonical type."""
    match sql_type:
        case Boolean():
            return PrimitiveType.YES_NO
        case Integer() | Numeric():
            return PrimitiveType.NUMBER
        case DateTime() | Date() | Time():
            return PrimitiveType.DATE
        case String():
            return PrimitiveType.TEXT
        case _:
            return PrimitiveType.TEXT


def _relation_links(schema: Schema, conventions: Conventions) -> ForeignKeys:
    """Foreign key targets per (table, field), from Refs and relation types."""
    links: ForeignKeys = {}

    def link(source: tuple[str, str], target_table: str, target_field: str) -> None:
        table = schema.table(target_table)
        if table is None or not table.has_field(target_field):
            return
        target = f"{target_table}.{target_field}"
        if target not in links.setdefault(source, []):
            links[source].append(target)

    for ref in schema.refs:
        if ref.operator == "<":
            link((ref.target_table, ref.target_field), ref.source_table, ref.source_field)
        else:
            link((ref.source_table, ref.source_field), ref.target_table, ref.target_field)

    for table in schema.tables:
        for field in table.fields:
            target = schema.table(field.type)
            if target and (identifier := identifier_field(target, conventions)):
                link((table.name, field.name), target.name, identifier.name)

    return links


def _column(
    table: Table,
    field: Field,
    links: ForeignKeys,
    known_tables: frozenset[str],
    conventions: Conventions,
) -> Column[Any]:
    primary_key = field.name in identifier_spellings(conventions)
    if field.type in known_tables:
        sql_type = primitive_to_sql(PrimitiveType.UNIQUE)
    else:
        primitive = canonical_field_type(field.name, field.type, conventions)
        sql_type = primitive_to_sql(primitive)
    targets = links.get((table.name, field.name), [])
    foreign_keys = [ForeignKey(target) for target in targets]
    return Column(field.name, sql_type, *foreign_keys, primary_key=primary_key)


def schema_to_metadata(
    schema: Schema,
    conventions: Conventions = CONVENTIONS,
) -> MetaData:
    """Build SQLAlchemy metadata for a schema.

    Identifier fields become primary keys; relation-typed fields and Refs
    become foreign keys when the target field exists. Repeated tables and
    fields keep their first declaration.
    """
    metadata = MetaData()
    links = _relation_links(schema, conventions)
    known = frozenset(schema.table_names)

    for table in schema.tables:
        if table.name in metadata.tables:
            continue
        columns: dict[str, Column[Any]] = {}
        for field in table.fields:
            if field.name not in columns:
                columns[field.name] = _column(table, field, links, known, conventions)
        SQLTable(table.name, metadata, *columns.values())

    return metadata


def schema_to_ddl(schema: Schema, dialect: SQLDialect = "sqlite") -> str:
    """Render CREATE TABLE statements for the given SQL dialect."""
    metadata = schema_to_metadata(schema)
    with catch_warnings():
        filterwarnings("ignore", category=SAWarning)
        tables = metadata.sorted_tables

    statements = (
        str(CreateTable(table).compile(dialect=DIALECTS[dialect])).strip()
        for table in tables
    )
    return "".join(f"{statement};\n\n" for statement in statements)


def read_only_sqlite(sqlite_location: Path) -> Engine:
    """Create a read-only SQLAlchemy engine for a SQLite database."""
    connection_string = f"sqlite:///file:{sqlite_location}?mode=ro&uri=true"
    return create_engine(connection_string)


def _field_from_sqla(column: Column[Any]) -> Field:
    if targets := [fk.column.table.name for fk in column.foreign_keys]:
        field_type = targets[0]
    elif column.primary_key:
        field_type = PrimitiveType.UNIQUE.value
    else:
        field_type = sql_to_primitive(column.type).value
    return Field(
        name=column.name,
        type=field_type,
        constraints=("pk",) if column.primary_key else (),
    )


def sqlite_to_schema(sqlite_database: Engine) -> Schema:
    """Reflect a SQLite database into a Schema, foreign keys becoming Refs."""
    metadata = MetaData()
    metadata.reflect(bind=sqlite_database)
    with catch_warnings():
        filterwarnings("ignore", category=SAWarning)
        tables = metadata.sorted_tables

    return Schema(
        tables=tuple(
            Table(
                name=table.name,
                fields=tuple(_field_from_sqla(col) for col in table.columns),
            )
            for table in tables
        ),
        refs=tuple(
            Ref(table.name, column.name, ">", fk.column.table.name, fk.column.name)
            for table in tables
            for column in table.columns
            for fk in column.foreign_keys
        ),
    )
