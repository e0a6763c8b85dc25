"""Command line interface for DBML Toolkit."""

import logging
import sys
from json import dumps
from pathlib import Path
from typing import Annotated, Any, Literal

from cyclopts import App, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dbml_toolkit.compare import (
    ChangeSet,
    changes_to_html,
    changes_to_json,
    changes_to_summary,
    diff,
)
from dbml_toolkit.edit import EditSession
from dbml_toolkit.errors import EditConflictError, ParseError
from dbml_toolkit.merge import dedup, ensure_refs
from dbml_toolkit.schema import Schema, parse, schema_to_dict, serialize
from dbml_toolkit.schema.text import clean_generated_text
from dbml_toolkit.typemap import normalize_types, read_only_sqlite, sqlite_to_schema
from dbml_toolkit.typemap.sqlalchemy_export import SQLDialect, schema_to_ddl

app = App(help="DBML Toolkit CLI tool")

type Format = Literal["table", "json", "html"]

console = Console()
err_console = Console(stderr=True)

SQLITE_EXTENSIONS = {".sqlite", ".db", ".sqlite3"}


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}", highlight=False)


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}", highlight=False)


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}", highlight=False)


def configure_logging(*, verbose: bool = False) -> None:
    """Send library log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def validate_file_location(location: Path) -> None:
    """Validate that an input file exists."""
    if not location.is_file():
        print_error(f"File does not exist: {location}")
        sys.exit(1)


def read_text(location: Path) -> str:
    """Read an input file, exiting when it is missing."""
    validate_file_location(location)
    return location.read_text(encoding="utf-8")


def load_schema(location: Path, *, generated: bool = False) -> Schema:
    """Read and parse a schema file, exiting with a message when it is rejected."""
    text = read_text(location)
    if generated:
        text = clean_generated_text(text)
    try:
        return parse(text)
    except ParseError as e:
        print_error(f"{location}: {e}")
        sys.exit(1)


def format_changes_table(data: list[dict[str, Any]]) -> None:
    """Format a change summary as a rich table."""
    if not data:
        console.print("No differences found between schemas.")
        return

    table = Table(title="Schema Changes")
    table.add_column("Table", style="bold cyan")
    table.add_column("Change", style="bold yellow")
    table.add_column("Fields", style="bold yellow")
    table.add_column("Description")

    for change in data:
        table.add_row(
            change.get("name", ""),
            change.get("change_type", ""),
            str(change.get("fields", 0)),
            change.get("description", ""),
        )

    console.print(table)


def write_changes(changes: ChangeSet, fmt: Format) -> None:
    """Write a ChangeSet to stdout in the requested format."""
    if fmt == "html":
        sys.stdout.write(changes_to_html(changes))
    elif fmt == "json":
        sys.stdout.write(changes_to_json(changes))
    elif fmt == "table":
        format_changes_table(changes_to_summary(changes))


def parse_renames(renames: list[str]) -> list[tuple[str, str]]:
    """Split ``old=new`` rename arguments."""
    pairs: list[tuple[str, str]] = []
    for rename in renames:
        old, separator, new = rename.partition("=")
        if not separator or not old.strip() or not new.strip():
            print_error(f"Invalid rename '{rename}', expected OLD=NEW")
            sys.exit(1)
        pairs.append((old.strip(), new.strip()))
    return pairs


@app.command(name="parse")
def parse_command(location: Path, fmt: Literal["json", "dbml"] = "json") -> None:
    """Parse a schema file and print its structure."""
    schema = load_schema(location)
    print_info(f"Parsed {len(schema.tables)} tables from {location}")

    if fmt == "json":
        sys.stdout.write(dumps(schema_to_dict(schema), ensure_ascii=False))
    elif fmt == "dbml":
        sys.stdout.write(serialize(schema))


@app.command(name="diff")
def diff_command(base: Path, proposed: Path, fmt: Format = "table") -> None:
    """Compare a base schema with a proposed one."""
    base_schema = load_schema(base)
    proposed_schema = load_schema(proposed, generated=True)
    print_info(f"Base schema: {base}")
    print_info(f"Proposed schema: {proposed}")

    write_changes(diff(base_schema, proposed_schema), fmt)


@app.command(name="merge")
def merge_command(
    base: Path,
    proposed: Path,
    *,
    rename: list[str] | None = None,
) -> None:
    """Merge the additions of a proposed schema into a base schema.

    Tables can be renamed on the way with ``--rename OLD=NEW``.
    """
    session = EditSession.start(load_schema(base), load_schema(proposed, generated=True))
    try:
        for old, new in parse_renames(rename or []):
            session.rename_table(old, new)
    except EditConflictError as e:
        print_error(str(e))
        sys.exit(1)

    result = session.merge_result()
    sys.stdout.write(result.text)
    if result.warnings:
        print_info(f"Merge completed with {len(result.warnings)} warnings")
    else:
        print_success("Merge completed successfully")


@app.command(name="dedup")
def dedup_command(location: Path) -> None:
    """Remove repeated field and relationship declarations from a schema file."""
    sys.stdout.write(dedup(read_text(location)))


@app.command
def normalize(location: Path) -> None:
    """Rewrite field types to canonical or relation types and add implied refs."""
    schema = ensure_refs(normalize_types(load_schema(location)))
    sys.stdout.write(serialize(schema))


@app.command
def ddl(location: Path, dialect: SQLDialect = "sqlite") -> None:
    """Generate CREATE TABLE statements for a schema file."""
    schema = load_schema(location)
    print_info(f"SQL dialect: {dialect}")
    sys.stdout.write(schema_to_ddl(schema, dialect))


@app.command
def reflect(sqlite_location: Path) -> None:
    """Describe an existing SQLite database as a schema."""
    validate_file_location(sqlite_location)
    if sqlite_location.suffix.lower() not in SQLITE_EXTENSIONS:
        print_error(
            "Database file has invalid extension: "
            f"{', '.join(sorted(SQLITE_EXTENSIONS))}",
        )
        sys.exit(1)

    print_info(f"Source database: {sqlite_location}")
    schema = sqlite_to_schema(read_only_sqlite(sqlite_location))
    sys.stdout.write(serialize(schema))


@app.meta.default
def launcher(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    verbose: bool = False,
) -> None:
    """Configure logging, then run the requested command."""
    configure_logging(verbose=verbose)
    app(tokens)


def main() -> None:
    """Entry point for the CLI."""
    app.meta()


if __name__ == "__main__":
    main()
