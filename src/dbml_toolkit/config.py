"""Module for loading naming conventions and type vocabularies."""

from pathlib import Path
from tomllib import load
from typing import Any, TypedDict


class Identifiers(TypedDict):
    """Identifier field naming conventions."""

    sentinel: str
    suffix: str
    legacy: list[str]


class Placeholders(TypedDict):
    """Default names used when the editor creates fields and tables."""

    field: str
    field_type: str
    table: str
    table_note: str


class Groups(TypedDict):
    """TableGroup presentation defaults."""

    color: str


class TypeFamily(TypedDict):
    """Raw type spellings that collapse into one canonical type."""

    name: str
    spellings: list[str]


class Conventions(TypedDict):
    """All conventions loaded from a conventions file."""

    identifiers: Identifiers
    placeholders: Placeholders
    groups: Groups
    types: list[TypeFamily]


CONVENTIONS_FILE = Path(__file__).parent / "conventions.toml"

SECTIONS = ("identifiers", "placeholders", "groups", "types")


def load_conventions(path: Path | None = None) -> Conventions:
    """Load conventions from the given file, or the packaged default."""
    with (path or CONVENTIONS_FILE).open("rb") as f:
        data: dict[str, Any] = load(f)

    for section in SECTIONS:
        if section not in data:
            msg = f"Missing conventions section: {section}"
            raise ValueError(msg)

    return Conventions(
        identifiers=data["identifiers"],
        placeholders=data["placeholders"],
        groups=data["groups"],
        types=data["types"],
    )


CONVENTIONS = load_conventions()


def identifier_spellings(conventions: Conventions = CONVENTIONS) -> frozenset[str]:
    """All field names treated as a table's own identifier."""
    identifiers = conventions["identifiers"]
    return frozenset((identifiers["sentinel"], *identifiers["legacy"]))
