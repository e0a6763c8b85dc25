"""Error and warning types raised or reported by the toolkit."""

from collections.abc import Iterable
from enum import StrEnum
from typing import NamedTuple


class DbmlError(Exception):
    """Base class for all toolkit errors."""


class ParseError(DbmlError, ValueError):
    """Schema text was rejected before any Schema was built."""


class NoTablesDefinedError(ParseError):
    """The text contains no Table declaration."""

    def __init__(self) -> None:
        super().__init__("No tables defined in schema text")


class UnbalancedBracesError(ParseError):
    """Opening and closing braces do not pair up."""

    def __init__(self, open_count: int, close_count: int) -> None:
        self.open_count = open_count
        self.close_count = close_count
        super().__init__(
            f"Unbalanced braces in schema text: {open_count} open, {close_count} close",
        )


class SchemaValidationError(DbmlError, ValueError):
    """A structurally parsed Schema breaks a schema-level invariant."""

    def __init__(self, duplicates: Iterable[str]) -> None:
        self.duplicates = tuple(duplicates)
        super().__init__(f"Duplicate tables in schema: {', '.join(self.duplicates)}")


class EditConflictError(DbmlError):
    """An edit operation cannot be applied to the current ChangeSet."""


class DuplicateTableNameError(EditConflictError):
    """A rename or insert would give two tables the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Table name already in use: {name}")


class UnknownTableError(EditConflictError, KeyError):
    """The named table is not part of the ChangeSet."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown table: {name}")

    def __str__(self) -> str:
        return str(self.args[0])


class MergeWarningKind(StrEnum):
    """Non-fatal conditions the merger recovers from."""

    DANGLING_REF_DROPPED = "dangling_ref_dropped"
    ORPHAN_GROUP_MEMBER_DROPPED = "orphan_group_member_dropped"
    AMBIGUOUS_RELATION_INFERENCE = "ambiguous_relation_inference"


class MergeWarning(NamedTuple):
    """A recovered condition reported alongside a merge result."""

    kind: MergeWarningKind
    message: str
