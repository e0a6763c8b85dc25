"""Schema comparison producing ChangeSets."""

from dbml_toolkit.compare.main import diff
from dbml_toolkit.compare.report import (
    changes_to_html,
    changes_to_json,
    changes_to_summary,
)
from dbml_toolkit.compare.types import ChangeSet, Section

__all__ = [
    "ChangeSet",
    "Section",
    "changes_to_html",
    "changes_to_json",
    "changes_to_summary",
    "diff",
]
