"""Line-level cleanup dropping repeated field and relationship declarations."""

import re
from collections.abc import Iterator
from logging import getLogger
from typing import NamedTuple

from dbml_toolkit.config import CONVENTIONS, Conventions
from dbml_toolkit.schema.types import unquote
from dbml_toolkit.typemap.canonical import canonical_identifier

logger = getLogger(__name__)

NAME = r'"[^"]+"|\w+'
TRIPLE_QUOTE = "'''"

TABLE_OPEN = re.compile(
    r'^\s*Table\s+(?P<name>"[^"]+"|[\w.]+)[^{]*\{\s*$',
    re.IGNORECASE,
)
FIELD_DECL = re.compile(rf"^\s*(?P<name>{NAME})\s+[^\s{{].*(?<!\{{)$", re.DOTALL)
BLOCK_OPEN = re.compile(r"\{\s*$")
CLOSE = re.compile(r"^\s*\}\s*$")
REF_DECL = re.compile(
    rf"^\s*Ref(?:\s+\w+)?\s*:\s*(?P<source_table>{NAME})\.(?P<source_field>{NAME})"
    rf"\s*[<>-]\s*(?P<target_table>{NAME})\.(?P<target_field>{NAME})",
    re.IGNORECASE,
)


class InsideTable(NamedTuple):
    """Scanner state while between a table's braces."""

    name: str
    seen: set[str]
    depth: int = 1


def logical_lines(text: str) -> Iterator[str]:
    """Yield lines, joining those that sit inside one multi-line string."""
    pending: list[str] = []
    for line in text.split("\n"):
        pending.append(line)
        if "\n".join(pending).count(TRIPLE_QUOTE) % 2 == 0:
            yield "\n".join(pending)
            pending = []
    if pending:
        yield "\n".join(pending)


def dedup(text: str, conventions: Conventions = CONVENTIONS) -> str:
    """Drop repeated field declarations per table and repeated Refs globally.

    Two fields repeat when they share a name inside the same table block.
    Two Refs repeat when source table, source field and target table match
    and their target fields are the same once identifier spellings such as
    ``id`` and ``_id`` are treated as one. Running this twice changes
    nothing the second time.
    """
    state: InsideTable | None = None
    seen_refs: set[tuple[str, str, str, str]] = set()
    kept: list[str] = []

    for line in logical_lines(text):
        if ref := REF_DECL.match(line):
            key = (
                unquote(ref["source_table"]),
                unquote(ref["source_field"]),
                unquote(ref["target_table"]),
                canonical_identifier(unquote(ref["target_field"]), conventions),
            )
            if key in seen_refs:
                logger.debug("Dropping repeated ref: %s", line.strip())
                continue
            seen_refs.add(key)
            kept.append(line)
            continue

        if state is None:
            if table := TABLE_OPEN.match(line):
                state = InsideTable(unquote(table["name"]), set())
            kept.append(line)
            continue

        if CLOSE.match(line):
            state = None if state.depth == 1 else state._replace(depth=state.depth - 1)
        elif BLOCK_OPEN.search(line):
            state = state._replace(depth=state.depth + 1)
        elif state.depth == 1 and (field := FIELD_DECL.match(line)):
            name = unquote(field["name"])
            if name.lower() != "note":
                if name in state.seen:
                    logger.debug("Dropping repeated field %s.%s", state.name, name)
                    continue
                state.seen.add(name)
        kept.append(line)

    return "\n".join(kept)
