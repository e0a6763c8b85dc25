"""Helpers for raw schema text from untrusted generators."""

import re
from collections.abc import Sequence

from dbml_toolkit.schema.parser import TABLE_HEADER
from dbml_toolkit.schema.serializer import join_sections, table_to_text
from dbml_toolkit.schema.tokenizer import TokenKind, tokenize
from dbml_toolkit.schema.types import Schema, unquote

CODE_FENCE_START = re.compile(r"^```[\w-]*\s*\n?")
CODE_FENCE_END = re.compile(r"\n?```\s*$")
TABLE_LINE = re.compile(
    r'^\s*Table\s+(?:"(?P<quoted>[^"]+)"|(?P<bare>[\w.]+))',
    re.IGNORECASE,
)


def clean_generated_text(text: str) -> str:
    """Strip a surrounding Markdown code fence and percent signs."""
    text = text.strip()
    if text.startswith("```"):
        text = CODE_FENCE_END.sub("", CODE_FENCE_START.sub("", text))
    return text.replace("%", "").strip()


def table_names(text: str) -> tuple[str, ...]:
    """Table names declared in the text, in order, without parsing fields."""
    return tuple(
        unquote(match["name"])
        for token in tokenize(text)
        if token.kind is TokenKind.TEXT and (match := TABLE_HEADER.match(token.text))
    )


def extract_table(text: str, name: str) -> str | None:
    """Return the raw lines of one table block, or None if it is absent."""
    lines: list[str] = []
    depth = 0

    for line in text.splitlines():
        if not lines:
            match = TABLE_LINE.match(line)
            if not match or (match["quoted"] or match["bare"]) != name:
                continue
        lines.append(line)
        depth += line.count("{") - line.count("}")
        if depth <= 0 and "{" in "".join(lines):
            break

    return "\n".join(lines) if lines else None


def outline(schema: Schema) -> str:
    """Render tables with their notes only, dropping every field."""
    tables = (table._replace(fields=()) for table in schema.tables)
    return join_sections(["\n\n".join(table_to_text(table) for table in tables)])


def common_suffix(names: Sequence[str]) -> str | None:
    """Longest run of ``_``-separated parts that ends every name.

    ``["admin_notification", "user_notification"]`` gives ``notification``.
    Fewer than two names have no common suffix.
    """
    if len(names) < 2:  # noqa: PLR2004
        return None

    split = [name.split("_") for name in names]
    common: list[str] = []
    for size in range(1, len(split[0]) + 1):
        suffix = split[0][-size:]
        if any(parts[-size:] != suffix for parts in split[1:]):
            break
        common = suffix
    return "_".join(common) or None


def consolidated_name(names: Sequence[str]) -> str:
    """Suggested name for one table replacing several."""
    return common_suffix(names) or f"consolidated_{names[0]}"
