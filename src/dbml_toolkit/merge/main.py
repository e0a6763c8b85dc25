"""Recombine a base schema, a generated schema and an edited ChangeSet."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from logging import getLogger
from typing import NamedTuple

from dbml_toolkit.compare.main import first_tables, unique_fields
from dbml_toolkit.compare.types import ChangeSet
from dbml_toolkit.config import CONVENTIONS, Conventions
from dbml_toolkit.errors import MergeWarning, MergeWarningKind
from dbml_toolkit.merge.dedup import dedup
from dbml_toolkit.merge.groups import rebuild_groups
from dbml_toolkit.merge.refs import ref_key, relation_refs
from dbml_toolkit.schema.parser import validate_schema
from dbml_toolkit.schema.serializer import quote_name, serialize
from dbml_toolkit.schema.types import INLINE_REF, Field, Ref, Schema, Table, unquote
from dbml_toolkit.typemap.canonical import is_known_spelling, is_primitive
from dbml_toolkit.typemap.inference import infer_relation_type, relation_stem

logger = getLogger(__name__)


class TableOrder(NamedTuple):
    """Display order of ChangeSet tables, maintained by the editor."""

    new_tables: Sequence[str] = ()
    new_fields: Sequence[str] = ()


class MergeResult(NamedTuple):
    """Merged schema, its final text and every recovered condition."""

    schema: Schema
    text: str
    warnings: tuple[MergeWarning, ...] = ()


def ordered(names: Iterable[str], order: Sequence[str]) -> list[str]:
    """Names following the given order first, then the rest as they came."""
    names = list(names)
    present = frozenset(names)
    head = [name for name in dict.fromkeys(order) if name in present]
    listed = frozenset(head)
    return head + [name for name in names if name not in listed]


def remap_constraint(constraint: str, rename_map: Mapping[str, str]) -> str:
    """Point an inline ref constraint at the renamed table."""
    if not (match := INLINE_REF.match(constraint.strip())):
        return constraint
    table = unquote(match["table"])
    if table not in rename_map:
        return constraint
    return f"ref: {match['op']} {quote_name(rename_map[table])}.{match['field']}"


def remap_field(field: Field, rename_map: Mapping[str, str]) -> Field:
    """Rewrite a field's relation type and inline ref through the rename map."""
    return field._replace(
        type=rename_map.get(field.type, field.type),
        constraints=tuple(remap_constraint(c, rename_map) for c in field.constraints),
    )


def without_inline_ref(field: Field) -> Field:
    """Drop inline ref constraints from a field."""
    return field._replace(
        constraints=tuple(
            c for c in field.constraints if not INLINE_REF.match(c.strip())
        ),
    )


class _Merger:
    """Runs one merge; holds the tables emitted so far and the warnings."""

    def __init__(
        self,
        base: Schema,
        generated: Schema,
        changes: ChangeSet,
        rename_map: Mapping[str, str],
        conventions: Conventions,
    ) -> None:
        self.base = base
        self.generated = generated
        self.changes = changes
        self.rename_map = rename_map
        self.conventions = conventions
        self.base_tables = first_tables(base)
        self.generated_tables = first_tables(generated)
        self.emitted: dict[str, Table] = {}
        self.managed: dict[str, frozenset[str]] = {}
        self.warnings: list[MergeWarning] = []

    def warn(self, kind: MergeWarningKind, message: str) -> None:
        logger.warning("%s: %s", kind, message)
        self.warnings.append(MergeWarning(kind, message))

    def previous_names(self, name: str) -> list[str]:
        """Names a table carried before it was renamed to ``name``."""
        return [
            old for old, new in self.rename_map.items() if new == name and old != name
        ]

    def lookup(self, tables: Mapping[str, Table], name: str) -> Table | None:
        for candidate in (*self.previous_names(name), name):
            if table := tables.get(candidate):
                return table
        return None

    def remap(self, fields: Iterable[Field]) -> list[Field]:
        kept = (field for field in fields if not field.is_blank)
        return [remap_field(field, self.rename_map) for field in kept]

    def new_tables(self, order: Sequence[str]) -> None:
        """Step 1: tables created by the ChangeSet."""
        for name in ordered(self.changes.new_tables, order):
            if not name.strip():
                logger.debug("Skipping table without a name")
                continue
            if not (fields := self.remap(self.changes.new_tables[name])):
                logger.debug("Skipping table %s without fields", name)
                continue
            note = self.changes.table_descriptions.get(name)
            self.emitted[name] = Table(name, tuple(unique_fields(fields)), note)
            self.managed[name] = frozenset(field.name for field in fields)

    def modified_tables(self, order: Sequence[str]) -> None:
        """Step 2: existing tables receiving new fields."""
        for name in ordered(self.changes.new_fields, order):
            if not name.strip() or name in self.emitted:
                continue
            base_table = self.lookup(self.base_tables, name)
            generated_table = self.lookup(self.generated_tables, name)
            if base_table is not None and generated_table is not None:
                existing = base_table.field_names
                original = [f for f in generated_table.fields if f.name in existing]
            elif base_table is not None:
                original = list(base_table.fields)
            elif generated_table is not None:
                added_names = {field.name for field in self.changes.new_fields[name]}
                original = [
                    f for f in generated_table.fields if f.name not in added_names
                ]
            else:
                original = []

            fields = self.remap(original) + self.remap(self.changes.new_fields[name])
            note = self.changes.table_descriptions.get(name) or next(
                (t.note for t in (generated_table, base_table) if t and t.note),
                None,
            )
            self.emitted[name] = Table(name, tuple(unique_fields(fields)), note)
            self.managed[name] = frozenset(
                field.name for field in self.changes.new_fields[name]
            )

    def untouched_tables(self) -> None:
        """Step 3: base tables the ChangeSet does not manage, by emitted name."""
        changed = frozenset(self.changes.table_names)
        rename_sources = frozenset(self.rename_map)
        rename_targets = frozenset(self.rename_map.values())

        for name, table in self.base_tables.items():
            new_name = self.rename_map.get(name, name)
            if new_name in changed or new_name in self.emitted:
                continue
            if name in rename_targets and name not in rename_sources:
                logger.debug("Skipping base table %s replaced by a rename", name)
                continue
            fields = [remap_field(field, self.rename_map) for field in table.fields]
            self.emitted[new_name] = Table(new_name, tuple(fields), table.note)

    def resolve_field(self, table: str, field: Field, known: frozenset[str]) -> Field:
        """Canonical DSL type for a ChangeSet field against the emitted tables."""
        inline = field.ref_target
        if inline is not None and inline not in known:
            self.warn(
                MergeWarningKind.DANGLING_REF_DROPPED,
                f"Dropped inline ref on {table}.{field.name} to missing table {inline}",
            )
            field = without_inline_ref(field)
            inline = None

        resolved = infer_relation_type(
            field.name,
            field.type,
            known,
            inline,
            self.conventions,
        )
        if is_primitive(resolved) and (
            relation_stem(field.name, self.conventions)
            or not is_known_spelling(field.type, self.conventions)
        ):
            self.warn(
                MergeWarningKind.AMBIGUOUS_RELATION_INFERENCE,
                f"No table found for {table}.{field.name} ({field.type}), "
                f"using {resolved}",
            )
        return field._replace(type=resolved)

    def resolve_types(self) -> None:
        """Resolve ChangeSet fields; other fields keep the types they came with."""
        known = frozenset(self.emitted)
        for name, pending in self.managed.items():
            table = self.emitted[name]
            fields = tuple(
                self.resolve_field(name, field, known) if field.name in pending else field
                for field in table.fields
            )
            self.emitted[name] = table._replace(fields=fields)

    def refs(self) -> list[Ref]:
        """Step 4: keep valid generated Refs, then add the ones field types imply."""
        kept: list[Ref] = []
        seen: set[tuple[str, str, str, str]] = set()

        for original in self.generated.refs:
            renamed = self.rename_map
            ref = original._replace(
                source_table=renamed.get(original.source_table, original.source_table),
                target_table=renamed.get(original.target_table, original.target_table),
            )
            source = self.emitted.get(ref.source_table)
            if (
                source is None
                or ref.target_table not in self.emitted
                or not source.has_field(ref.source_field)
            ):
                self.warn(
                    MergeWarningKind.DANGLING_REF_DROPPED,
                    f"Dropped ref {ref.source_table}.{ref.source_field} "
                    f"{ref.operator} {ref.target_table}.{ref.target_field}",
                )
                continue
            if (key := ref_key(ref, self.conventions)) not in seen:
                seen.add(key)
                kept.append(ref)

        synthesized = relation_refs(tuple(self.emitted.values()), kept, self.conventions)
        return kept + synthesized

    def run(self, order: TableOrder) -> MergeResult:
        self.new_tables(order.new_tables)
        self.modified_tables(order.new_fields)
        self.untouched_tables()
        self.resolve_types()

        refs = self.refs()
        groups, group_warnings = rebuild_groups(
            self.generated.groups,
            tuple(self.emitted),
            tuple(self.managed),
            self.rename_map,
        )
        for warning in group_warnings:
            self.warn(warning.kind, warning.message)

        schema = validate_schema(
            Schema(
                tables=tuple(self.emitted.values()),
                refs=tuple(refs),
                groups=tuple(groups),
            ),
        )
        text = dedup(serialize(schema), self.conventions)
        return MergeResult(schema=schema, text=text, warnings=tuple(self.warnings))


def merge_schemas(
    base: Schema,
    generated: Schema,
    changes: ChangeSet,
    rename_map: Mapping[str, str] | None = None,
    *,
    order: TableOrder | None = None,
    conventions: Conventions = CONVENTIONS,
) -> MergeResult:
    """Merge pending changes into one schema.

    Tables are emitted in priority order: tables created by the ChangeSet,
    then existing tables receiving new fields, then untouched base tables
    under their renamed names. ChangeSet tables follow ``order`` where it
    lists them. Refs from the generated schema survive only while both
    tables and the source field are emitted; field types naming an emitted
    table add the missing Refs. Groups keep emitted members and gain the
    created or modified tables. Nothing raises for missing references;
    each recovered condition is reported in ``warnings``.
    """
    merger = _Merger(base, generated, changes, rename_map or {}, conventions)
    return merger.run(order or TableOrder())


def merge(
    base: Schema,
    generated: Schema,
    changes: ChangeSet,
    rename_map: Mapping[str, str] | None = None,
    *,
    order: TableOrder | None = None,
) -> str:
    """Merge pending changes and return the final schema text."""
    return merge_schemas(base, generated, changes, rename_map, order=order).text
