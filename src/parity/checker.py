"""Schema to migration parity.

Cross-references the declared schema entities against the migration
history. Both sources agree only by naming convention: a migration targets
the table named in its ``queryInterface`` calls, or failing that, the table
derived from its filename slug.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from contract.report import RULE_PARITY, ViolationKind
from rules.engine import Rule

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from contract.models import Violation
    from structure.project import FieldDecl, MigrationRecord, ProjectModel, SchemaEntity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParityResult:
    """Outcome of comparing one entity against its migration history."""

    table: str
    has_history: bool
    missing_columns: tuple[str, ...] = ()
    nullability: tuple[tuple[str, bool, bool], ...] = ()
    note: str | None = None

    @property
    def ok(self) -> bool:
        if not self.has_history or self.note:
            return False
        return not self.missing_columns and not self.nullability


def replay_chain(records: Iterable[MigrationRecord]) -> dict[str, FieldDecl] | None:
    """Replay the latest create/alter chain and return the resulting columns.

    ``records`` must be in history order. Replay starts at the most recent
    ``createTable``; returns None when no record creates the table.
    """
    operations = [op for record in records for op in record.operations]
    start = None
    for index, op in enumerate(operations):
        if op.kind == "create_table":
            start = index
    if start is None:
        return None

    columns: dict[str, FieldDecl] = {}
    for op in operations[start:]:
        if op.kind == "create_table":
            columns = {decl.name: decl for decl in op.fields}
        elif op.kind == "drop_table":
            columns = {}
        elif op.kind in {"add_column", "change_column"} and op.column is not None:
            columns[op.column] = op.fields[0]
        elif op.kind == "remove_column" and op.column is not None:
            columns.pop(op.column, None)
        elif op.kind == "rename_column" and op.column in columns and op.new_column:
            columns[op.new_column] = columns.pop(op.column)
    return columns


def check_parity(entity: SchemaEntity, records: list[MigrationRecord]) -> ParityResult:
    """Compare field names and nullability of ``entity`` with its history."""
    if not records:
        return ParityResult(table=entity.table, has_history=False)

    columns = replay_chain(records)
    if columns is None:
        if any(record.operations for record in records):
            return ParityResult(
                table=entity.table,
                has_history=True,
                note="migration history alters the table but never creates it",
            )
        # Only unparsed, filename-derived records: names match, shape unknown.
        return ParityResult(table=entity.table, has_history=True)

    missing = tuple(decl.name for decl in entity.fields if decl.name not in columns)
    nullability = tuple(
        (decl.name, decl.nullable, columns[decl.name].nullable)
        for decl in entity.fields
        if decl.name in columns and columns[decl.name].nullable != decl.nullable
    )
    return ParityResult(
        table=entity.table,
        has_history=True,
        missing_columns=missing,
        nullability=nullability,
    )


def _describe_drift(result: ParityResult) -> str:
    parts: list[str] = []
    if result.note:
        parts.append(result.note)
    if result.missing_columns:
        parts.append(f"columns missing from migrations: {', '.join(result.missing_columns)}")
    for name, declared, migrated in result.nullability:
        declared_text = "nullable" if declared else "not null"
        migrated_text = "nullable" if migrated else "not null"
        parts.append(f"'{name}' is {declared_text} in the model but {migrated_text} in migrations")
    return "; ".join(parts)


class ParityRule(Rule):
    rule_id = RULE_PARITY
    kind = ViolationKind.SCHEMA_DRIFT
    description = "Every declared table has a migration history that matches its fields"

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        for entity in model.schema_entities:
            result = check_parity(entity, model.migrations_for(entity.table))
            if result.ok:
                continue
            if not result.has_history:
                yield self.violation(
                    kind=ViolationKind.MISSING_MIGRATION,
                    file=entity.path,
                    module=entity.module,
                    symbol=entity.table,
                    message=f"table '{entity.table}' has no migration",
                )
                continue
            yield self.violation(
                kind=ViolationKind.SCHEMA_DRIFT,
                file=entity.path,
                module=entity.module,
                symbol=entity.table,
                message=f"table '{entity.table}' drifted from its migrations: {_describe_drift(result)}",
            )

        reported: set[str] = set()
        for record in model.migrations:
            if record.well_named or record.path in reported:
                continue
            reported.add(record.path)
            yield self.violation(
                kind=ViolationKind.MIGRATION_NAMING,
                file=record.path,
                module=record.module,
                message=(
                    f"migration filename '{record.filename}' does not match "
                    "<14-digit timestamp>-<kebab-slug>.ts|js"
                ),
            )

        logger.debug(
            "Parity checked %d entities against %d migration records",
            len(model.schema_entities),
            len(model.migrations),
        )


__all__ = ["ParityResult", "ParityRule", "check_parity", "replay_chain"]
