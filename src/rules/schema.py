"""Schema rules over declared entities: slug identity, soft delete, index coverage."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from contract.report import RULE_INDEXING, RULE_SLUG, RULE_SOFT_DELETE, ViolationKind
from rules.engine import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from rules.config import ValidatorConfig
    from structure.project import FieldDecl, ProjectModel, SchemaEntity


def leading_index_columns(entity: SchemaEntity) -> set[str]:
    return {index.fields[0] for index in entity.indexes if index.fields}


def is_index_covered(entity: SchemaEntity, decl: FieldDecl) -> bool:
    """A field is covered by a leading index column, a unique flag or being the key."""
    return decl.primary_key or decl.unique or decl.name in leading_index_columns(entity)


def has_unique_slug(entity: SchemaEntity, slug_field: str) -> bool:
    decl = entity.get_field(slug_field)
    if decl is None:
        return False
    if decl.unique:
        return True
    return any(index.unique and index.fields == (slug_field,) for index in entity.indexes)


class SlugRule(Rule):
    rule_id = RULE_SLUG
    kind = ViolationKind.SLUG
    description = "Status and category tables carry a unique slug identity"

    def __init__(self, config: ValidatorConfig) -> None:
        super().__init__(config)
        self._table_patterns = [re.compile(p) for p in config.patterns.status_tables]
        self._identity_tables = set(config.patterns.identity_tables)

    def is_identity_table(self, table: str) -> bool:
        if table in self._identity_tables:
            return True
        return any(pattern.search(table) for pattern in self._table_patterns)

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        slug_field = self.config.patterns.slug_field
        for entity in model.schema_entities:
            if not self.is_identity_table(entity.table):
                continue
            if entity.get_field(slug_field) is None:
                problem = f"declares no '{slug_field}' field"
            elif not has_unique_slug(entity, slug_field):
                problem = f"has no unique index on '{slug_field}'"
            else:
                continue
            yield self.violation(
                file=entity.path,
                module=entity.module,
                symbol=entity.table,
                message=f"identity table '{entity.table}' {problem}",
            )


class SoftDeleteRule(Rule):
    rule_id = RULE_SOFT_DELETE
    kind = ViolationKind.SOFT_DELETE
    description = "Every entity declares the soft-delete marker"

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        patterns = self.config.patterns
        marker_names = " or ".join(f"'{name}'" for name in patterns.soft_delete_fields)
        for entity in model.schema_entities:
            problems: list[str] = []
            if not entity.soft_delete:
                problems.append(f"declares no soft-delete marker ({marker_names} or paranoid)")
            manual = [name for name in entity.field_names if name in patterns.manual_delete_fields]
            if manual:
                problems.append(f"uses a hand-rolled deletion flag '{manual[0]}'")
            if not problems:
                continue
            yield self.violation(
                file=entity.path,
                module=entity.module,
                symbol=entity.table,
                message=f"table '{entity.table}' " + " and ".join(problems),
            )


class IndexingRule(Rule):
    rule_id = RULE_INDEXING
    kind = ViolationKind.INDEX
    description = "Foreign keys, slugs and status fields are indexed"

    def __init__(self, config: ValidatorConfig) -> None:
        super().__init__(config)
        patterns = config.patterns
        self._status_patterns = [re.compile(p) for p in patterns.status_fields]
        self._fk_pattern = (
            re.compile(patterns.foreign_key_fields) if patterns.foreign_key_fields else None
        )

    def index_reason(self, decl: FieldDecl) -> str | None:
        """Return why a field needs an index, or None if it does not."""
        if decl.references is not None:
            return "foreign key"
        if self._fk_pattern is not None and self._fk_pattern.search(decl.name):
            return "foreign key"
        if decl.name == self.config.patterns.slug_field:
            return "slug"
        if any(pattern.search(decl.name) for pattern in self._status_patterns):
            return "status field"
        return None

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        for entity in model.schema_entities:
            for decl in entity.fields:
                reason = self.index_reason(decl)
                if reason is None or is_index_covered(entity, decl):
                    continue
                yield self.violation(
                    file=entity.path,
                    module=entity.module,
                    symbol=f"{entity.table}.{decl.name}",
                    message=f"{reason} '{entity.table}.{decl.name}' has no covering index",
                )


__all__ = [
    "IndexingRule",
    "SlugRule",
    "SoftDeleteRule",
    "has_unique_slug",
    "is_index_covered",
]
