"""Structural model of an inspected project.

Everything here is produced once by the builder and then shared read-only
by every rule worker, so all types are frozen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from contract.report import MODULE_ROLES, PROJECT_SCOPE

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from scan.files import TreeNode

LiteralKind = Literal["string", "number"]
MigrationAction = Literal["create", "alter"]
OperationKind = Literal[
    "create_table",
    "drop_table",
    "add_column",
    "remove_column",
    "rename_column",
    "change_column",
    "add_index",
]
FindingKind = Literal["empty-module", "missing-directory", "stray-file", "stray-directory"]

CONVENTIONAL_DIRECTORIES: tuple[str, ...] = (
    "api",
    "bootstrap",
    "common",
    "config",
    "infrastructure",
    "modules",
)


@dataclass(frozen=True)
class NamingToken:
    """A path segment tagged with its naming compliance."""

    segment: str
    path: str
    compliant: bool
    reason: str = ""


@dataclass(frozen=True)
class ImportSite:
    line: int
    source: str


@dataclass(frozen=True)
class CallSite:
    line: int
    callee: str


@dataclass(frozen=True)
class ConstantUsageSite:
    """A string or numeric literal found in source code."""

    path: str
    line: int
    literal: str
    kind: LiteralKind


@dataclass(frozen=True)
class EnvUsageSite:
    """A reference to an environment accessor such as ``process.env.X``."""

    path: str
    line: int
    expression: str


@dataclass(frozen=True)
class ClassDecl:
    name: str
    line: int
    bases: tuple[str, ...] = ()


@dataclass(frozen=True)
class SourceFacts:
    """Declaration-level facts extracted from one source file."""

    path: str
    imports: tuple[ImportSite, ...] = ()
    calls: tuple[CallSite, ...] = ()
    constructions: tuple[CallSite, ...] = ()
    literals: tuple[ConstantUsageSite, ...] = ()
    env_sites: tuple[EnvUsageSite, ...] = ()
    classes: tuple[ClassDecl, ...] = ()
    has_syntax_errors: bool = False


@dataclass(frozen=True)
class FieldDecl:
    name: str
    type: str = "UNKNOWN"
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    references: str | None = None


@dataclass(frozen=True)
class IndexDecl:
    fields: tuple[str, ...]
    unique: bool = False
    name: str | None = None


@dataclass(frozen=True)
class SchemaEntity:
    """One declared table from the infrastructure schema declarations."""

    table: str
    model_name: str
    path: str
    fields: tuple[FieldDecl, ...] = ()
    indexes: tuple[IndexDecl, ...] = ()
    soft_delete: bool = False
    soft_delete_field: str | None = None
    has_slug: bool = False
    module: str = PROJECT_SCOPE

    def get_field(self, name: str) -> FieldDecl | None:
        for decl in self.fields:
            if decl.name == name:
                return decl
        return None

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(decl.name for decl in self.fields)


@dataclass(frozen=True)
class MigrationOperation:
    kind: OperationKind
    table: str
    column: str | None = None
    new_column: str | None = None
    fields: tuple[FieldDecl, ...] = ()


@dataclass(frozen=True)
class MigrationRecord:
    """One migration file's effect on one table."""

    timestamp: str
    table: str
    action: MigrationAction
    filename: str
    path: str
    operations: tuple[MigrationOperation, ...] = ()
    well_named: bool = True
    module: str = PROJECT_SCOPE

    def sort_key(self) -> tuple[str, str]:
        return (self.timestamp, self.filename)


@dataclass(frozen=True)
class ModuleFile:
    name: str
    path: str
    prefix: str
    suffix: str
    role: str | None = None
    auxiliary: bool = False


@dataclass(frozen=True)
class ModuleDescriptor:
    """A directory under ``modules/`` interpreted as a domain module.

    A descriptor with submodules is a pure namespace: role requirements
    apply to each submodule instead of to the namespace itself.
    """

    name: str
    qualified_name: str
    path: str
    role_files: tuple[tuple[str, str], ...] = ()
    submodules: tuple[ModuleDescriptor, ...] = ()
    unclassified_files: tuple[str, ...] = ()
    nested_directories: tuple[str, ...] = ()
    files: tuple[ModuleFile, ...] = ()
    has_docs: bool = False

    @property
    def is_namespace(self) -> bool:
        return bool(self.submodules)

    def roles_present(self) -> set[str]:
        return {role for role, _ in self.role_files}

    def missing_roles(self, required: list[str] | tuple[str, ...] = MODULE_ROLES) -> list[str]:
        if self.is_namespace:
            return []
        present = self.roles_present()
        return [role for role in required if role not in present]

    def iter_modules(self) -> Iterator[ModuleDescriptor]:
        yield self
        for submodule in self.submodules:
            yield from submodule.iter_modules()


@dataclass(frozen=True)
class StructureFinding:
    kind: FindingKind
    path: str
    message: str
    module: str = PROJECT_SCOPE


@dataclass(frozen=True)
class ParseFailure:
    path: str
    message: str
    module: str = PROJECT_SCOPE


@dataclass(frozen=True)
class ProjectModel:
    """Typed interpretation of a scanned project tree."""

    root_name: str
    source_root: str
    tree: TreeNode
    modules: tuple[ModuleDescriptor, ...] = ()
    sources: Mapping[str, SourceFacts] = field(default_factory=dict)
    schema_entities: tuple[SchemaEntity, ...] = ()
    migrations: tuple[MigrationRecord, ...] = ()
    findings: tuple[StructureFinding, ...] = ()
    failures: tuple[ParseFailure, ...] = ()

    def iter_modules(self) -> Iterator[ModuleDescriptor]:
        for module in self.modules:
            yield from module.iter_modules()

    def module_for_path(self, path: str) -> str:
        """Return the qualified name of the deepest module containing ``path``."""
        best = PROJECT_SCOPE
        best_len = -1
        for module in self.iter_modules():
            prefix = f"{module.path}/"
            if path.startswith(prefix) and len(prefix) > best_len:
                best = module.qualified_name
                best_len = len(prefix)
        return best

    def layout_path(self, path: str) -> str:
        """Return ``path`` relative to the source root when it lies inside it."""
        if self.source_root and path.startswith(f"{self.source_root}/"):
            return path[len(self.source_root) + 1 :]
        return path

    def migrations_for(self, table: str) -> list[MigrationRecord]:
        records = [record for record in self.migrations if record.table == table]
        return sorted(records, key=MigrationRecord.sort_key)


__all__ = [
    "CONVENTIONAL_DIRECTORIES",
    "CallSite",
    "ClassDecl",
    "ConstantUsageSite",
    "EnvUsageSite",
    "FieldDecl",
    "ImportSite",
    "IndexDecl",
    "MigrationOperation",
    "MigrationRecord",
    "ModuleDescriptor",
    "ModuleFile",
    "NamingToken",
    "ParseFailure",
    "ProjectModel",
    "SchemaEntity",
    "SourceFacts",
    "StructureFinding",
]
