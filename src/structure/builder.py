"""Structural model builder: interpret a scanned tree as modules, schema and migrations."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from contract.report import MODULE_ROLES, PROJECT_SCOPE
from parse.migrations import extract_migration_records
from parse.schema import SchemaParseError, extract_schema_entities
from parse.treesitter_ts import extract_source_facts, parse_source
from structure.project import (
    CONVENTIONAL_DIRECTORIES,
    MigrationRecord,
    ModuleDescriptor,
    ModuleFile,
    ParseFailure,
    ProjectModel,
    SchemaEntity,
    SourceFacts,
    StructureFinding,
)
from utils import matches_any, name_variants, split_suffix

if TYPE_CHECKING:
    from rules.config import ValidatorConfig
    from scan.files import TreeNode

logger = logging.getLogger(__name__)


def _find_source_root(tree: TreeNode) -> TreeNode:
    """Return ``src/`` when it holds a conventional directory, else the root."""
    src = tree.child("src")
    if src is not None and src.is_dir:
        if any(src.child(name) is not None for name in CONVENTIONAL_DIRECTORIES):
            return src
    return tree


def _classify_file(node: TreeNode, config: ValidatorConfig) -> ModuleFile | None:
    """Classify a module file by its case-sensitive suffix.

    Non-source files (README.md, fixtures) return None.
    """
    layout = config.layout
    split = split_suffix(node.name, layout.source_extensions)
    if split is None:
        return None
    prefix, suffix = split
    role = suffix if suffix in MODULE_ROLES else None
    auxiliary = role is None and (
        suffix in layout.auxiliary_suffixes or node.name in layout.allowed_filenames
    )
    return ModuleFile(
        name=node.name,
        path=node.path,
        prefix=prefix,
        suffix=suffix,
        role=role,
        auxiliary=auxiliary,
    )


def _contains_role_files(node: TreeNode, config: ValidatorConfig) -> bool:
    for file_node in node.iter_files():
        classified = _classify_file(file_node, config)
        if classified is not None and classified.role is not None:
            return True
    return False


def _relative_directories(node: TreeNode) -> list[str]:
    """List ``node`` and its descendant directories relative to its parent."""
    found: list[str] = []
    stack = [(node, node.name)]
    while stack:
        current, relative = stack.pop()
        found.append(relative)
        for child in sorted(current.subdirectories(), key=lambda n: n.name, reverse=True):
            stack.append((child, f"{relative}/{child.name}"))
    return found


class _ModelBuilder:
    """Accumulates the pieces of a ProjectModel during one build."""

    def __init__(self, root: Path, tree: TreeNode, config: ValidatorConfig) -> None:
        self.root = root
        self.tree = tree
        self.config = config
        self.source_root = _find_source_root(tree)
        self.findings: list[StructureFinding] = []
        self.failures: list[ParseFailure] = []

    def layout_path(self, path: str) -> str:
        prefix = self.source_root.path
        if prefix and path.startswith(f"{prefix}/"):
            return path[len(prefix) + 1 :]
        return path

    def _prefixed(self, name: str) -> str:
        return f"{self.source_root.path}/{name}" if self.source_root.path else name

    # -- modules ---------------------------------------------------------

    def check_conventional_directories(self) -> None:
        for name in CONVENTIONAL_DIRECTORIES:
            node = self.source_root.child(name)
            if node is None or not node.is_dir:
                self.findings.append(
                    StructureFinding(
                        kind="missing-directory",
                        path=self._prefixed(name),
                        message=f"missing conventional directory '{name}/'",
                    )
                )

    def build_modules(self) -> tuple[ModuleDescriptor, ...]:
        modules_node = self.source_root.child("modules")
        if modules_node is None or not modules_node.is_dir:
            return ()

        layout = self.config.layout
        for file_node in modules_node.files():
            if file_node.name in layout.allowed_filenames or file_node.name == layout.doc_filename:
                continue
            self.findings.append(
                StructureFinding(
                    kind="stray-file",
                    path=file_node.path,
                    message=f"file '{file_node.name}' sits directly under modules/ outside any module",
                )
            )

        return tuple(
            self._build_module(directory, parent=None)
            for directory in sorted(modules_node.subdirectories(), key=lambda n: n.name)
        )

    def _build_module(self, node: TreeNode, parent: str | None) -> ModuleDescriptor:
        qualified_name = f"{parent}/{node.name}" if parent else node.name
        layout = self.config.layout

        files: list[ModuleFile] = []
        unclassified: list[str] = []
        has_docs = False
        for file_node in sorted(node.files(), key=lambda n: n.name):
            if file_node.name == layout.doc_filename:
                has_docs = True
            classified = _classify_file(file_node, self.config)
            if classified is None:
                continue
            files.append(classified)
            if classified.role is None and not classified.auxiliary:
                unclassified.append(classified.name)

        role_order = {role: index for index, role in enumerate(MODULE_ROLES)}
        role_files = sorted(
            ((f.role, f.name) for f in files if f.role is not None),
            key=lambda item: (role_order[item[0]], item[1]),
        )

        submodules: list[ModuleDescriptor] = []
        nested: list[str] = []
        for directory in sorted(node.subdirectories(), key=lambda n: n.name):
            if _contains_role_files(directory, self.config):
                submodules.append(self._build_module(directory, parent=qualified_name))
            else:
                nested.extend(_relative_directories(directory))
                self.findings.append(
                    StructureFinding(
                        kind="stray-directory",
                        path=directory.path,
                        module=qualified_name,
                        message=(
                            f"directory '{directory.name}' inside module '{qualified_name}' "
                            "holds no module role files"
                        ),
                    )
                )

        if not role_files and not submodules:
            self.findings.append(
                StructureFinding(
                    kind="empty-module",
                    path=node.path,
                    module=qualified_name,
                    message=f"empty or unclassified module '{qualified_name}'",
                )
            )

        return ModuleDescriptor(
            name=node.name,
            qualified_name=qualified_name,
            path=node.path,
            role_files=tuple(role_files),  # type: ignore[arg-type]
            submodules=tuple(submodules),
            unclassified_files=tuple(unclassified),
            nested_directories=tuple(nested),
            files=tuple(files),
            has_docs=has_docs,
        )

    # -- sources, schema, migrations --------------------------------------

    def parse_sources(
        self,
    ) -> tuple[dict[str, SourceFacts], list[SchemaEntity], list[MigrationRecord]]:
        layout = self.config.layout
        patterns = self.config.patterns
        sources: dict[str, SourceFacts] = {}
        entities: list[SchemaEntity] = []
        migrations: list[MigrationRecord] = []

        for file_node in self.tree.iter_files():
            layout_path = self.layout_path(file_node.path)
            is_source = file_node.name.endswith(tuple(layout.source_extensions))
            is_schema = is_source and matches_any(layout_path, layout.schema_globs)
            is_migration = matches_any(layout_path, layout.migration_globs)
            if not (is_source or is_migration):
                continue

            try:
                source_bytes = (self.root / file_node.path).read_bytes()
            except OSError as exc:
                self._fail(file_node.path, f"cannot read file: {exc}")
                if is_migration:
                    migrations.extend(extract_migration_records(b"", None, file_node.path))
                continue

            try:
                tree = parse_source(source_bytes, file_node.name)
                if tree.root_node.has_error:
                    self._fail(
                        file_node.path, "file contains syntax errors; findings may be incomplete"
                    )

                if is_source:
                    sources[file_node.path] = extract_source_facts(
                        source_bytes,
                        tree,
                        file_node.path,
                        env_accessors=patterns.env_accessors,
                    )

                if is_migration:
                    migrations.extend(
                        extract_migration_records(source_bytes, tree, file_node.path)
                    )
                elif is_schema:
                    entities.extend(
                        extract_schema_entities(
                            source_bytes,
                            tree,
                            file_node.path,
                            soft_delete_fields=patterns.soft_delete_fields,
                            slug_field=patterns.slug_field,
                        )
                    )
            except SchemaParseError as exc:
                location = f" (line {exc.line})" if exc.line else ""
                self._fail(file_node.path, f"cannot read schema declaration{location}: {exc}")
            except Exception as exc:  # noqa: BLE001
                logger.warning("Cannot extract facts from %s", file_node.path, exc_info=True)
                self._fail(
                    file_node.path,
                    f"cannot extract facts: {type(exc).__name__}: {exc}",
                )
                if is_migration and not any(r.path == file_node.path for r in migrations):
                    migrations.extend(extract_migration_records(b"", None, file_node.path))

        return sources, entities, migrations

    def _fail(self, path: str, message: str) -> None:
        logger.debug("Parse failure in %s: %s", path, message)
        self.failures.append(ParseFailure(path=path, message=message))


def _attribute_module(path: str, table: str, modules: list[ModuleDescriptor]) -> str:
    """Attribute a table to a module by location first, then by name."""
    best = ""
    best_len = -1
    for module in modules:
        prefix = f"{module.path}/"
        if path.startswith(prefix) and len(prefix) > best_len:
            best, best_len = module.qualified_name, len(prefix)
    if best or not table:
        return best

    variants = name_variants(table)
    for module in sorted(modules, key=lambda m: m.qualified_name):
        if module.name in variants:
            return module.qualified_name
    return PROJECT_SCOPE


def build_project_model(root: Path, tree: TreeNode, config: ValidatorConfig) -> ProjectModel:
    """Interpret a scanned tree into a frozen ProjectModel.

    Per-file read or parse problems are recorded as ParseFailure entries
    on the model; they never abort the build.
    """
    builder = _ModelBuilder(root, tree, config)
    builder.check_conventional_directories()
    modules = builder.build_modules()
    sources, entities, migrations = builder.parse_sources()

    all_modules = [descriptor for module in modules for descriptor in module.iter_modules()]

    attributed_entities = [
        replace(entity, module=_attribute_module(entity.path, entity.table, all_modules))
        for entity in entities
    ]
    attributed_entities.sort(key=lambda entity: (entity.table, entity.path))

    table_modules = {entity.table: entity.module for entity in attributed_entities}
    attributed_migrations = [
        replace(record, module=table_modules.get(record.table, PROJECT_SCOPE))
        for record in migrations
    ]
    attributed_migrations.sort(key=MigrationRecord.sort_key)

    failures = [
        ParseFailure(
            path=failure.path,
            message=failure.message,
            module=_attribute_module(failure.path, "", all_modules),
        )
        for failure in builder.failures
    ]

    logger.info(
        "Built model: %d modules, %d source files, %d schema entities, %d migrations",
        len(all_modules),
        len(sources),
        len(attributed_entities),
        len(attributed_migrations),
    )

    return ProjectModel(
        root_name=root.name,
        source_root=builder.source_root.path,
        tree=tree,
        modules=modules,
        sources=dict(sorted(sources.items())),
        schema_entities=tuple(attributed_entities),
        migrations=tuple(attributed_migrations),
        findings=tuple(builder.findings),
        failures=tuple(failures),
    )


__all__ = ["build_project_model"]
