"""Migration history parsing for Sequelize-CLI style migration files."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from parse.schema import parse_attributes, parse_field_spec
from parse.treesitter_ts import (
    binding_name,
    call_arguments,
    dotted_name,
    object_pairs,
    string_constants,
    string_value,
    unwrap,
)
from structure.project import MigrationOperation, MigrationRecord, OperationKind
from utils import to_snake

if TYPE_CHECKING:
    from tree_sitter import Node, Tree

MIGRATION_FILENAME = re.compile(r"^(?P<timestamp>\d{14})-(?P<slug>[a-z0-9]+(?:-[a-z0-9]+)*)\.(?:ts|js)$")
_LEADING_DIGITS = re.compile(r"^(\d*)")
_SLUG_VERBS = ("create", "alter", "add", "update", "modify", "change", "drop", "remove", "rename")

_QUERY_INTERFACE_OPS: dict[str, OperationKind] = {
    "createTable": "create_table",
    "dropTable": "drop_table",
    "addColumn": "add_column",
    "removeColumn": "remove_column",
    "renameColumn": "rename_column",
    "changeColumn": "change_column",
    "addIndex": "add_index",
}


def is_well_named(filename: str) -> bool:
    """Return True for ``<14 digits>-<kebab slug>.ts|js`` migration filenames.

    Examples:
        >>> is_well_named("20240101120000-create-purchase-order.ts")
        True
        >>> is_well_named("2024-create-purchase-order.ts")
        False
    """
    return MIGRATION_FILENAME.match(filename) is not None


def timestamp_token(filename: str) -> str:
    match = MIGRATION_FILENAME.match(filename)
    if match is not None:
        return match.group("timestamp")
    leading = _LEADING_DIGITS.match(filename)
    return leading.group(1) if leading else ""


def table_from_filename(filename: str) -> tuple[str, str]:
    """Derive ``(table, action)`` from a migration filename slug.

    ``20240101120000-create-purchase-order.ts`` -> ``("purchase_order", "create")``.
    """
    stem = filename.rsplit(".", 1)[0]
    slug = stem.split("-", 1)[1] if "-" in stem else stem
    words = [word for word in re.split(r"[-_]", slug) if word]
    action = "alter"
    if words and words[0] in _SLUG_VERBS:
        action = "create" if words[0] == "create" else "alter"
        words = words[1:]
    if words and words[-1] == "table":
        words = words[:-1]
    return to_snake("_".join(words)), action


def _table_argument(source_bytes: bytes, node: Node | None, constants: dict[str, str]) -> str | None:
    node = unwrap(node)
    if node is None:
        return None
    literal = string_value(source_bytes, node)
    if literal is not None:
        return literal
    if node.type == "identifier":
        return constants.get(dotted_name(source_bytes, node))
    if node.type == "object":
        return string_value(source_bytes, object_pairs(source_bytes, node).get("tableName"))
    return None


def _column_argument(source_bytes: bytes, node: Node | None, constants: dict[str, str]) -> str | None:
    node = unwrap(node)
    if node is None:
        return None
    literal = string_value(source_bytes, node)
    if literal is not None:
        return literal
    if node.type == "identifier":
        return constants.get(dotted_name(source_bytes, node))
    return None


def _operation(
    source_bytes: bytes,
    kind: OperationKind,
    args: list[Node],
    constants: dict[str, str],
) -> MigrationOperation | None:
    table = _table_argument(source_bytes, args[0] if args else None, constants)
    if table is None:
        return None

    if kind == "create_table":
        attributes = args[1] if len(args) > 1 else None
        return MigrationOperation(
            kind=kind, table=table, fields=parse_attributes(source_bytes, attributes)
        )
    if kind in {"add_column", "change_column"}:
        column = _column_argument(source_bytes, args[1] if len(args) > 1 else None, constants)
        if column is None or len(args) < 3:
            return None
        return MigrationOperation(
            kind=kind,
            table=table,
            column=column,
            fields=(parse_field_spec(source_bytes, column, args[2]),),
        )
    if kind == "remove_column":
        column = _column_argument(source_bytes, args[1] if len(args) > 1 else None, constants)
        return MigrationOperation(kind=kind, table=table, column=column)
    if kind == "rename_column":
        column = _column_argument(source_bytes, args[1] if len(args) > 1 else None, constants)
        new_column = _column_argument(source_bytes, args[2] if len(args) > 2 else None, constants)
        return MigrationOperation(kind=kind, table=table, column=column, new_column=new_column)
    return MigrationOperation(kind=kind, table=table)


def _collect_operations(source_bytes: bytes, root: Node) -> list[MigrationOperation]:
    """Collect queryInterface operations of the ``up`` direction, in source order."""
    constants = string_constants(source_bytes, root)
    operations: list[MigrationOperation] = []

    stack = [root]
    while stack:
        node = stack.pop()
        if binding_name(source_bytes, node) == "down":
            continue
        if node.type == "call_expression":
            callee = dotted_name(source_bytes, node.child_by_field_name("function"))
            method = callee.rsplit(".", 1)[-1]
            kind = _QUERY_INTERFACE_OPS.get(method)
            if kind is not None and "." in callee:
                operation = _operation(source_bytes, kind, call_arguments(node), constants)
                if operation is not None:
                    operations.append(operation)
        stack.extend(reversed(node.children))
    return operations


def extract_migration_records(
    source_bytes: bytes,
    tree: Tree | None,
    relative_path: str,
) -> list[MigrationRecord]:
    """Build one MigrationRecord per table touched by a migration file.

    When the file cannot be parsed or names no table, a single record is
    derived from the filename slug so the file still counts towards the
    history.
    """
    filename = relative_path.rsplit("/", 1)[-1]
    timestamp = timestamp_token(filename)
    well_named = is_well_named(filename)

    operations = _collect_operations(source_bytes, tree.root_node) if tree is not None else []

    if not operations:
        table, action = table_from_filename(filename)
        return [
            MigrationRecord(
                timestamp=timestamp,
                table=table,
                action=action,  # type: ignore[arg-type]
                filename=filename,
                path=relative_path,
                well_named=well_named,
            )
        ]

    by_table: dict[str, list[MigrationOperation]] = {}
    for operation in operations:
        by_table.setdefault(operation.table, []).append(operation)

    return [
        MigrationRecord(
            timestamp=timestamp,
            table=table,
            action="create" if any(op.kind == "create_table" for op in table_ops) else "alter",
            filename=filename,
            path=relative_path,
            operations=tuple(table_ops),
            well_named=well_named,
        )
        for table, table_ops in by_table.items()
    ]


__all__ = [
    "MIGRATION_FILENAME",
    "extract_migration_records",
    "is_well_named",
    "table_from_filename",
    "timestamp_token",
]
