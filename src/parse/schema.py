"""Schema declaration parsing for Sequelize-style model files.

Recognised declarations:

- ``Model.init({ ...attributes }, { tableName, paranoid, indexes })``
  (``this.init`` inside a class resolves to the enclosing class name)
- ``sequelize.define('table', { ...attributes }, { ...options })``

Only declarative metadata is read; nothing is evaluated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from parse.treesitter_ts import (
    bool_value,
    call_arguments,
    dotted_name,
    enclosing_class_name,
    line_of,
    node_text,
    object_pairs,
    string_value,
    unwrap,
    walk,
)
from structure.project import FieldDecl, IndexDecl, SchemaEntity
from utils import to_snake

if TYPE_CHECKING:
    from tree_sitter import Node, Tree


class SchemaParseError(ValueError):
    """Raised when a model declaration is recognised but cannot be read."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line


def type_name(source_bytes: bytes, node: Node | None) -> str:
    """Reduce ``DataTypes.STRING(100)`` or ``Sequelize.INTEGER`` to ``STRING``/``INTEGER``."""
    node = unwrap(node)
    if node is None:
        return "UNKNOWN"
    if node.type == "call_expression":
        return type_name(source_bytes, node.child_by_field_name("function"))
    literal = string_value(source_bytes, node)
    if literal is not None:
        return literal.upper()
    name = dotted_name(source_bytes, node)
    if name.startswith("<"):
        return "UNKNOWN"
    return name.rsplit(".", 1)[-1]


def parse_field_spec(source_bytes: bytes, name: str, node: Node) -> FieldDecl:
    """Interpret one attribute/column declaration.

    The value may be a bare type (``DataTypes.STRING``) or an options
    object. ``allowNull`` defaults to true except for primary keys.
    """
    options = object_pairs(source_bytes, node)
    if not options:
        return FieldDecl(name=name, type=type_name(source_bytes, node))

    primary_key = bool_value(options.get("primaryKey")) is True
    allow_null = bool_value(options.get("allowNull"))
    if allow_null is None:
        allow_null = not primary_key

    unique_node = options.get("unique")
    unique = bool_value(unique_node) is True or string_value(source_bytes, unique_node) is not None

    references: str | None = None
    references_node = options.get("references")
    if references_node is not None:
        target = object_pairs(source_bytes, references_node).get("model")
        referenced = string_value(source_bytes, target)
        if referenced is None and target is not None:
            referenced = dotted_name(source_bytes, target)
        references = referenced or node_text(source_bytes, references_node)

    return FieldDecl(
        name=name,
        type=type_name(source_bytes, options.get("type")),
        nullable=allow_null,
        primary_key=primary_key,
        unique=unique,
        references=references,
    )


def parse_attributes(source_bytes: bytes, node: Node | None) -> tuple[FieldDecl, ...]:
    return tuple(
        parse_field_spec(source_bytes, name, value)
        for name, value in object_pairs(source_bytes, node).items()
    )


def _index_fields(source_bytes: bytes, node: Node | None) -> tuple[str, ...]:
    node = unwrap(node)
    if node is None or node.type != "array":
        return ()
    fields: list[str] = []
    for element in node.named_children:
        value = string_value(source_bytes, element)
        if value is None:
            pairs = object_pairs(source_bytes, element)
            value = string_value(source_bytes, pairs.get("name") or pairs.get("attribute"))
        if value is not None:
            fields.append(value)
    return tuple(fields)


def parse_index(source_bytes: bytes, node: Node) -> IndexDecl | None:
    options = object_pairs(source_bytes, node)
    fields = _index_fields(source_bytes, options.get("fields"))
    if not fields:
        return None
    return IndexDecl(
        fields=fields,
        unique=bool_value(options.get("unique")) is True,
        name=string_value(source_bytes, options.get("name")),
    )


def _parse_indexes(source_bytes: bytes, node: Node | None) -> tuple[IndexDecl, ...]:
    node = unwrap(node)
    if node is None or node.type != "array":
        return ()
    indexes = (parse_index(source_bytes, element) for element in node.named_children)
    return tuple(index for index in indexes if index is not None)


def _build_entity(
    source_bytes: bytes,
    relative_path: str,
    *,
    model_name: str,
    table: str | None,
    attributes: Node,
    options: Node | None,
    soft_delete_fields: list[str] | tuple[str, ...],
    slug_field: str,
) -> SchemaEntity:
    option_pairs = object_pairs(source_bytes, options)
    table_name = string_value(source_bytes, option_pairs.get("tableName")) or table
    if table_name is None:
        explicit_model_name = string_value(source_bytes, option_pairs.get("modelName"))
        table_name = to_snake(explicit_model_name or model_name)

    fields = parse_attributes(source_bytes, attributes)
    field_names = {decl.name for decl in fields}

    marker = next((name for name in soft_delete_fields if name in field_names), None)
    paranoid = bool_value(option_pairs.get("paranoid")) is True
    if marker is None and paranoid:
        marker = soft_delete_fields[0] if soft_delete_fields else None

    return SchemaEntity(
        table=table_name,
        model_name=model_name,
        path=relative_path,
        fields=fields,
        indexes=_parse_indexes(source_bytes, option_pairs.get("indexes")),
        soft_delete=marker is not None or paranoid,
        soft_delete_field=marker,
        has_slug=slug_field in field_names,
    )


def extract_schema_entities(
    source_bytes: bytes,
    tree: Tree,
    relative_path: str,
    *,
    soft_delete_fields: list[str] | tuple[str, ...] = ("deletedAt", "deleted_at"),
    slug_field: str = "slug",
) -> list[SchemaEntity]:
    """Extract every model declaration in a parsed schema file.

    Files without a recognised declaration (association registries,
    barrels) yield an empty list.

    Raises:
        SchemaParseError: A declaration was found but its attribute
            argument is not an object literal.
    """
    entities: list[SchemaEntity] = []

    for node in walk(tree.root_node):
        if node.type != "call_expression":
            continue
        callee = dotted_name(source_bytes, node.child_by_field_name("function"))
        args = call_arguments(node)

        if callee.endswith(".init") and args:
            owner = callee[: -len(".init")]
            if owner == "this" or owner.startswith("<"):
                owner = enclosing_class_name(source_bytes, node) or owner
            if "." in owner or owner.startswith("<"):
                continue
            if args[0].type != "object":
                msg = f"{owner}.init() attributes are not an object literal"
                raise SchemaParseError(msg, line_of(node))
            entities.append(
                _build_entity(
                    source_bytes,
                    relative_path,
                    model_name=owner,
                    table=None,
                    attributes=args[0],
                    options=args[1] if len(args) > 1 else None,
                    soft_delete_fields=soft_delete_fields,
                    slug_field=slug_field,
                )
            )
        elif callee.endswith(".define") and len(args) >= 2:
            table = string_value(source_bytes, args[0])
            if table is None:
                continue
            if args[1].type != "object":
                msg = f"define('{table}') attributes are not an object literal"
                raise SchemaParseError(msg, line_of(node))
            entities.append(
                _build_entity(
                    source_bytes,
                    relative_path,
                    model_name=table,
                    table=table,
                    attributes=args[1],
                    options=args[2] if len(args) > 2 else None,
                    soft_delete_fields=soft_delete_fields,
                    slug_field=slug_field,
                )
            )

    return entities


__all__ = [
    "SchemaParseError",
    "extract_schema_entities",
    "parse_attributes",
    "parse_field_spec",
    "parse_index",
    "type_name",
]
