"""Tree-sitter based fact extraction for TypeScript/JavaScript sources."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

from structure.project import (
    CallSite,
    ClassDecl,
    ConstantUsageSite,
    EnvUsageSite,
    ImportSite,
    SourceFacts,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

_PARSERS: dict[str, Parser] = {}

# Literals inside these subtrees are type-level or module plumbing, not values.
_LITERAL_SKIP_SCOPES = frozenset(
    {
        "import_statement",
        "type_annotation",
        "type_alias_declaration",
        "interface_declaration",
        "literal_type",
        "enum_declaration",
        "type_arguments",
    }
)

# Wrappers that do not change the value of the wrapped expression.
_TRANSPARENT = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)

_CLASS_NODES = frozenset({"class_declaration", "abstract_class_declaration", "class"})

_WHITESPACE_RUN = re.compile(r"\s+")


def _get_parser(dialect: str = "typescript") -> Parser:
    """Initialize and cache a Tree-sitter parser for ``typescript`` or ``tsx``."""
    parser = _PARSERS.get(dialect)
    if parser is None:
        if dialect == "tsx":
            lang = Language(tree_sitter_typescript.language_tsx())
        else:
            lang = Language(tree_sitter_typescript.language_typescript())
        parser = Parser(lang)
        _PARSERS[dialect] = parser
    return parser


def parse_source(source_bytes: bytes, filename: str = "") -> Tree:
    """Parse TypeScript (or plain JavaScript) source bytes."""
    dialect = "tsx" if filename.endswith((".tsx", ".jsx")) else "typescript"
    return _get_parser(dialect).parse(source_bytes)


def node_text(source_bytes: bytes, node: Node) -> str:
    return source_bytes[node.start_byte : node.end_byte].decode("utf8", errors="ignore")


def line_of(node: Node) -> int:
    return node.start_point[0] + 1


def unwrap(node: Node | None) -> Node | None:
    """Strip parentheses and type assertions around an expression."""
    while node is not None and node.type in _TRANSPARENT:
        inner = node.named_children[0] if node.named_children else None
        node = inner
    return node


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants in source order.

    Iterative, so deeply nested expressions cannot exhaust the call stack.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def string_value(source_bytes: bytes, node: Node | None) -> str | None:
    """Return the content of a string literal node, or None."""
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "string":
        return node_text(source_bytes, node)[1:-1]
    if node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.children
    ):
        return node_text(source_bytes, node)[1:-1]
    return None


def bool_value(node: Node | None) -> bool | None:
    node = unwrap(node)
    if node is None:
        return None
    if node.type == "true":
        return True
    if node.type == "false":
        return False
    return None


def dotted_name(source_bytes: bytes, node: Node | None) -> str:
    """Normalize a callee/reference expression into a dotted name.

    ``this.repo.findAll`` stays as written; call results and other complex
    objects collapse to placeholders such as ``<call>.then``.
    """
    properties: list[str] = []
    node = unwrap(node)
    while node is not None and node.type == "member_expression":
        property_node = node.child_by_field_name("property")
        if property_node is None:
            properties.append("<property>")
        else:
            properties.append(node_text(source_bytes, property_node).strip())
        node = unwrap(node.child_by_field_name("object"))

    if node is None:
        head = "<complex_expr>"
    elif node.type in {"identifier", "property_identifier", "type_identifier", "this", "super"}:
        head = node_text(source_bytes, node).strip()
    elif node.type in {"meta_property", "import"}:
        head = _WHITESPACE_RUN.sub("", node_text(source_bytes, node))
    elif node.type == "call_expression":
        head = "<call>"
    else:
        head = f"<{node.type}>"

    return ".".join([head, *reversed(properties)])


def call_arguments(node: Node) -> list[Node]:
    """Return the unwrapped argument expressions of a call or new expression."""
    arguments = node.child_by_field_name("arguments")
    if arguments is None:
        return []
    return [unwrap(arg) or arg for arg in arguments.named_children if arg.type != "comment"]


def property_key(source_bytes: bytes, node: Node | None) -> str | None:
    """Return the static name of an object key node."""
    if node is None:
        return None
    if node.type in {"property_identifier", "identifier", "number"}:
        return node_text(source_bytes, node)
    if node.type == "string":
        return node_text(source_bytes, node)[1:-1]
    return None


def object_pairs(source_bytes: bytes, node: Node | None) -> dict[str, Node]:
    """Map static keys of an object literal to their value nodes.

    Shorthand properties (``{ paranoid }``) map to their identifier node.
    """
    node = unwrap(node)
    pairs: dict[str, Node] = {}
    if node is None or node.type != "object":
        return pairs
    for child in node.named_children:
        if child.type == "pair":
            key = property_key(source_bytes, child.child_by_field_name("key"))
            value = child.child_by_field_name("value")
            if key is not None and value is not None:
                pairs[key] = unwrap(value) or value
        elif child.type == "shorthand_property_identifier":
            pairs[node_text(source_bytes, child)] = child
    return pairs


def binding_name(source_bytes: bytes, node: Node) -> str | None:
    """Return the name a declaration-like node binds (pair key, method, function)."""
    if node.type == "pair":
        return property_key(source_bytes, node.child_by_field_name("key"))
    if node.type in {"method_definition", "function_declaration", "variable_declarator"}:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            return node_text(source_bytes, name_node)
    return None


def enclosing_class_name(source_bytes: bytes, node: Node) -> str | None:
    current = node.parent
    while current is not None:
        if current.type in _CLASS_NODES:
            name_node = current.child_by_field_name("name")
            if name_node is not None:
                return node_text(source_bytes, name_node)
            return None
        current = current.parent
    return None


def string_constants(source_bytes: bytes, root: Node) -> dict[str, str]:
    """Collect ``const NAME = 'literal'`` bindings declared anywhere in a file."""
    constants: dict[str, str] = {}
    for node in walk(root):
        if node.type != "variable_declarator":
            continue
        name_node = node.child_by_field_name("name")
        value = string_value(source_bytes, node.child_by_field_name("value"))
        if name_node is not None and name_node.type == "identifier" and value is not None:
            constants.setdefault(node_text(source_bytes, name_node), value)
    return constants


def _number_literal(source_bytes: bytes, node: Node) -> str:
    text = node_text(source_bytes, node).replace("_", "")
    parent = node.parent
    if (
        parent is not None
        and parent.type == "unary_expression"
        and node_text(source_bytes, parent).lstrip().startswith("-")
    ):
        return f"-{text}"
    return text


def _is_object_key(node: Node) -> bool:
    parent = node.parent
    if parent is None or parent.type != "pair":
        return False
    key = parent.child_by_field_name("key")
    return key is not None and key.start_byte == node.start_byte


def _is_import_call(source_bytes: bytes, call: Node) -> bool:
    function = call.child_by_field_name("function")
    return function is not None and dotted_name(source_bytes, function) in {"require", "import"}


def _class_bases(source_bytes: bytes, node: Node) -> tuple[str, ...]:
    bases: list[str] = []
    for child in node.children:
        if child.type != "class_heritage":
            continue
        for clause in child.named_children:
            if clause.type != "extends_clause":
                continue
            for value in clause.named_children:
                if value.type in {"identifier", "member_expression"}:
                    bases.append(dotted_name(source_bytes, value))
    return tuple(bases)


def _env_expression(source_bytes: bytes, node: Node, accessor: str) -> str:
    """Extend an accessor reference with the variable it reads, when static."""
    parent = node.parent
    if parent is None:
        return accessor
    object_node = parent.child_by_field_name("object")
    if object_node is None or object_node.start_byte != node.start_byte:
        return accessor
    if object_node.end_byte != node.end_byte:
        return accessor
    if parent.type == "member_expression":
        property_node = parent.child_by_field_name("property")
        if property_node is not None:
            return f"{accessor}.{node_text(source_bytes, property_node)}"
    if parent.type == "subscript_expression":
        key = string_value(source_bytes, parent.child_by_field_name("index"))
        if key is not None:
            return f"{accessor}.{key}"
        return f"{accessor}[]"
    return accessor


def extract_source_facts(
    source_bytes: bytes,
    tree: Tree,
    relative_path: str,
    *,
    env_accessors: list[str] | tuple[str, ...] = ("process.env",),
) -> SourceFacts:
    """Extract declaration-level facts from a parsed source file.

    Returns a SourceFacts with imports, call sites, ``new`` constructions,
    literal candidates, environment accessor references and class
    declarations (with their ``extends`` targets).
    """
    imports: list[ImportSite] = []
    calls: list[CallSite] = []
    constructions: list[CallSite] = []
    literals: list[ConstantUsageSite] = []
    env_sites: list[EnvUsageSite] = []
    classes: list[ClassDecl] = []
    accessors = frozenset(env_accessors)

    stack: list[tuple[Node, bool]] = [(tree.root_node, False)]
    while stack:
        node, skip_literals = stack.pop()
        node_type = node.type
        if node_type in _LITERAL_SKIP_SCOPES:
            skip_literals = True

        if node_type in {"import_statement", "export_statement"}:
            source = string_value(source_bytes, node.child_by_field_name("source"))
            if source is not None:
                imports.append(ImportSite(line=line_of(node), source=source))
                skip_literals = True
        elif node_type == "call_expression":
            callee = dotted_name(source_bytes, node.child_by_field_name("function"))
            if _is_import_call(source_bytes, node):
                args = call_arguments(node)
                source = string_value(source_bytes, args[0]) if args else None
                if source is not None:
                    imports.append(ImportSite(line=line_of(node), source=source))
                skip_literals = True
            else:
                calls.append(CallSite(line=line_of(node), callee=callee))
        elif node_type == "new_expression":
            constructor = dotted_name(source_bytes, node.child_by_field_name("constructor"))
            constructions.append(CallSite(line=line_of(node), callee=constructor))
        elif node_type in _CLASS_NODES:
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                classes.append(
                    ClassDecl(
                        name=node_text(source_bytes, name_node),
                        line=line_of(node),
                        bases=_class_bases(source_bytes, node),
                    )
                )
        elif node_type == "member_expression":
            expression = dotted_name(source_bytes, node)
            if expression in accessors:
                env_sites.append(
                    EnvUsageSite(
                        path=relative_path,
                        line=line_of(node),
                        expression=_env_expression(source_bytes, node, expression),
                    )
                )
        elif node_type == "string" and not skip_literals and not _is_object_key(node):
            literals.append(
                ConstantUsageSite(
                    path=relative_path,
                    line=line_of(node),
                    literal=node_text(source_bytes, node)[1:-1],
                    kind="string",
                )
            )
        elif node_type == "number" and not skip_literals and not _is_object_key(node):
            literals.append(
                ConstantUsageSite(
                    path=relative_path,
                    line=line_of(node),
                    literal=_number_literal(source_bytes, node),
                    kind="number",
                )
            )

        stack.extend((child, skip_literals) for child in reversed(node.children))

    return SourceFacts(
        path=relative_path,
        imports=tuple(imports),
        calls=tuple(calls),
        constructions=tuple(constructions),
        literals=tuple(literals),
        env_sites=tuple(env_sites),
        classes=tuple(classes),
        has_syntax_errors=tree.root_node.has_error,
    )


__all__ = [
    "bool_value",
    "call_arguments",
    "dotted_name",
    "extract_source_facts",
    "object_pairs",
    "parse_source",
    "string_value",
    "walk",
]
