"""Shared naming utilities for erp-conformance."""

from __future__ import annotations

import re
from fnmatch import fnmatch

_KEBAB_CASE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def is_kebab_case(segment: str) -> bool:
    """Return True when a path segment is lowercase kebab-case.

    Examples:
        >>> is_kebab_case("purchase-orders")
        True
        >>> is_kebab_case("purchaseOrders")
        False
        >>> is_kebab_case("purchase_orders")
        False
    """
    return bool(_KEBAB_CASE.match(segment))


def to_snake(name: str) -> str:
    """Convert a kebab-case or camelCase name to snake_case.

    Examples:
        >>> to_snake("purchase-order")
        'purchase_order'
        >>> to_snake("PurchaseOrder")
        'purchase_order'
    """
    spaced = _CAMEL_BOUNDARY.sub("_", name)
    return spaced.replace("-", "_").lower()


def to_kebab(name: str) -> str:
    """Convert a snake_case or camelCase name to kebab-case."""
    return to_snake(name).replace("_", "-")


def name_variants(name: str) -> set[str]:
    """Return the kebab-case name plus naive singular/plural variants.

    Used to attribute tables to modules (``purchase_order`` belongs to
    ``purchase-orders``). Pluralization is deliberately naive.
    """
    base = to_kebab(name)
    variants = {base, f"{base}s"}
    if base.endswith("ies"):
        variants.add(f"{base[:-3]}y")
    elif base.endswith("y"):
        variants.add(f"{base[:-1]}ies")
    if base.endswith("s"):
        variants.add(base[:-1])
    return variants


def _glob_variants(pattern: str) -> list[str]:
    """Expand each ``**/`` into "zero or more directories" variants."""
    index = pattern.find("**/")
    if index == -1:
        return [pattern]
    head, tail = pattern[:index], pattern[index + 3 :]
    variants: list[str] = []
    for rest in _glob_variants(tail):
        variants.append(f"{head}**/{rest}")
        variants.append(f"{head}{rest}")
    return variants


def matches_any(path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    """Return True when a POSIX relative path matches any glob pattern.

    ``**/`` also matches zero directories, so ``**/models/*.ts`` matches
    ``models/user.model.ts`` and ``infrastructure/**/models/**/*.ts``
    matches ``infrastructure/database/models/user.model.ts``.
    """
    for pattern in patterns:
        if any(fnmatch(path, variant) for variant in _glob_variants(pattern)):
            return True
    return False


def split_suffix(filename: str, extensions: list[str] | tuple[str, ...]) -> tuple[str, str] | None:
    """Split ``inwards.controller.ts`` into ``("inwards", "controller")``.

    Returns None when the file does not carry one of the source extensions
    or has no dotted suffix before the extension.
    """
    for ext in extensions:
        if filename.endswith(ext):
            stem = filename[: -len(ext)]
            if "." not in stem:
                return stem, ""
            prefix, _, suffix = stem.rpartition(".")
            return prefix, suffix
    return None