"""Project tree scanning for erp-conformance."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, Literal, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

NodeKind = Literal["file", "directory"]


class ScanError(Exception):
    """Raised when the project root is missing or unreadable."""


@dataclass(frozen=True)
class TreeNode:
    """One entry of the scanned project tree.

    ``path`` is POSIX and relative to the scanned root; the root itself has
    an empty path. Children are stored as a tuple so the tree stays
    immutable once built.
    """

    path: str
    kind: NodeKind
    name: str
    children: tuple[TreeNode, ...] = field(default_factory=tuple)

    @property
    def is_dir(self) -> bool:
        return self.kind == "directory"

    def child(self, name: str) -> TreeNode | None:
        for node in self.children:
            if node.name == name:
                return node
        return None

    def iter_files(self) -> Iterator[TreeNode]:
        """Yield every file below this node, depth-first in child order."""
        for node in self.children:
            if node.is_dir:
                yield from node.iter_files()
            else:
                yield node

    def subdirectories(self) -> list[TreeNode]:
        return [node for node in self.children if node.is_dir]

    def files(self) -> list[TreeNode]:
        return [node for node in self.children if not node.is_dir]


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _build_gitignore_matcher(root: Path) -> Callable[[str], bool] | None:
    gitignore_path = root / ".gitignore"
    if gitignore_path.is_file() and not gitignore_path.is_symlink():
        return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
    return None


def _is_ignored(
    rel_path: str,
    name: str,
    ignore_patterns: list[str],
    gitignore_matches: Callable[[str], bool] | None,
    abs_path: Path,
) -> bool:
    for pattern in ignore_patterns:
        if fnmatch(name, pattern) or fnmatch(rel_path, pattern):
            return True
    if gitignore_matches is not None:
        try:
            return gitignore_matches(str(abs_path))
        except ValueError:
            return False
    return False


def _list_entries(directory: Path) -> list[os.DirEntry[str]]:
    """Return directory entries sorted by name for deterministic trees."""
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


def _scan_directory(
    directory: Path,
    rel_path: str,
    root: Path,
    ignore_patterns: list[str],
    gitignore_matches: Callable[[str], bool] | None,
) -> tuple[TreeNode, ...]:
    try:
        entries = _list_entries(directory)
    except OSError as exc:
        if not rel_path:
            raise
        logger.warning("Skipping unreadable directory %s: %s", rel_path, exc)
        return ()

    children: list[TreeNode] = []
    for entry in entries:
        child_rel = f"{rel_path}/{entry.name}" if rel_path else entry.name
        child_abs = Path(entry.path)
        if entry.is_symlink() or not _is_within_root(child_abs, root):
            logger.debug("Skipping symlink %s", child_rel)
            continue
        if _is_ignored(child_rel, entry.name, ignore_patterns, gitignore_matches, child_abs):
            logger.debug("Ignoring %s", child_rel)
            continue
        if entry.is_dir(follow_symlinks=False):
            grandchildren = _scan_directory(
                child_abs, child_rel, root, ignore_patterns, gitignore_matches
            )
            children.append(
                TreeNode(
                    path=child_rel,
                    kind="directory",
                    name=entry.name,
                    children=grandchildren,
                )
            )
        elif entry.is_file(follow_symlinks=False):
            children.append(TreeNode(path=child_rel, kind="file", name=entry.name))

    return tuple(children)


def scan_tree(
    root: Path,
    *,
    ignore_patterns: list[str] | None = None,
    respect_gitignore: bool = True,
) -> TreeNode:
    """Scan a project root into an immutable TreeNode tree.

    Args:
        root: Project root to scan.
        ignore_patterns: fnmatch patterns matched against entry names and
            root-relative paths; matching entries are skipped with their
            whole subtree.
        respect_gitignore: Also skip entries matched by the root .gitignore.

    Returns:
        The root TreeNode (empty path) with children sorted by name.

    Raises:
        ScanError: If the root does not exist, is not a directory or
            cannot be listed.
    """
    if not root.exists():
        msg = f"Project root does not exist: {root}"
        raise ScanError(msg)
    if not root.is_dir():
        msg = f"Project root is not a directory: {root}"
        raise ScanError(msg)

    gitignore_matches = _build_gitignore_matcher(root) if respect_gitignore else None

    try:
        children = _scan_directory(
            root, "", root, list(ignore_patterns or []), gitignore_matches
        )
    except OSError as exc:
        msg = f"Project root is unreadable: {root}: {exc}"
        raise ScanError(msg) from exc

    logger.debug("Scanned %s (%d top-level entries)", root, len(children))
    return TreeNode(path="", kind="directory", name=root.name, children=children)


__all__ = ["ScanError", "TreeNode", "scan_tree"]
