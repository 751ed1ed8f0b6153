from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from scan.files import ScanError, _build_gitignore_matcher, scan_tree

if TYPE_CHECKING:
    from pathlib import Path

    from scan.files import TreeNode


def _file_paths(tree: TreeNode) -> list[str]:
    return [node.path for node in tree.iter_files()]


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_scan_tree_skips_symlinked_dirs(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    (repo_root / "src").mkdir(parents=True)
    (repo_root / "src" / "index.ts").write_text("export {};\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "leak.ts").write_text("export {};\n", encoding="utf-8")

    (repo_root / "linked").symlink_to(external_root, target_is_directory=True)

    results = _file_paths(scan_tree(repo_root))

    assert "src/index.ts" in results
    assert "linked/leak.ts" not in results


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_symlinked_gitignore_is_not_honoured(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "outside.gitignore").write_text("src/\n", encoding="utf-8")
    (repo_root / ".gitignore").symlink_to(external_root / "outside.gitignore")

    assert _build_gitignore_matcher(repo_root) is None


def test_scan_tree_applies_default_and_configured_ignores(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    for rel in (
        "src/modules/a/a.routes.ts",
        "node_modules/lib/index.js",
        "logs/app.log",
        "server.log",
        "src/generated/client.generated.ts",
        "vendor/thing.ts",
    ):
        path = repo_root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("", encoding="utf-8")

    tree = scan_tree(
        repo_root,
        ignore_patterns=["node_modules", "logs", "*.log", "*.generated.*", "vendor"],
    )

    assert _file_paths(tree) == ["src/modules/a/a.routes.ts"]


def test_scan_tree_honours_root_gitignore(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    (repo_root / "src").mkdir(parents=True)
    (repo_root / "src" / "keep.ts").write_text("", encoding="utf-8")
    (repo_root / "tmp").mkdir()
    (repo_root / "tmp" / "scratch.ts").write_text("", encoding="utf-8")
    (repo_root / ".gitignore").write_text("tmp/\n", encoding="utf-8")

    honoured = _file_paths(scan_tree(repo_root))
    ignored = _file_paths(scan_tree(repo_root, respect_gitignore=False))

    assert "tmp/scratch.ts" not in honoured
    assert "src/keep.ts" in honoured
    assert "tmp/scratch.ts" in ignored


def test_scan_tree_children_are_sorted_and_relative(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    for name in ("b.ts", "a.ts", "c.ts"):
        (repo_root / name).write_text("", encoding="utf-8")

    tree = scan_tree(repo_root)

    assert tree.path == ""
    assert tree.is_dir
    assert [child.name for child in tree.children] == ["a.ts", "b.ts", "c.ts"]


def test_scan_tree_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(ScanError, match="does not exist"):
        scan_tree(tmp_path / "missing")


def test_scan_tree_file_root_raises(tmp_path: Path) -> None:
    file_root = tmp_path / "file.ts"
    file_root.write_text("", encoding="utf-8")

    with pytest.raises(ScanError, match="not a directory"):
        scan_tree(file_root)
