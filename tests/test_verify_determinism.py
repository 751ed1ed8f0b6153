from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from pipeline import run_validation
from report.render import render_json, render_text
from verify.verify import DeterminismResult, verify_report

if TYPE_CHECKING:
    from pathlib import Path


def _write_minimal_repo(root: Path) -> None:
    module_dir = root / "modules" / "stock"
    module_dir.mkdir(parents=True, exist_ok=True)
    (module_dir / "stock.routes.ts").write_text("export {};\n", encoding="utf-8")
    (module_dir / "stock.service.ts").write_text(
        "export const LIMIT = 25;\n",
        encoding="utf-8",
    )


def test_verify_report_requires_report_file(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    missing = tmp_path / "missing.json"
    with pytest.raises(FileNotFoundError, match="Report file does not exist"):
        verify_report(repo_root, missing)


def test_verify_report_rejects_directory(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    with pytest.raises(IsADirectoryError, match="Report path is a directory"):
        verify_report(repo_root, tmp_path)


def test_verify_report_matches_saved_json(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    report_path = tmp_path / "report.json"
    report_path.write_bytes(render_json(run_validation(repo_root).report))

    result = verify_report(repo_root, report_path)

    assert isinstance(result, DeterminismResult)
    assert result.ok is True
    assert result.expected_digest == result.actual_digest


def test_verify_report_infers_text_format(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    report_path = tmp_path / "report.txt"
    report_path.write_bytes(render_text(run_validation(repo_root).report))

    assert verify_report(repo_root, report_path).ok is True
    assert verify_report(repo_root, report_path, fmt="json").ok is False


def test_verify_report_detects_changes(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    report_path = tmp_path / "report.json"
    report_path.write_bytes(render_json(run_validation(repo_root).report))

    (repo_root / "modules" / "stock" / "stock.service.ts").write_text(
        "export const LIMIT = 30;\n",
        encoding="utf-8",
    )
    result = verify_report(repo_root, report_path)

    assert result.ok is False
    assert result.expected_digest != result.actual_digest


def test_verify_report_honours_rule_selection(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    report_path = tmp_path / "report.json"
    report_path.write_bytes(render_json(run_validation(repo_root, rule_ids=["naming"]).report))

    assert verify_report(repo_root, report_path, rule_ids=["naming"]).ok is True
    assert verify_report(repo_root, report_path).ok is False
