"""Determinism verification for erp-conformance reports."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pipeline import run_validation
from report.render import render

if TYPE_CHECKING:
    from pathlib import Path

    from report.render import ReportFormat


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    expected_digest: str
    actual_digest: str


def _digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def verify_report(
    root: Path,
    report_path: Path,
    *,
    fmt: ReportFormat | None = None,
    config_path: Path | None = None,
    rule_ids: list[str] | None = None,
) -> DeterminismResult:
    """Verify that a saved report is reproduced byte-for-byte.

    Regenerates the report for ``root`` in memory and compares it with the
    content of ``report_path``. The format defaults to JSON for ``.json``
    files and text otherwise.

    Raises:
        FileNotFoundError: If report_path does not exist.
        IsADirectoryError: If report_path is a directory.
    """
    if not report_path.exists():
        msg = f"Report file does not exist: {report_path}"
        raise FileNotFoundError(msg)
    if report_path.is_dir():
        msg = f"Report path is a directory: {report_path}"
        raise IsADirectoryError(msg)

    if fmt is None:
        fmt = "json" if report_path.suffix == ".json" else "text"

    expected = report_path.read_bytes()
    run = run_validation(root, config_path=config_path, rule_ids=rule_ids)
    actual = render(run.report, fmt)

    return DeterminismResult(
        ok=expected == actual,
        expected_digest=_digest(expected),
        actual_digest=_digest(actual),
    )


__all__ = ["DeterminismResult", "verify_report"]
