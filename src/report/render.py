"""Report renderers. Output depends only on the report's values."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import orjson

if TYPE_CHECKING:
    from contract.models import Report, Violation

ReportFormat = Literal["text", "json"]

_PROJECT_LABEL = "(project)"


def report_payload(report: Report) -> dict[str, object]:
    return {
        "schema_version": report.schema_version,
        "root_name": report.root_name,
        "violations": [violation.to_record() for violation in report.violations],
        "modules": [status.to_record() for status in report.modules],
        "summary": {
            "errors": report.summary.errors,
            "warnings": report.summary.warnings,
            "total": report.summary.total,
        },
    }


def render_json(report: Report) -> bytes:
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(report_payload(report), option=opts) + b"\n"


def _violation_line(violation: Violation) -> str:
    return (
        f"  {violation.severity:<7} {violation.location()} "
        f"[{violation.rule}/{violation.kind.value}] {violation.message}"
    )


def render_text(report: Report) -> bytes:
    """Render a human-readable report grouped by module."""
    lines = [f"Conformance report for {report.root_name}", ""]

    if report.violations:
        current: str | None = None
        for violation in report.violations:
            if violation.module != current:
                if current is not None:
                    lines.append("")
                current = violation.module
                lines.append(f"{current or _PROJECT_LABEL}:")
            lines.append(_violation_line(violation))
    else:
        lines.append("No violations.")
    lines.append("")

    if report.modules:
        lines.append("Modules:")
        for status in report.modules:
            detail = f" (missing: {', '.join(status.missing)})" if status.missing else ""
            lines.append(f"  {status.module}: {status.status}{detail}")
        lines.append("")

    summary = report.summary
    lines.append(
        f"Summary: {summary.errors} error(s), {summary.warnings} warning(s), {summary.total} total"
    )
    return ("\n".join(lines) + "\n").encode("utf-8")


def render(report: Report, fmt: ReportFormat = "text") -> bytes:
    if fmt == "json":
        return render_json(report)
    return render_text(report)


__all__ = ["ReportFormat", "render", "render_json", "render_text", "report_payload"]
