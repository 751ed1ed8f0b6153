"""Report aggregation: deduplication, ordering and module completion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from contract.models import ModuleCompletionStatus, Report, ReportSummary, Violation
from contract.report import (
    CHECKLIST_ITEMS,
    RULE_PARSE,
    SEVERITY_RANK,
    Severity,
    ViolationKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from structure.project import ParseFailure, ProjectModel

logger = logging.getLogger(__name__)


def _ordering(violation: Violation) -> tuple[object, ...]:
    return (*violation.sort_key(), violation.kind.value, violation.severity)


def parse_failure_violations(failures: Iterable[ParseFailure]) -> list[Violation]:
    """Turn build-phase parse failures into warning violations."""
    return [
        Violation(
            rule=RULE_PARSE,
            kind=ViolationKind.RULE_EVALUATION_FAILED,
            severity="warning",
            module=failure.module,
            file=failure.path,
            message=failure.message,
        )
        for failure in failures
    ]


def deduplicate(violations: Iterable[Violation]) -> list[Violation]:
    """Keep one violation per ``(rule, subject)`` and return them in report order.

    When several share a key, the first in report order wins, so the
    outcome does not depend on the order the violations arrived in.
    """
    chosen: dict[tuple[str, str], Violation] = {}
    for violation in violations:
        key = (violation.rule, violation.subject)
        current = chosen.get(key)
        if current is None or _ordering(violation) < _ordering(current):
            chosen[key] = violation
    return sorted(chosen.values(), key=_ordering)


def _belongs_to(violation: Violation, qualified_name: str) -> bool:
    return violation.module == qualified_name or violation.module.startswith(f"{qualified_name}/")


def module_completion(
    qualified_name: str, violations: Iterable[Violation]
) -> ModuleCompletionStatus:
    """Map a module's own and descendant violations onto the checklist."""
    missing_items: set[str] = set()
    for violation in violations:
        if not _belongs_to(violation, qualified_name):
            continue
        missing_items.update(violation.checklist_items())
    missing = tuple(item for item in CHECKLIST_ITEMS if item in missing_items)
    satisfied = tuple(item for item in CHECKLIST_ITEMS if item not in missing_items)
    return ModuleCompletionStatus(
        module=qualified_name,
        status="Incomplete" if missing else "Complete",
        satisfied=satisfied,
        missing=missing,
    )


def summarize(violations: Iterable[Violation]) -> ReportSummary:
    errors = 0
    warnings = 0
    for violation in violations:
        if violation.severity == "error":
            errors += 1
        else:
            warnings += 1
    return ReportSummary(errors=errors, warnings=warnings)


def build_report(model: ProjectModel, violations: Iterable[Violation]) -> Report:
    """Aggregate rule output and build-phase failures into a Report.

    Args:
        model: The project model the rules were evaluated against.
        violations: Rule output in any order.

    Returns:
        A Report whose content depends only on the inputs' values.
    """
    ordered = deduplicate([*violations, *parse_failure_violations(model.failures)])
    modules = sorted(module.qualified_name for module in model.iter_modules())
    completion = tuple(module_completion(name, ordered) for name in modules)
    summary = summarize(ordered)
    logger.info(
        "Report: %d errors, %d warnings across %d modules",
        summary.errors,
        summary.warnings,
        len(completion),
    )
    return Report(
        root_name=model.root_name,
        violations=tuple(ordered),
        modules=completion,
        summary=summary,
    )


def exit_status(report: Report, fail_on: Severity) -> int:
    """Return 1 when any violation is at or above ``fail_on``, else 0."""
    threshold = SEVERITY_RANK[fail_on]
    for violation in report.violations:
        if SEVERITY_RANK[violation.severity] >= threshold:
            return 1
    return 0


__all__ = [
    "build_report",
    "deduplicate",
    "exit_status",
    "module_completion",
    "parse_failure_violations",
    "summarize",
]
