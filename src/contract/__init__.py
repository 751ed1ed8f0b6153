"""Stable report contract surface for erp-conformance.

Rules, the parity checker and the report generator depend only on these
exports. Treat them as the authoritative output boundary.
"""

from contract.models import ModuleCompletionStatus, Report, ReportSummary, Violation
from contract.report import (
    BUILTIN_RULE_IDS,
    CHECKLIST_ITEMS,
    MODULE_ROLES,
    PROJECT_SCOPE,
    REPORT_SCHEMA_VERSION,
    SEVERITY_RANK,
    Severity,
    ViolationKind,
)

__all__ = [
    "BUILTIN_RULE_IDS",
    "CHECKLIST_ITEMS",
    "MODULE_ROLES",
    "PROJECT_SCOPE",
    "REPORT_SCHEMA_VERSION",
    "SEVERITY_RANK",
    "ModuleCompletionStatus",
    "Report",
    "ReportSummary",
    "Severity",
    "Violation",
    "ViolationKind",
]
