"""Report record models exposed at the validator's output boundary."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from contract.report import (
    KIND_CHECKLIST,
    MODULE_ROLES,
    REPORT_SCHEMA_VERSION,
    ROLE_SCOPED_KINDS,
    ModuleState,
    Severity,
    ViolationKind,
)


class Violation(BaseModel):
    """A single reported deviation from the standard.

    Immutable once created. ``symbol`` narrows the subject inside a file
    (a table, a literal, an error class) so that distinct findings in the
    same file survive deduplication.
    """

    model_config = ConfigDict(frozen=True)

    rule: str
    kind: ViolationKind
    severity: Severity
    module: str = ""
    file: str
    symbol: str | None = None
    line: int | None = None
    role: str | None = None
    message: str

    @property
    def subject(self) -> str:
        if self.symbol is None:
            return self.file
        return f"{self.file}#{self.symbol}"

    def location(self) -> str:
        if self.line is None:
            return self.subject
        return f"{self.file}:{self.line}"

    def checklist_items(self) -> tuple[str, ...]:
        """Return the completion checklist items this violation counts against.

        A naming or layering finding that concerns no single role file (a
        folder name, an unclassified file) counts against every role.
        """
        if self.kind in ROLE_SCOPED_KINDS:
            return (self.role,) if self.role is not None else MODULE_ROLES
        item = KIND_CHECKLIST.get(self.kind)
        return (item,) if item is not None else ()

    def sort_key(self) -> tuple[str, str, str, int, str]:
        return (self.module, self.rule, self.subject, self.line or 0, self.message)

    def to_record(self) -> dict[str, object]:
        return {
            "module": self.module,
            "file": self.file,
            "line": self.line,
            "rule": self.rule,
            "kind": self.kind.value,
            "severity": self.severity,
            "message": self.message,
        }


class ModuleCompletionStatus(BaseModel):
    """Checklist outcome for one module, derived from its violations."""

    model_config = ConfigDict(frozen=True)

    module: str
    status: ModuleState
    satisfied: tuple[str, ...]
    missing: tuple[str, ...]

    def to_record(self) -> dict[str, object]:
        return {
            "module": self.module,
            "status": self.status,
            "satisfiedChecklistItems": list(self.satisfied),
            "missingChecklistItems": list(self.missing),
        }


class ReportSummary(BaseModel):
    errors: int = 0
    warnings: int = 0

    @property
    def total(self) -> int:
        return self.errors + self.warnings


class Report(BaseModel):
    """Aggregated, deterministically ordered validation outcome."""

    schema_version: int = Field(default=REPORT_SCHEMA_VERSION)
    root_name: str
    violations: tuple[Violation, ...] = ()
    modules: tuple[ModuleCompletionStatus, ...] = ()
    summary: ReportSummary = Field(default_factory=ReportSummary)


__all__ = ["ModuleCompletionStatus", "Report", "ReportSummary", "Violation"]
