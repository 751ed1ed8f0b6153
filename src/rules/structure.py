"""Directory structure and module documentation rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.report import RULE_DOCS, RULE_STRUCTURE, ViolationKind
from rules.engine import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from structure.project import ModuleDescriptor, ProjectModel


class StructureRule(Rule):
    """Report the structural findings recorded while building the model."""

    rule_id = RULE_STRUCTURE
    kind = ViolationKind.STRUCTURE
    description = "Conventional top-level directories; nothing stray under modules/"
    default_severity = "warning"

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        for finding in model.findings:
            yield self.violation(
                file=finding.path,
                module=finding.module,
                message=finding.message,
            )


class DocumentationRule(Rule):
    rule_id = RULE_DOCS
    kind = ViolationKind.DOCUMENTATION
    description = "Every module and submodule carries its own README"
    default_severity = "warning"
    scope = "module"

    def check_module(self, module: ModuleDescriptor, model: ProjectModel) -> Iterator[Violation]:
        if module.has_docs:
            return
        doc_filename = self.config.layout.doc_filename
        yield self.violation(
            file=f"{module.path}/{doc_filename}",
            module=module.qualified_name,
            message=f"module '{module.qualified_name}' has no {doc_filename}",
        )


__all__ = ["DocumentationRule", "StructureRule"]
