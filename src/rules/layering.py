"""Layering rule: routes only route, controllers never touch persistence.

Detection is a path/import/call-pattern heuristic over extracted facts.
Persistence reached through an intermediate helper is not detected.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from contract.report import RULE_LAYERING, ViolationKind
from rules.engine import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from rules.config import ValidatorConfig
    from structure.project import ModuleDescriptor, ProjectModel, SourceFacts


def layering_evidence(
    facts: SourceFacts,
    call_patterns: list[re.Pattern[str]],
    import_patterns: list[re.Pattern[str]],
    exempt_receivers: list[re.Pattern[str]] | None = None,
) -> list[tuple[int, str]]:
    """Return ``(line, description)`` pairs for every forbidden access in a file.

    Calls whose receiver matches ``exempt_receivers`` (``this.orderService``)
    are delegations to the service layer and never count.
    """
    evidence: list[tuple[int, str]] = []
    for site in facts.imports:
        if any(pattern.search(site.source) for pattern in import_patterns):
            evidence.append((site.line, f"imports '{site.source}'"))
    for call in facts.calls:
        receiver = call.callee.rpartition(".")[0]
        if receiver and any(pattern.search(receiver) for pattern in exempt_receivers or []):
            continue
        if any(pattern.search(call.callee) for pattern in call_patterns):
            evidence.append((call.line, f"calls {call.callee}()"))
    return sorted(evidence)


class LayeringRule(Rule):
    rule_id = RULE_LAYERING
    kind = ViolationKind.LAYERING
    description = "Routes files contain no ORM calls; controllers contain no persistence access"
    scope = "module"

    def __init__(self, config: ValidatorConfig) -> None:
        super().__init__(config)
        patterns = config.patterns
        self._imports = [re.compile(p) for p in patterns.persistence_imports]
        self._receivers = [re.compile(p) for p in patterns.service_receivers]
        self._by_role = {
            "routes": [re.compile(p) for p in patterns.orm_calls],
            "controller": [re.compile(p) for p in patterns.persistence_calls],
        }

    def check_module(self, module: ModuleDescriptor, model: ProjectModel) -> Iterator[Violation]:
        for module_file in module.files:
            call_patterns = self._by_role.get(module_file.role or "")
            if call_patterns is None:
                continue
            facts = model.sources.get(module_file.path)
            if facts is None:
                continue
            evidence = layering_evidence(facts, call_patterns, self._imports, self._receivers)
            if not evidence:
                continue
            layer = "routes" if module_file.role == "routes" else "controller"
            details = "; ".join(f"line {line}: {text}" for line, text in evidence)
            yield self.violation(
                file=module_file.path,
                module=module.qualified_name,
                line=evidence[0][0],
                role=module_file.role,
                message=f"{layer} file reaches the persistence layer directly ({details})",
            )


__all__ = ["LayeringRule", "layering_evidence"]
