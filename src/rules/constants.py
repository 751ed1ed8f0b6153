"""Constant-centralization rule.

Heuristic by nature: it reports candidate hardcoded values (enumeration
style strings, magic numbers) outside the constants area. False positives
are expected and tunable through ``[patterns]``; a literal that the
constants area already declares verbatim is not reported.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from contract.report import RULE_CONSTANTS, ViolationKind
from rules.engine import Rule
from rules.layers import classify_area

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from rules.config import ValidatorConfig
    from structure.project import ConstantUsageSite, ProjectModel

# Areas whose literals are never candidates.
_EXEMPT_AREAS = frozenset({"constants", "config", "test", "migration"})


def _parse_number(literal: str) -> float | None:
    text = literal.rstrip("nN")
    try:
        return float(int(text, 0))
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return None


class ConstantCentralizationRule(Rule):
    rule_id = RULE_CONSTANTS
    kind = ViolationKind.HARDCODED_VALUE
    description = "Status-like strings and magic numbers belong in the constants area"
    default_severity = "warning"

    def __init__(self, config: ValidatorConfig) -> None:
        super().__init__(config)
        self._string_patterns = [re.compile(p) for p in config.patterns.constant_literals]
        self._allowed_numbers = set(config.patterns.allowed_numbers)

    def is_candidate(self, site: ConstantUsageSite) -> bool:
        if site.kind == "string":
            return any(pattern.search(site.literal) for pattern in self._string_patterns)
        value = _parse_number(site.literal)
        return value is not None and value not in self._allowed_numbers

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        layout = self.config.layout
        declared: set[tuple[str, str]] = set()
        candidate_files = []
        for path, facts in model.sources.items():
            area = classify_area(model.layout_path(path), layout)
            if area == "constants":
                declared.update((site.kind, site.literal) for site in facts.literals)
            elif area not in _EXEMPT_AREAS:
                candidate_files.append(facts)

        for facts in candidate_files:
            seen: set[str] = set()
            for site in facts.literals:
                if site.literal in seen or not self.is_candidate(site):
                    continue
                if (site.kind, site.literal) in declared:
                    continue
                seen.add(site.literal)
                shown = f"'{site.literal}'" if site.kind == "string" else site.literal
                yield self.violation(
                    file=facts.path,
                    module=model.module_for_path(facts.path),
                    symbol=shown,
                    line=site.line,
                    message=f"hardcoded {site.kind} literal {shown}; move it to the constants area",
                )


__all__ = ["ConstantCentralizationRule"]
