"""Environment access rule: only the config area reads the process environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.report import RULE_ENV_ACCESS, ViolationKind
from rules.engine import Rule
from rules.layers import classify_area

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from structure.project import ProjectModel


class EnvironmentAccessRule(Rule):
    rule_id = RULE_ENV_ACCESS
    kind = ViolationKind.ENV_ACCESS
    description = "Environment variables are read only inside the config area"

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        layout = self.config.layout
        for path, facts in model.sources.items():
            if not facts.env_sites:
                continue
            if classify_area(model.layout_path(path), layout) in {"config", "test"}:
                continue
            seen: set[str] = set()
            for site in facts.env_sites:
                if site.expression in seen:
                    continue
                seen.add(site.expression)
                yield self.violation(
                    file=path,
                    module=model.module_for_path(path),
                    symbol=site.expression,
                    line=site.line,
                    message=f"reads {site.expression} outside the config area",
                )


__all__ = ["EnvironmentAccessRule"]
