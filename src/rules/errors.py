"""Error hierarchy rule.

Two checks over declaration-level facts:

* generic error constructions (``new Error(...)``, ``Error(...)``) outside
  the errors area;
* error classes whose declared ``extends`` chain never reaches the base
  error class. Ancestry is resolved by class name across the whole project;
  classes imported from outside the project are treated as unknown roots.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from contract.report import RULE_ERROR_HIERARCHY, ViolationKind
from rules.engine import Rule
from rules.layers import classify_area

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from contract.models import Violation
    from structure.project import ProjectModel


def _simple_name(reference: str) -> str:
    return reference.rpartition(".")[2]


def class_ancestry(model: ProjectModel) -> dict[str, set[str]]:
    """Map each declared class name to the simple names it extends."""
    bases: dict[str, set[str]] = {}
    for facts in model.sources.values():
        for decl in facts.classes:
            bases.setdefault(decl.name, set()).update(_simple_name(b) for b in decl.bases)
    return bases


def reaches(name: str, target: str, bases: Mapping[str, set[str]]) -> bool:
    """Return True if ``name`` reaches ``target`` through ``extends`` links."""
    pending = [name]
    visited: set[str] = set()
    while pending:
        current = pending.pop()
        if current == target:
            return True
        if current in visited:
            continue
        visited.add(current)
        pending.extend(sorted(bases.get(current, ())))
    return False


class ErrorHierarchyRule(Rule):
    rule_id = RULE_ERROR_HIERARCHY
    kind = ViolationKind.ERROR_HIERARCHY
    description = "Errors are raised through the base error class hierarchy"

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        layout = self.config.layout
        generic = set(self.config.patterns.generic_errors)
        base_error = self.config.patterns.base_error
        ancestry = class_ancestry(model)

        for path, facts in model.sources.items():
            area = classify_area(model.layout_path(path), layout)
            if area == "test":
                continue
            module = model.module_for_path(path)

            if area != "errors":
                lines: dict[str, list[int]] = {}
                for site in (*facts.constructions, *facts.calls):
                    if site.callee in generic:
                        lines.setdefault(site.callee, []).append(site.line)
                for name in sorted(lines):
                    found = sorted(set(lines[name]))
                    shown = ", ".join(str(line) for line in found)
                    yield self.violation(
                        file=path,
                        module=module,
                        symbol=name,
                        line=found[0],
                        message=(
                            f"raises generic {name} (line {shown}); "
                            f"use a class derived from {base_error}"
                        ),
                    )

            for decl in facts.classes:
                if decl.name == base_error:
                    continue
                declared = {_simple_name(b) for b in decl.bases}
                is_error_class = decl.name.endswith("Error") or bool(declared & generic)
                if not is_error_class or reaches(decl.name, base_error, ancestry):
                    continue
                yield self.violation(
                    file=path,
                    module=module,
                    symbol=decl.name,
                    line=decl.line,
                    message=f"error class {decl.name} does not extend {base_error}",
                )


__all__ = ["ErrorHierarchyRule", "class_ancestry", "reaches"]
