from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from contract.report import BUILTIN_RULE_IDS, RULE_NAMING, ViolationKind
from rules.config import ConfigError, ValidatorConfig
from rules.engine import Rule, RuleRegistry, ViolationCollector, default_registry, run_rules
from rules.naming import NamingRule
from scan.files import scan_tree
from structure.builder import build_project_model

if TYPE_CHECKING:
    from collections.abc import Iterator

    from contract.models import Violation
    from structure.project import ModuleDescriptor, ProjectModel


class _ExplodingRule(Rule):
    rule_id = "docs"
    kind = ViolationKind.DOCUMENTATION
    scope = "module"

    def check_module(self, module: ModuleDescriptor, model: ProjectModel) -> Iterator[Violation]:
        if module.name == "broken":
            msg = "cannot evaluate"
            raise RuntimeError(msg)
        yield self.violation(file=module.path, module=module.qualified_name, message="ok")


class _FatalRule(Rule):
    rule_id = "structure"
    kind = ViolationKind.STRUCTURE

    def check_project(self, model: ProjectModel) -> Iterator[Violation]:
        msg = "bad pattern"
        raise ConfigError(msg)


def _model(root: Path) -> ProjectModel:
    for name in ("broken", "fine"):
        path = root / "modules" / name / f"{name}.routes.ts"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("export {};\n", encoding="utf-8")
    return build_project_model(root, scan_tree(root), ValidatorConfig())


def test_rule_failure_is_isolated_to_its_module(tmp_path: Path) -> None:
    model = _model(tmp_path)
    config = ValidatorConfig()

    violations = run_rules(model, [_ExplodingRule(config), NamingRule(config)], workers=3)

    failed = [v for v in violations if v.kind is ViolationKind.RULE_EVALUATION_FAILED]
    assert len(failed) == 1
    assert failed[0].module == "broken"
    assert failed[0].severity == "warning"
    assert "cannot evaluate" in failed[0].message
    assert any(v.module == "fine" and v.message == "ok" for v in violations)
    assert any(v.rule == RULE_NAMING and v.module == "broken" for v in violations)


def test_fatal_errors_propagate(tmp_path: Path) -> None:
    model = _model(tmp_path)
    config = ValidatorConfig()

    with pytest.raises(ConfigError, match="bad pattern"):
        run_rules(model, [NamingRule(config), _FatalRule(config)])


def test_default_registry_is_in_canonical_order() -> None:
    registry = default_registry()

    assert registry.ids() == list(BUILTIN_RULE_IDS)
    assert len(registry) == len(BUILTIN_RULE_IDS)


def test_registry_rejects_duplicates_and_unknown_ids() -> None:
    registry = RuleRegistry()
    registry.register(NamingRule)

    with pytest.raises(ValueError, match="already registered"):
        registry.register(NamingRule)
    with pytest.raises(ConfigError, match="Unknown rule id"):
        registry.create(["naming", "bogus"], ValidatorConfig())


def test_registry_applies_severity_overrides() -> None:
    config = ValidatorConfig.model_validate({"rules": {"severity": {"naming": "warning"}}})

    [rule] = default_registry().create(["naming"], config)

    assert rule.severity == "warning"


def test_violation_collector_snapshot_is_immutable() -> None:
    collector = ViolationCollector()
    rule = NamingRule(ValidatorConfig())
    collector.extend([rule.violation(file="a.ts", message="x")])

    snapshot = collector.snapshot()
    collector.extend([rule.violation(file="b.ts", message="y")])

    assert len(snapshot) == 1
    assert len(collector.snapshot()) == 2
