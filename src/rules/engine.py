"""Rule registry and concurrent rule evaluation."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, ClassVar, Literal

from contract.models import Violation
from contract.report import PROJECT_SCOPE, Severity, ViolationKind
from rules.config import ConfigError
from scan.files import ScanError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from rules.config import ValidatorConfig
    from structure.project import ModuleDescriptor, ProjectModel

logger = logging.getLogger(__name__)

RuleScope = Literal["module", "project"]


class Rule:
    """Base class for an independent, pure conformance check.

    Subclasses set the class attributes and implement ``check_module``
    (scope ``module``, called once per module and submodule) or
    ``check_project`` (scope ``project``, called once per run). A rule
    reads only the frozen ProjectModel and its config, never another
    rule's output.
    """

    rule_id: ClassVar[str]
    kind: ClassVar[ViolationKind]
    description: ClassVar[str] = ""
    default_severity: ClassVar[Severity] = "error"
    scope: ClassVar[RuleScope] = "project"

    def __init__(self, config: ValidatorConfig) -> None:
        self.config = config
        self.severity: Severity = config.severity_for(self.rule_id, self.default_severity)

    def check_module(
        self, module: ModuleDescriptor, model: ProjectModel
    ) -> Iterable[Violation]:
        raise NotImplementedError

    def check_project(self, model: ProjectModel) -> Iterable[Violation]:
        raise NotImplementedError

    def violation(
        self,
        *,
        file: str,
        message: str,
        module: str = PROJECT_SCOPE,
        symbol: str | None = None,
        line: int | None = None,
        role: str | None = None,
        kind: ViolationKind | None = None,
    ) -> Violation:
        return Violation(
            rule=self.rule_id,
            kind=kind or self.kind,
            severity=self.severity,
            module=module,
            file=file,
            symbol=symbol,
            line=line,
            role=role,
            message=message,
        )


class RuleRegistry:
    """Ordered, named registry of rule classes."""

    def __init__(self) -> None:
        self._rules: dict[str, type[Rule]] = {}

    def register(self, rule_cls: type[Rule]) -> type[Rule]:
        if rule_cls.rule_id in self._rules:
            msg = f"Rule id already registered: {rule_cls.rule_id}"
            raise ValueError(msg)
        self._rules[rule_cls.rule_id] = rule_cls
        return rule_cls

    def ids(self) -> list[str]:
        return list(self._rules)

    def get(self, rule_id: str) -> type[Rule]:
        try:
            return self._rules[rule_id]
        except KeyError:
            msg = f"Unknown rule id: {rule_id}"
            raise ConfigError(msg) from None

    def create(self, rule_ids: Iterable[str], config: ValidatorConfig) -> list[Rule]:
        """Instantiate the selected rules in registry order."""
        wanted = set(rule_ids)
        for rule_id in wanted:
            self.get(rule_id)
        return [cls(config) for rule_id, cls in self._rules.items() if rule_id in wanted]

    def __iter__(self) -> Iterator[type[Rule]]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)


def default_registry() -> RuleRegistry:
    """Return a registry holding every built-in rule in canonical order."""
    from parity.checker import ParityRule
    from rules.constants import ConstantCentralizationRule
    from rules.environment import EnvironmentAccessRule
    from rules.errors import ErrorHierarchyRule
    from rules.layering import LayeringRule
    from rules.naming import NamingRule
    from rules.schema import IndexingRule, SlugRule, SoftDeleteRule
    from rules.structure import DocumentationRule, StructureRule

    registry = RuleRegistry()
    for rule_cls in (
        StructureRule,
        NamingRule,
        LayeringRule,
        ConstantCentralizationRule,
        EnvironmentAccessRule,
        ErrorHierarchyRule,
        SlugRule,
        SoftDeleteRule,
        IndexingRule,
        ParityRule,
        DocumentationRule,
    ):
        registry.register(rule_cls)
    return registry


class ViolationCollector:
    """Append-only, thread-safe sink for violations produced by workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[Violation] = []

    def extend(self, violations: Iterable[Violation]) -> None:
        batch = list(violations)
        with self._lock:
            self._items.extend(batch)

    def snapshot(self) -> tuple[Violation, ...]:
        with self._lock:
            return tuple(self._items)


def _evaluation_failed(rule: Rule, module: ModuleDescriptor | None, exc: Exception) -> Violation:
    subject = module.path if module is not None else "."
    return Violation(
        rule=rule.rule_id,
        kind=ViolationKind.RULE_EVALUATION_FAILED,
        severity="warning",
        module=module.qualified_name if module is not None else PROJECT_SCOPE,
        file=subject,
        message=f"rule '{rule.rule_id}' could not be evaluated: {type(exc).__name__}: {exc}",
    )


def _evaluate(rule: Rule, module: ModuleDescriptor | None, model: ProjectModel) -> list[Violation]:
    try:
        if module is None:
            return list(rule.check_project(model))
        return list(rule.check_module(module, model))
    except (ConfigError, ScanError):
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "Rule %s failed on %s",
            rule.rule_id,
            module.qualified_name if module is not None else "project",
            exc_info=True,
        )
        return [_evaluation_failed(rule, module, exc)]


def run_rules(model: ProjectModel, rules: list[Rule], *, workers: int = 4) -> tuple[Violation, ...]:
    """Evaluate every rule exhaustively over the model.

    Module-scoped rules run once per module descriptor (submodules
    included); project-scoped rules run once. Tasks execute on a thread
    pool and append to a shared collector, so the returned order reflects
    completion order; callers sort before rendering.

    Raises:
        ConfigError, ScanError: Propagated from any task after cancelling
            the work that has not started yet.
    """
    tasks: list[tuple[Rule, ModuleDescriptor | None]] = []
    modules = list(model.iter_modules())
    for rule in rules:
        if rule.scope == "module":
            tasks.extend((rule, module) for module in modules)
        else:
            tasks.append((rule, None))

    collector = ViolationCollector()
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="conformance-rule")
    try:
        futures = [executor.submit(_evaluate, rule, module, model) for rule, module in tasks]
        for future in as_completed(futures):
            collector.extend(future.result())
    except BaseException:
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)

    logger.debug("Evaluated %d rule tasks with %d workers", len(tasks), workers)
    return collector.snapshot()


__all__ = [
    "Rule",
    "RuleRegistry",
    "ViolationCollector",
    "default_registry",
    "run_rules",
]
