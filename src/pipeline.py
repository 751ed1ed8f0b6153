from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from report.generator import build_report
from rules.config import load_config, resolve_rule_ids
from rules.engine import default_registry, run_rules
from scan.files import scan_tree
from structure.builder import build_project_model

if TYPE_CHECKING:
    from contract.models import Report
    from rules.config import ValidatorConfig
    from structure.project import ProjectModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationRun:
    config: ValidatorConfig
    rule_ids: tuple[str, ...]
    model: ProjectModel
    report: Report


def run_validation(
    root: Path,
    *,
    config: ValidatorConfig | None = None,
    config_path: Path | None = None,
    rule_ids: list[str] | None = None,
) -> ValidationRun:
    """Scan, model, evaluate and report on one project tree.

    Args:
        root: Project root to inspect. Never written to.
        config: Pre-loaded configuration; loaded from ``config_path`` or
            ``<root>/conformance.toml`` when omitted.
        config_path: Explicit configuration file.
        rule_ids: Rule ids to run instead of the configured selection.

    Returns:
        ValidationRun carrying the model and the aggregated report.

    Raises:
        ScanError: The root is missing or unreadable.
        ConfigError: The configuration or rule selection is invalid.
    """
    root = Path(root).resolve()
    if config is None:
        config = load_config(root, config_path)
    selected = resolve_rule_ids(config, rule_ids)
    rules = default_registry().create(selected, config)
    logger.debug("Selected rules: %s", ", ".join(selected))

    tree = scan_tree(
        root,
        ignore_patterns=config.scan.patterns(),
        respect_gitignore=config.scan.respect_gitignore,
    )
    model = build_project_model(root, tree, config)
    violations = run_rules(model, rules, workers=config.workers)
    report = build_report(model, violations)
    return ValidationRun(config=config, rule_ids=tuple(selected), model=model, report=report)


__all__ = ["ValidationRun", "run_validation"]
