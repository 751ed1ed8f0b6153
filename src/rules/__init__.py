"""Rule definitions for erp-conformance."""

from rules.config import (
    ConfigError,
    ValidatorConfig,
    load_config,
    resolve_rule_ids,
)
from rules.engine import Rule, RuleRegistry, default_registry, run_rules
from rules.layers import classify_area

__all__ = [
    "ConfigError",
    "Rule",
    "RuleRegistry",
    "ValidatorConfig",
    "classify_area",
    "default_registry",
    "load_config",
    "resolve_rule_ids",
    "run_rules",
]
