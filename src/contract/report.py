"""Report contract definitions.

This module defines the stable vocabulary shared by rules, the parity
checker and the report generator: violation kinds, severities, rule ids and
the module completion checklist.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

# Report schema version for rendered JSON reports.
REPORT_SCHEMA_VERSION = 1

Severity = Literal["error", "warning"]

SEVERITY_RANK: dict[str, int] = {"warning": 1, "error": 2}


class ViolationKind(str, Enum):
    """Every non-fatal finding the validator can report."""

    RULE_EVALUATION_FAILED = "RuleEvaluationFailed"
    STRUCTURE = "StructureViolation"
    NAMING = "NamingViolation"
    LAYERING = "LayeringViolation"
    HARDCODED_VALUE = "HardcodedValueViolation"
    ENV_ACCESS = "EnvAccessViolation"
    ERROR_HIERARCHY = "ErrorHierarchyViolation"
    SLUG = "SlugViolation"
    SOFT_DELETE = "SoftDeleteViolation"
    INDEX = "IndexViolation"
    MISSING_MIGRATION = "MissingMigrationViolation"
    SCHEMA_DRIFT = "SchemaDriftViolation"
    MIGRATION_NAMING = "MigrationNamingViolation"
    DOCUMENTATION = "DocumentationViolation"


# Rule identifiers (stable, used by --rules and the config file).
RULE_STRUCTURE = "structure"
RULE_NAMING = "naming"
RULE_LAYERING = "layering"
RULE_CONSTANTS = "constants"
RULE_ENV_ACCESS = "env-access"
RULE_ERROR_HIERARCHY = "error-hierarchy"
RULE_SLUG = "slug"
RULE_SOFT_DELETE = "soft-delete"
RULE_INDEXING = "indexing"
RULE_PARITY = "parity"
RULE_DOCS = "docs"
# Build-phase parse failures are reported under this id.
RULE_PARSE = "parse"

BUILTIN_RULE_IDS: tuple[str, ...] = (
    RULE_STRUCTURE,
    RULE_NAMING,
    RULE_LAYERING,
    RULE_CONSTANTS,
    RULE_ENV_ACCESS,
    RULE_ERROR_HIERARCHY,
    RULE_SLUG,
    RULE_SOFT_DELETE,
    RULE_INDEXING,
    RULE_PARITY,
    RULE_DOCS,
)

# Module roles, in checklist order.
MODULE_ROLES: tuple[str, ...] = ("routes", "controller", "service", "validator", "types")

CHECKLIST_ITEMS: tuple[str, ...] = (
    *MODULE_ROLES,
    "no-hardcoded",
    "slugs",
    "migration",
    "soft-delete",
    "indexes",
    "errors",
    "docs",
)

# Kinds that map onto a checklist item regardless of the affected role.
KIND_CHECKLIST: dict[ViolationKind, str] = {
    ViolationKind.HARDCODED_VALUE: "no-hardcoded",
    ViolationKind.ENV_ACCESS: "no-hardcoded",
    ViolationKind.ERROR_HIERARCHY: "errors",
    ViolationKind.SLUG: "slugs",
    ViolationKind.SOFT_DELETE: "soft-delete",
    ViolationKind.INDEX: "indexes",
    ViolationKind.MISSING_MIGRATION: "migration",
    ViolationKind.SCHEMA_DRIFT: "migration",
    ViolationKind.MIGRATION_NAMING: "migration",
    ViolationKind.DOCUMENTATION: "docs",
}

# Kinds that map onto the role of the file they concern.
ROLE_SCOPED_KINDS: frozenset[ViolationKind] = frozenset(
    {ViolationKind.NAMING, ViolationKind.LAYERING}
)

ModuleState = Literal["Incomplete", "Complete"]

# Module name used for findings outside any module.
PROJECT_SCOPE = ""
