from __future__ import annotations

import re
import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from contract.report import BUILTIN_RULE_IDS, MODULE_ROLES, Severity

CONFIG_FILENAME = "conformance.toml"

DEFAULT_IGNORE: tuple[str, ...] = (
    "logs",
    "*.log",
    "node_modules",
    "dist",
    "build",
    "coverage",
    ".git",
    ".hg",
    ".svn",
    "*.generated.*",
)

DEFAULT_ORM_CALLS: tuple[str, ...] = (
    r"\.(findAll|findOne|findByPk|findAndCountAll|findOrCreate|bulkCreate"
    r"|destroy|upsert|restore|increment|decrement|truncate)$",
    r"^(sequelize|knex|prisma|db|queryInterface)\.",
    r"\.query$",
)

DEFAULT_PERSISTENCE_IMPORTS: tuple[str, ...] = (
    r"(^|/)infrastructure/database(/|$)",
    r"(^|/)models(/|$)",
    r"\.model$",
    r"^sequelize(-typescript)?$",
    r"^@prisma/client$",
    r"^typeorm$",
    r"^knex$",
    r"^mongoose$",
)


def _compile_all(patterns: list[str], field_name: str) -> list[str]:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as exc:
            msg = f"{field_name}: invalid regular expression {pattern!r}: {exc}"
            raise ValueError(msg) from exc
    return patterns


class ScanConfig(BaseModel):
    """Tree scanner options."""

    model_config = ConfigDict(extra="forbid")

    ignore: list[str] = Field(
        default_factory=list,
        description="Extra fnmatch patterns (name or relative path) to skip",
    )
    respect_gitignore: bool = Field(
        default=True,
        description="Skip paths matched by the root .gitignore",
    )

    def patterns(self) -> list[str]:
        return [*DEFAULT_IGNORE, *self.ignore]


class RulesConfig(BaseModel):
    """Rule selection and severity overrides."""

    model_config = ConfigDict(extra="forbid")

    enabled: list[str] = Field(
        default_factory=list,
        description="Rule ids to run (empty = all built-in rules)",
    )
    disabled: list[str] = Field(
        default_factory=list,
        description="Rule ids to skip",
    )
    severity: dict[str, Severity] = Field(
        default_factory=dict,
        description="Per-rule severity overrides: rule id -> error|warning",
    )

    @field_validator("enabled", "disabled")
    @classmethod
    def validate_rule_ids(cls, v: list[str]) -> list[str]:
        unknown = sorted(set(v) - set(BUILTIN_RULE_IDS))
        if unknown:
            msg = (
                f"Unknown rule id(s): {', '.join(unknown)}. "
                f"Valid ids: {', '.join(BUILTIN_RULE_IDS)}"
            )
            raise ValueError(msg)
        return v

    @field_validator("severity")
    @classmethod
    def validate_severity_keys(cls, v: dict[str, Severity]) -> dict[str, Severity]:
        unknown = sorted(set(v) - set(BUILTIN_RULE_IDS))
        if unknown:
            msg = f"Unknown rule id(s) in severity overrides: {', '.join(unknown)}"
            raise ValueError(msg)
        return v


class LayoutConfig(BaseModel):
    """Where the standard expects things to live.

    All globs are matched against paths relative to the source root
    (``src/`` when present), falling back to the project root for files
    outside it.
    """

    model_config = ConfigDict(extra="forbid")

    source_extensions: list[str] = Field(default_factory=lambda: [".ts"])
    required_roles: list[str] = Field(default_factory=lambda: list(MODULE_ROLES))
    auxiliary_suffixes: list[str] = Field(
        default_factory=lambda: [
            "constants",
            "errors",
            "spec",
            "test",
            "interface",
            "dto",
            "middleware",
            "helpers",
            "utils",
            "mapper",
        ],
        description="Module file suffixes that are allowed but not required",
    )
    allowed_filenames: list[str] = Field(default_factory=lambda: ["index.ts"])
    constants_globs: list[str] = Field(
        default_factory=lambda: ["common/constants/**", "**/constants/**", "**/*.constants.ts"]
    )
    config_globs: list[str] = Field(default_factory=lambda: ["config/**"])
    errors_globs: list[str] = Field(
        default_factory=lambda: ["common/errors/**", "**/errors/**", "**/*.errors.ts"]
    )
    schema_globs: list[str] = Field(
        default_factory=lambda: ["infrastructure/**/models/**/*.ts", "infrastructure/**/*.model.ts"]
    )
    migration_globs: list[str] = Field(
        default_factory=lambda: [
            "infrastructure/**/migrations/*.ts",
            "infrastructure/**/migrations/*.js",
            "migrations/*.ts",
            "migrations/*.js",
        ]
    )
    test_globs: list[str] = Field(
        default_factory=lambda: [
            "**/*.spec.ts",
            "**/*.test.ts",
            "tests/**",
            "test/**",
            "**/__tests__/**",
        ],
        description="Files excluded from source-level heuristic rules",
    )
    doc_filename: str = "README.md"

    @field_validator("required_roles")
    @classmethod
    def validate_roles(cls, v: list[str]) -> list[str]:
        unknown = sorted(set(v) - set(MODULE_ROLES))
        if unknown:
            msg = f"Unknown module role(s): {', '.join(unknown)}"
            raise ValueError(msg)
        # Keep canonical role order regardless of how the file lists them.
        return [role for role in MODULE_ROLES if role in v]

    @field_validator("source_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        for ext in v:
            if not ext.startswith("."):
                msg = f"source extension {ext!r} must start with '.'"
                raise ValueError(msg)
        return v


class PatternsConfig(BaseModel):
    """Detection patterns for the heuristic rules."""

    model_config = ConfigDict(extra="forbid")

    constant_literals: list[str] = Field(
        default_factory=lambda: [r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)+$", r"^[A-Z]{3,}$"],
        description="Regexes for enumeration-style string literals",
    )
    allowed_numbers: list[float] = Field(default_factory=lambda: [-1, 0, 1, 2])
    env_accessors: list[str] = Field(
        default_factory=lambda: ["process.env", "import.meta.env", "Deno.env", "Bun.env"]
    )
    status_tables: list[str] = Field(
        default_factory=lambda: [
            r"(^|_)(status|statuses|category|categories|role|roles|type|types)$"
        ],
        description="Regexes for table names with slug identity semantics",
    )
    identity_tables: list[str] = Field(
        default_factory=list,
        description="Explicitly marked slug identity tables",
    )
    orm_calls: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ORM_CALLS),
        description="Call patterns forbidden in routes files",
    )
    persistence_calls: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ORM_CALLS),
        description="Call patterns forbidden in controller files",
    )
    persistence_imports: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PERSISTENCE_IMPORTS),
        description="Import sources that reach the database/model collaborator",
    )
    service_receivers: list[str] = Field(
        default_factory=lambda: [r"(?i)service$"],
        description="Call receivers that are services, exempt from call patterns",
    )
    generic_errors: list[str] = Field(default_factory=lambda: ["Error"])
    base_error: str = "BaseError"
    soft_delete_fields: list[str] = Field(default_factory=lambda: ["deletedAt", "deleted_at"])
    manual_delete_fields: list[str] = Field(
        default_factory=lambda: ["isDeleted", "is_deleted", "deleted"]
    )
    slug_field: str = "slug"
    status_fields: list[str] = Field(
        default_factory=lambda: [r"^status(Id|Slug|_id|_slug)?$"]
    )
    foreign_key_fields: str | None = Field(
        default=None,
        description="Optional regex treating matching field names as foreign keys",
    )

    @field_validator(
        "constant_literals",
        "status_tables",
        "orm_calls",
        "persistence_calls",
        "persistence_imports",
        "service_receivers",
        "status_fields",
    )
    @classmethod
    def validate_regex_list(cls, v: list[str], info: ValidationInfo) -> list[str]:
        return _compile_all(v, info.field_name)

    @field_validator("foreign_key_fields")
    @classmethod
    def validate_fk_regex(cls, v: str | None) -> str | None:
        if v is not None:
            _compile_all([v], "foreign_key_fields")
        return v


class ValidatorConfig(BaseModel):
    """Configuration for an erp-conformance run."""

    model_config = ConfigDict(extra="forbid")

    workers: int = Field(default=4, ge=1, description="Rule evaluation threads")
    fail_on: Severity = Field(
        default="error",
        description="Lowest severity that makes the run fail",
    )
    scan: ScanConfig = Field(default_factory=ScanConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    patterns: PatternsConfig = Field(default_factory=PatternsConfig)

    def severity_for(self, rule_id: str, default: Severity) -> Severity:
        return self.rules.severity.get(rule_id, default)


class ConfigError(Exception):
    """Raised when configuration is missing, unparsable or invalid."""


def resolve_rule_ids(config: ValidatorConfig, requested: list[str] | None = None) -> list[str]:
    """Return the rule ids to run, in registry order.

    ``requested`` (from ``--rules``) replaces the config's ``enabled`` list;
    ``disabled`` always applies.
    """
    if requested:
        unknown = sorted(set(requested) - set(BUILTIN_RULE_IDS))
        if unknown:
            msg = (
                f"Unknown rule id(s): {', '.join(unknown)}. "
                f"Valid ids: {', '.join(BUILTIN_RULE_IDS)}"
            )
            raise ConfigError(msg)
        selected = set(requested)
    elif config.rules.enabled:
        selected = set(config.rules.enabled)
    else:
        selected = set(BUILTIN_RULE_IDS)

    selected -= set(config.rules.disabled)
    return [rule_id for rule_id in BUILTIN_RULE_IDS if rule_id in selected]


def resolve_report_output(root: Path, output: Path) -> Path:
    """Resolve a report output path, which must lie outside the inspected tree.

    The validator never writes into the project it inspects.
    """
    try:
        resolved_root = Path(root).resolve()
        resolved_output = Path(output).expanduser().resolve()
    except OSError as exc:
        msg = f"Failed to resolve output path '{output}': {exc}"
        raise ConfigError(msg) from exc

    if resolved_output == resolved_root or resolved_output.is_relative_to(resolved_root):
        msg = f"Output path {output} is inside the inspected tree {root}"
        raise ConfigError(msg)
    return resolved_output


def load_config(root: Path, config_path: Path | None = None) -> ValidatorConfig:
    """Load configuration from ``config_path`` or ``<root>/conformance.toml``.

    An explicit ``config_path`` must exist; the default file is optional.
    """
    if config_path is None:
        config_path = Path(root) / CONFIG_FILENAME
        if not config_path.is_file():
            return ValidatorConfig()
    elif not config_path.is_file():
        msg = f"Config file not found: {config_path}"
        raise ConfigError(msg)

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Cannot read config {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return ValidatorConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
