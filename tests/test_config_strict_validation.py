from __future__ import annotations

from pathlib import Path

import pytest

from rules.config import (
    ConfigError,
    ValidatorConfig,
    load_config,
    resolve_report_output,
    resolve_rule_ids,
)


def _write_config(repo_root: Path, toml_content: str) -> None:
    (repo_root / "conformance.toml").write_text(toml_content, encoding="utf-8")


def test_missing_default_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert config == ValidatorConfig()
    assert config.fail_on == "error"
    assert config.layout.required_roles == ["routes", "controller", "service", "validator", "types"]


def test_explicit_config_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="Config file not found"):
        load_config(tmp_path, tmp_path / "missing.toml")


def test_unknown_top_level_key_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "bogus_key = true")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_nested_key_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[patterns]
constant_literal = ["^[A-Z]+$"]
""".strip(),
    )

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_invalid_toml_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, "[rules\nenabled = ")

    with pytest.raises(ConfigError, match="Invalid TOML"):
        load_config(tmp_path)


def test_invalid_regex_rejected(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
[patterns]
status_tables = ["(unclosed"]
""".strip(),
    )

    with pytest.raises(ConfigError, match="status_tables"):
        load_config(tmp_path)


def test_invalid_foreign_key_regex_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, '[patterns]\nforeign_key_fields = "[a-"')

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_rule_id_in_config_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, '[rules]\ndisabled = ["no-such-rule"]')

    with pytest.raises(ConfigError, match="no-such-rule"):
        load_config(tmp_path)


def test_unknown_role_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, '[layout]\nrequired_roles = ["routes", "repository"]')

    with pytest.raises(ConfigError, match="repository"):
        load_config(tmp_path)


def test_bad_severity_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, '[rules.severity]\nnaming = "fatal"')

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_workers_must_be_positive(tmp_path: Path) -> None:
    _write_config(tmp_path, "workers = 0")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_valid_config_accepted(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
fail_on = "warning"
workers = 2

[scan]
ignore = ["fixtures"]

[rules]
disabled = ["docs"]

[rules.severity]
constants = "error"

[patterns]
identity_tables = ["uom"]
""".strip(),
    )

    config = load_config(tmp_path)

    assert config.fail_on == "warning"
    assert config.workers == 2
    assert "fixtures" in config.scan.patterns()
    assert "node_modules" in config.scan.patterns()
    assert config.severity_for("constants", "warning") == "error"
    assert config.severity_for("naming", "error") == "error"
    assert config.patterns.identity_tables == ["uom"]


def test_required_roles_keep_canonical_order(tmp_path: Path) -> None:
    _write_config(tmp_path, '[layout]\nrequired_roles = ["types", "routes"]')

    assert load_config(tmp_path).layout.required_roles == ["routes", "types"]


def test_resolve_rule_ids_defaults_to_all_in_registry_order() -> None:
    ids = resolve_rule_ids(ValidatorConfig())

    assert ids[0] == "structure"
    assert ids[-1] == "docs"
    assert len(ids) == 11


def test_resolve_rule_ids_requested_replaces_enabled_and_disabled_applies() -> None:
    config = ValidatorConfig.model_validate(
        {"rules": {"enabled": ["naming"], "disabled": ["layering"]}}
    )

    assert resolve_rule_ids(config) == ["naming"]
    assert resolve_rule_ids(config, ["parity", "layering", "naming"]) == ["naming", "parity"]


def test_resolve_rule_ids_rejects_unknown_requested_id() -> None:
    with pytest.raises(ConfigError, match="Unknown rule id"):
        resolve_rule_ids(ValidatorConfig(), ["naming", "bogus"])


def test_resolve_report_output_rejects_path_inside_root(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    with pytest.raises(ConfigError, match="inside the inspected tree"):
        resolve_report_output(repo_root, repo_root / "reports" / "out.json")


def test_resolve_report_output_accepts_sibling_path(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()

    resolved = resolve_report_output(repo_root, tmp_path / "out.json")

    assert resolved == (tmp_path / "out.json").resolve()
