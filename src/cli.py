"""Command-line interface for erp-conformance."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from contract.report import BUILTIN_RULE_IDS
from pipeline import run_validation
from report.generator import exit_status
from report.render import render
from rules.config import ConfigError, ValidatorConfig, resolve_report_output
from rules.engine import default_registry
from scan.files import ScanError
from verify.verify import verify_report

logger = logging.getLogger(__name__)


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Project root (default: .)",
    )


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default=None,
        help="Report format (default: text; verify infers it from the report suffix)",
    )
    parser.add_argument(
        "--rules",
        default=None,
        help=f"Comma-separated rule ids to run ({', '.join(BUILTIN_RULE_IDS)})",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config file (default: <root>/conformance.toml when present)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="erp-conformance")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate", help="Check a project tree against the architecture standard"
    )
    _add_common_paths(validate_parser)
    _add_run_options(validate_parser)
    validate_parser.add_argument(
        "--fail-on",
        choices=("warning", "error"),
        default=None,
        help="Lowest severity that fails the run (default: config, else error)",
    )
    validate_parser.add_argument(
        "--output",
        default=None,
        help="Write the report to this file (outside the project) instead of stdout",
    )

    verify_parser = subparsers.add_parser(
        "verify", help="Verify a saved report is reproduced byte-for-byte"
    )
    _add_common_paths(verify_parser)
    _add_run_options(verify_parser)
    verify_parser.add_argument(
        "--report",
        required=True,
        help="Previously saved report to compare against",
    )

    subparsers.add_parser("rules", help="List the built-in rules")

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _parse_rule_ids(value: str | None) -> list[str] | None:
    if value is None:
        return None
    ids = [item.strip() for item in value.split(",") if item.strip()]
    if not ids:
        msg = "--rules must name at least one rule id"
        raise ConfigError(msg)
    return ids


def _config_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


def _handle_validate(root: Path, args: argparse.Namespace) -> int:
    output = resolve_report_output(root, Path(args.output)) if args.output else None
    run = run_validation(
        root,
        config_path=_config_path(args.config),
        rule_ids=_parse_rule_ids(args.rules),
    )
    content = render(run.report, args.format or "text")
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(content)
    else:
        sys.stdout.buffer.write(content)
        sys.stdout.flush()
    return exit_status(run.report, args.fail_on or run.config.fail_on)


def _handle_verify(root: Path, args: argparse.Namespace) -> int:
    report_path = Path(args.report).expanduser().resolve()
    result = verify_report(
        root,
        report_path,
        fmt=args.format,
        config_path=_config_path(args.config),
        rule_ids=_parse_rule_ids(args.rules),
    )
    if not result.ok:
        sys.stderr.write(f"report: {report_path}\n")
        sys.stderr.write(f"expected sha256: {result.expected_digest}\n")
        sys.stderr.write(f"actual sha256:   {result.actual_digest}\n")
        return 1
    return 0


def _handle_rules() -> int:
    config = ValidatorConfig()
    for rule_cls in default_registry():
        severity = config.severity_for(rule_cls.rule_id, rule_cls.default_severity)
        sys.stdout.write(
            f"{rule_cls.rule_id:<16} {severity:<8} {rule_cls.scope:<8} {rule_cls.description}\n"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "rules":
        return _handle_rules()

    root = Path(args.root).expanduser().resolve()

    try:
        if args.command == "validate":
            return _handle_validate(root, args)
        if args.command == "verify":
            return _handle_verify(root, args)
    except (ScanError, ConfigError, OSError) as exc:
        logger.debug("Fatal error", exc_info=True)
        sys.stderr.write(f"error: {exc}\n")
        return 2

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
