from __future__ import annotations

from pathlib import Path

from contract.report import ViolationKind
from pipeline import run_validation
from rules.config import ValidatorConfig
from rules.engine import run_rules
from rules.layering import LayeringRule
from rules.naming import NamingRule
from rules.structure import DocumentationRule
from scan.files import scan_tree
from structure.builder import build_project_model


def _write_files(root: Path, files: dict[str, str]) -> None:
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def test_scenario_missing_role_files_are_naming_violations(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            "modules/inwards/inwards.routes.ts": "export {};\n",
            "modules/inwards/inwards.controller.ts": "export {};\n",
        },
    )

    run = run_validation(tmp_path)

    naming = [v for v in run.report.violations if v.kind is ViolationKind.NAMING]
    assert sorted((v.module, v.role) for v in naming) == [
        ("inwards", "service"),
        ("inwards", "types"),
        ("inwards", "validator"),
    ]
    assert naming[0].file == "modules/inwards/inwards.service.ts"
    assert "missing its service file" in naming[0].message
    [status] = run.report.modules
    assert status.module == "inwards"
    assert status.status == "Incomplete"
    assert status.missing[:3] == ("service", "validator", "types")
    assert "routes" in status.satisfied
    assert "controller" in status.satisfied


def test_each_missing_role_has_exactly_one_violation(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            "modules/orders/orders.service.ts": "export {};\n",
            "modules/orders/orders.types.ts": "export {};\n",
            "modules/billing/invoices/invoices.routes.ts": "export {};\n",
        },
    )
    config = ValidatorConfig()
    model = build_project_model(tmp_path, scan_tree(tmp_path), config)

    violations = run_rules(model, [NamingRule(config)])

    missing = sorted((v.module, v.role) for v in violations if "missing" in v.message)
    assert missing == [
        ("billing/invoices", "controller"),
        ("billing/invoices", "service"),
        ("billing/invoices", "types"),
        ("billing/invoices", "validator"),
        ("orders", "controller"),
        ("orders", "routes"),
        ("orders", "validator"),
    ]


def test_naming_flags_folders_prefixes_and_unsuffixed_files(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            "modules/purchaseOrders/purchaseOrders.routes.ts": "export {};\n",
            "modules/purchaseOrders/helpers.ts": "export {};\n",
            "modules/purchaseOrders/index.ts": "export {};\n",
        },
    )
    config = ValidatorConfig.model_validate({"layout": {"required_roles": ["routes"]}})
    model = build_project_model(tmp_path, scan_tree(tmp_path), config)

    violations = run_rules(model, [NamingRule(config)])

    files = sorted(v.file for v in violations)
    assert files == [
        "modules/purchaseOrders",
        "modules/purchaseOrders/helpers.ts",
        "modules/purchaseOrders/purchaseOrders.routes.ts",
    ]
    routes = next(v for v in violations if v.file.endswith(".routes.ts"))
    assert routes.role == "routes"


_CONTROLLER = """\
import { Request, Response } from 'express';
import { Order } from '../../infrastructure/database/models/order.model';

export class OrdersController {
  async list(req: Request, res: Response) {
    const rows = await Order.findAll();
    const one = await Order.findOne({ where: { id: req.params.id } });
    res.json({ rows, one });
  }

  async count(req: Request, res: Response) {
    res.json(await this.ordersService.count());
  }
}
"""


def test_scenario_controller_persistence_access_is_one_layering_violation(
    tmp_path: Path,
) -> None:
    _write_files(
        tmp_path,
        {
            "modules/orders/orders.routes.ts": "export {};\n",
            "modules/orders/orders.controller.ts": _CONTROLLER,
            "modules/orders/orders.service.ts": (
                "export class OrdersService {\n"
                "  count() { return Order.findAll(); }\n"
                "}\n"
            ),
        },
    )

    run = run_validation(tmp_path)

    layering = [v for v in run.report.violations if v.kind is ViolationKind.LAYERING]
    assert len(layering) == 1
    [violation] = layering
    assert violation.file == "modules/orders/orders.controller.ts"
    assert violation.role == "controller"
    assert violation.line == 2
    assert "Order.findAll" in violation.message
    assert "Order.findOne" in violation.message
    assert "order.model" in violation.message
    assert "controller" in run.report.modules[0].missing


def test_layering_violation_is_independent_of_other_rules(tmp_path: Path) -> None:
    _write_files(tmp_path, {"modules/orders/orders.controller.ts": _CONTROLLER})

    run = run_validation(tmp_path, rule_ids=["layering"])

    assert [v.kind for v in run.report.violations] == [ViolationKind.LAYERING]


def test_routes_may_not_call_the_orm(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            "modules/orders/orders.routes.ts": (
                "import { Router } from 'express';\n"
                "export const router = Router();\n"
                "router.get('/', async (_req, res) => res.json(await sequelize.query('select 1')));\n"
            ),
        },
    )
    config = ValidatorConfig()
    model = build_project_model(tmp_path, scan_tree(tmp_path), config)

    [violation] = run_rules(model, [LayeringRule(config)])

    assert violation.role == "routes"
    assert violation.line == 3
    assert "sequelize.query" in violation.message


def test_documentation_rule_covers_submodules(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            "modules/billing/README.md": "# billing\n",
            "modules/billing/invoices/invoices.routes.ts": "export {};\n",
        },
    )
    config = ValidatorConfig()
    model = build_project_model(tmp_path, scan_tree(tmp_path), config)

    [violation] = run_rules(model, [DocumentationRule(config)])

    assert violation.kind is ViolationKind.DOCUMENTATION
    assert violation.module == "billing/invoices"
    assert violation.file == "modules/billing/invoices/README.md"
    assert violation.severity == "warning"


def _complete_module(directory: str, prefix: str) -> dict[str, str]:
    files = {
        f"{directory}/{prefix}.{role}.ts": "export {};\n"
        for role in ("routes", "controller", "service", "validator", "types")
    }
    files[f"{directory}/README.md"] = f"# {prefix}\n"
    return files


def test_roleless_naming_violations_leave_the_module_incomplete(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            **_complete_module("modules/PurchaseOrders", "purchase-orders"),
            "modules/PurchaseOrders/purchase-orders.weird.ts": "export {};\n",
        },
    )

    run = run_validation(tmp_path, rule_ids=["naming"])

    naming = [(v.file, v.role) for v in run.report.violations]
    assert naming == [
        ("modules/PurchaseOrders", None),
        ("modules/PurchaseOrders/purchase-orders.weird.ts", None),
    ]
    [status] = run.report.modules
    assert status.status == "Incomplete"
    assert status.missing == ("routes", "controller", "service", "validator", "types")


def test_naming_checks_every_folder_segment_inside_a_module(tmp_path: Path) -> None:
    _write_files(
        tmp_path,
        {
            **_complete_module("modules/orders", "orders"),
            "modules/orders/OrderHelpers/format_thing.ts": "export {};\n",
            "modules/orders/helpers/DeepDir/sample.json": "{}\n",
        },
    )

    run = run_validation(tmp_path, rule_ids=["structure", "naming"])

    naming = sorted(v.file for v in run.report.violations if v.kind is ViolationKind.NAMING)
    assert naming == [
        "modules/orders/OrderHelpers",
        "modules/orders/helpers/DeepDir",
    ]
    stray = sorted(v.file for v in run.report.violations if v.kind is ViolationKind.STRUCTURE)
    assert "modules/orders/OrderHelpers" in stray
    assert run.model.modules[0].nested_directories == (
        "OrderHelpers",
        "helpers",
        "helpers/DeepDir",
    )
    assert run.report.modules[0].status == "Incomplete"
