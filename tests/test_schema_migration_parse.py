from __future__ import annotations

import pytest

from parse.migrations import extract_migration_records, is_well_named, table_from_filename
from parse.schema import SchemaParseError, extract_schema_entities
from parse.treesitter_ts import parse_source

_INIT_MODEL = b"""\
import { DataTypes, Model } from 'sequelize';

export class Supplier extends Model {
  static initModel(sequelize) {
    this.init(
      {
        id: { type: DataTypes.UUID, primaryKey: true },
        name: DataTypes.STRING(120),
        code: { type: DataTypes.STRING, allowNull: false, unique: true },
        regionId: { type: DataTypes.UUID, references: { model: 'regions', key: 'id' } },
        isDeleted: { type: DataTypes.BOOLEAN, allowNull: false },
      },
      {
        sequelize,
        indexes: [{ unique: true, fields: ['code'] }, { fields: ['regionId', 'name'] }],
      },
    );
  }
}
"""

_DEFINE_MODEL = b"""\
export const OrderStatus = sequelize.define(
  'order_statuses',
  { slug: { type: DataTypes.STRING }, deleted_at: DataTypes.DATE },
  { timestamps: true },
);
"""


def test_init_model_fields_and_indexes() -> None:
    tree = parse_source(_INIT_MODEL, "supplier.model.ts")

    [entity] = extract_schema_entities(_INIT_MODEL, tree, "src/models/supplier.model.ts")

    assert entity.table == "supplier"
    assert entity.model_name == "Supplier"
    assert entity.field_names == ("id", "name", "code", "regionId", "isDeleted")
    id_field = entity.get_field("id")
    assert id_field is not None
    assert id_field.primary_key is True
    assert id_field.nullable is False
    name_field = entity.get_field("name")
    assert name_field is not None
    assert name_field.type == "STRING"
    assert name_field.nullable is True
    code_field = entity.get_field("code")
    assert code_field is not None
    assert code_field.unique is True
    assert code_field.nullable is False
    region_field = entity.get_field("regionId")
    assert region_field is not None
    assert region_field.references == "regions"
    assert [(index.fields, index.unique) for index in entity.indexes] == [
        (("code",), True),
        (("regionId", "name"), False),
    ]
    assert entity.soft_delete is False
    assert entity.has_slug is False


def test_define_model_uses_table_argument_and_marker_field() -> None:
    tree = parse_source(_DEFINE_MODEL, "order-status.model.ts")

    [entity] = extract_schema_entities(_DEFINE_MODEL, tree, "order-status.model.ts")

    assert entity.table == "order_statuses"
    assert entity.has_slug is True
    assert entity.soft_delete is True
    assert entity.soft_delete_field == "deleted_at"


def test_paranoid_option_counts_as_soft_delete() -> None:
    source = b"Invoice.init({ id: DataTypes.UUID }, { tableName: 'invoices', paranoid: true });\n"
    tree = parse_source(source, "invoice.model.ts")

    [entity] = extract_schema_entities(source, tree, "invoice.model.ts")

    assert entity.table == "invoices"
    assert entity.soft_delete is True


def test_non_literal_attributes_raise() -> None:
    source = b"Invoice.init(buildAttributes(), { tableName: 'invoices' });\n"
    tree = parse_source(source, "invoice.model.ts")

    with pytest.raises(SchemaParseError, match="not an object literal"):
        extract_schema_entities(source, tree, "invoice.model.ts")


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("20240101120000-create-purchase-order.ts", True),
        ("20240101120000-add-index.js", True),
        ("2024010112000-create-purchase-order.ts", False),
        ("20240101120000_create_purchase_order.ts", False),
        ("20240101120000-Create-Order.ts", False),
        ("20240101120000.ts", False),
    ],
)
def test_is_well_named(filename: str, expected: bool) -> None:
    assert is_well_named(filename) is expected


def test_table_from_filename() -> None:
    assert table_from_filename("20240101120000-create-purchase-order.ts") == (
        "purchase_order",
        "create",
    )
    assert table_from_filename("20240301000000-alter-suppliers-table.ts") == ("suppliers", "alter")


_MIGRATION = b"""\
const TABLE = 'purchase_order';

module.exports = {
  up: async (queryInterface, Sequelize) => {
    await queryInterface.createTable(TABLE, {
      id: { type: Sequelize.UUID, primaryKey: true },
      note: { type: Sequelize.TEXT },
    });
    await queryInterface.addColumn({ tableName: 'suppliers' }, 'rating', {
      type: Sequelize.INTEGER,
      allowNull: false,
    });
    await queryInterface.renameColumn(TABLE, 'note', 'remarks');
  },
  down: async (queryInterface) => {
    await queryInterface.dropTable(TABLE);
    await queryInterface.removeColumn('suppliers', 'rating');
  },
};
"""


def test_migration_records_group_up_operations_by_table() -> None:
    path = "src/infrastructure/database/migrations/20240101120000-create-purchase-order.js"
    tree = parse_source(_MIGRATION, path)

    records = extract_migration_records(_MIGRATION, tree, path)

    by_table = {record.table: record for record in records}
    assert set(by_table) == {"purchase_order", "suppliers"}
    order = by_table["purchase_order"]
    assert order.action == "create"
    assert order.timestamp == "20240101120000"
    assert [op.kind for op in order.operations] == ["create_table", "rename_column"]
    suppliers = by_table["suppliers"]
    assert suppliers.action == "alter"
    [add] = suppliers.operations
    assert add.kind == "add_column"
    assert add.column == "rating"
    assert add.fields[0].nullable is False


def test_unparseable_migration_falls_back_to_filename() -> None:
    path = "migrations/20240105000000-create-invoices.ts"

    [record] = extract_migration_records(b"", None, path)

    assert record.table == "invoices"
    assert record.action == "create"
    assert record.operations == ()
    assert record.well_named is True
