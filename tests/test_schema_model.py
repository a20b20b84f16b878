import pytest

from schemadiff.schema_model import (
    CheckConstraint,
    ColumnInfo,
    ConnectorKind,
    ConstraintInfo,
    ForeignKeyInfo,
    IndexInfo,
    SchemaConnector,
    SchemaModel,
    TableInfo,
    UniqueConstraint,
    canonical_type,
    normalize_identifier,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("serial", "integer"),
        ("bigserial", "bigint"),
        ("INT4", "integer"),
        ("int2", "smallint"),
        ("numeric(10,2)", "numeric"),
        ("decimal", "numeric"),
        ("float4", "real"),
        ("float", "double"),
        ("double precision", "double"),
        ("character varying", "text"),
        ("varchar(255)", "text"),
        ("timestamp without time zone", "timestamp"),
        ("timestamptz", "timestamp"),
        ("datetime", "timestamp"),
        ("bool", "boolean"),
        ("  Date  ", "date"),
        ("time", "time"),
    ],
)
def test_canonical_type_equivalences(raw, expected):
    assert canonical_type(raw) == expected


def test_canonical_type_unknown_is_lowercased_and_trimmed():
    assert canonical_type("  JSONB ") == "jsonb"


def test_canonical_type_is_idempotent():
    for raw in ["serial", "varchar(20)", "timestamp(3) with time zone", "uuid"]:
        once = canonical_type(raw)
        assert canonical_type(once) == once


def test_normalize_identifier_strips_quotes_and_case():
    assert normalize_identifier('  "Users" ') == "users"


def test_connector_kind_values():
    assert ConnectorKind("postgres") is ConnectorKind.POSTGRES
    assert ConnectorKind("sqlite") is ConnectorKind.SQLITE


def test_schema_connector_is_abstract():
    with pytest.raises(TypeError):
        SchemaConnector()


def test_concrete_connector_feeds_model():
    class FakeConnector(SchemaConnector):
        def kind(self):
            return ConnectorKind.SQLITE

        def ping(self):
            return None

        def list_tables(self):
            return ["t"]

        def load_schema(self):
            return [TableInfo(name="t", columns=[ColumnInfo("id", "INT", True)])]

    conn = FakeConnector()
    model = SchemaModel.from_connector_tables(conn.load_schema())
    assert conn.kind() is ConnectorKind.SQLITE
    assert list(model.tables) == conn.list_tables()
    assert model.tables["t"].columns["id"].data_type == "integer"


def _sample_tables():
    return [
        TableInfo(
            name="orders",
            columns=[
                ColumnInfo("user_id", "int8", True, None),
                ColumnInfo("amount", "numeric(10,2)", False, "  0 "),
                ColumnInfo("note", "varchar", False, "   "),
            ],
            indexes=[IndexInfo("idx_orders_user", ['"User_Id"'], False)],
            foreign_keys=[ForeignKeyInfo("fk_orders_user", ["User_Id"], '"Users"', ["ID"])],
            constraints=[
                ConstraintInfo("uq_orders", "unique", ['"Amount"']),
                ConstraintInfo("ck_orders", "check", [], "amount >= 0"),
                ConstraintInfo("ck_empty", "check", [], None),
                ConstraintInfo("pk_orders", "primary", ["id"]),
            ],
        ),
        TableInfo(name="audit"),
    ]


def test_from_connector_tables_normalizes_columns():
    model = SchemaModel.from_connector_tables(_sample_tables())
    cols = model.tables["orders"].columns
    assert cols["user_id"].data_type == "bigint"
    assert cols["user_id"].not_null is True
    assert cols["amount"].data_type == "numeric"
    assert cols["amount"].default_value == "0"
    assert cols["note"].default_value is None


def test_from_connector_tables_sorted_keys():
    model = SchemaModel.from_connector_tables(_sample_tables())
    assert list(model.tables) == sorted(model.tables)
    cols = list(model.tables["orders"].columns)
    assert cols == sorted(cols)


def test_from_connector_tables_normalizes_keys_and_indexes():
    model = SchemaModel.from_connector_tables(_sample_tables())
    table = model.tables["orders"]
    assert table.indexes["idx_orders_user"].columns == ["user_id"]
    fk = table.foreign_keys["fk_orders_user"]
    assert fk.columns == ["user_id"]
    assert fk.referenced_table == "users"
    assert fk.referenced_columns == ["id"]


def test_from_connector_tables_constraints():
    model = SchemaModel.from_connector_tables(_sample_tables())
    constraints = model.tables["orders"].constraints
    assert constraints["uq_orders"] == UniqueConstraint(columns=["amount"])
    assert constraints["ck_orders"] == CheckConstraint(expression="amount >= 0")
    assert constraints["ck_empty"] == CheckConstraint(expression="")
    assert "pk_orders" not in constraints


def test_from_connector_tables_empty_table():
    model = SchemaModel.from_connector_tables(_sample_tables())
    audit = model.tables["audit"]
    assert audit.name == "audit"
    assert (audit.columns, audit.indexes, audit.foreign_keys, audit.constraints) == ({}, {}, {}, {})