import pytest

from schemadiff.diff_model import ColumnModification
from schemadiff.schema_model import (
    CheckConstraint,
    Column,
    ConnectorKind,
    ForeignKey,
    Index,
    Table,
    UniqueConstraint,
)
from schemadiff.sql_statements import (
    SqlDialect,
    add_constraint_statements,
    add_fk_statement,
    create_index_statement,
    create_table_statement,
    drop_constraint_statements,
    drop_fk_statements,
    drop_index_statement,
    escape_literal,
    format_default,
    generate_modified_column_sql,
    generate_sqlite_table_rebuild,
    quote_ident,
)


def make_table(name, cols):
    return Table(
        name=name,
        columns={n: Column(name=n, data_type=ty, not_null=nn) for n, ty, nn in cols},
    )


@pytest.fixture
def orders_fk():
    return ForeignKey(
        name="fk_orders_user",
        columns=["user_id"],
        referenced_table="users",
        referenced_columns=["id"],
    )


def test_dialect_from_connector():
    assert SqlDialect.from_connector(ConnectorKind.POSTGRES) is SqlDialect.POSTGRES
    assert SqlDialect.from_connector(ConnectorKind.SQLITE) is SqlDialect.SQLITE


def test_quote_ident_doubles_quotes():
    assert quote_ident("users") == '"users"'
    assert quote_ident('we"ird') == '"we""ird"'


def test_escape_literal():
    assert escape_literal("o'hara") == "o''hara"


def test_format_default():
    assert format_default("0") == " DEFAULT 0"
    assert format_default(None) == ""


def test_create_table_statement_sorted_columns():
    table = Table(
        name="users",
        columns={
            "id": Column(name="id", data_type="integer", not_null=True),
            "age": Column(name="age", data_type="integer", default_value="0"),
        },
    )
    assert create_table_statement(table) == (
        'CREATE TABLE IF NOT EXISTS "users" (\n'
        '  "age" integer DEFAULT 0,\n'
        '  "id" integer NOT NULL\n'
        ");"
    )


def test_create_index_statements():
    unique = Index(name="idx_email", columns=["email"], unique=True)
    plain = Index(name="idx_ab", columns=["a", "b"])
    assert create_index_statement("users", unique) == (
        'CREATE UNIQUE INDEX IF NOT EXISTS "idx_email" ON "users" ("email");'
    )
    assert create_index_statement("t", plain) == (
        'CREATE INDEX IF NOT EXISTS "idx_ab" ON "t" ("a", "b");'
    )


def test_drop_index_statement():
    assert drop_index_statement("idx") == 'DROP INDEX IF EXISTS "idx";'


def test_drop_fk_statements_per_dialect():
    assert drop_fk_statements("orders", "fk", SqlDialect.POSTGRES) == [
        'ALTER TABLE "orders" DROP CONSTRAINT IF EXISTS "fk";'
    ]
    sqlite = drop_fk_statements("orders", "fk", SqlDialect.SQLITE)
    assert len(sqlite) == 1
    assert sqlite[0].startswith("-- SQLite")


def test_postgres_fk_uses_do_block(orders_fk):
    sql = add_fk_statement("orders", orders_fk, SqlDialect.POSTGRES)
    assert sql.startswith("DO $$")
    assert "information_schema.table_constraints" in sql
    assert 'FOREIGN KEY ("user_id") REFERENCES "users" ("id")' in sql
    assert sql.endswith("END IF; END $$;")


def test_sqlite_fk_no_do_block(orders_fk):
    sql = add_fk_statement("orders", orders_fk, SqlDialect.SQLITE)
    assert "DO $$" not in sql
    assert "ALTER TABLE" not in sql
    assert "recreation de table" in sql


def test_drop_constraint_statements():
    assert drop_constraint_statements("t", "uq", SqlDialect.POSTGRES) == [
        'ALTER TABLE "t" DROP CONSTRAINT IF EXISTS "uq";'
    ]
    assert "Recreer la table pour supprimer uq" in drop_constraint_statements(
        "t", "uq", SqlDialect.SQLITE
    )[0]


def test_add_constraint_statements():
    unique = add_constraint_statements(
        "t", "uq_email", UniqueConstraint(columns=["email"]), SqlDialect.POSTGRES
    )
    assert len(unique) == 1
    assert "constraint_type = 'UNIQUE'" in unique[0]
    assert 'ADD CONSTRAINT "uq_email" UNIQUE ("email")' in unique[0]
    check = add_constraint_statements(
        "t", "ck", CheckConstraint(expression="balance >= 0"), SqlDialect.POSTGRES
    )
    assert check == ['ALTER TABLE "t" ADD CONSTRAINT "ck" CHECK (balance >= 0);']
    sqlite = add_constraint_statements(
        "t", "ck", CheckConstraint(expression="x > 0"), SqlDialect.SQLITE
    )
    assert sqlite == ["-- SQLite: ajout contrainte CHECK t.ck necessite recreation de table."]


def test_modified_column_type_postgres():
    mod = ColumnModification(
        old=Column(name="created_at", data_type="text"),
        new=Column(name="created_at", data_type="timestamp"),
        destructive=True,
    )
    stmts = generate_modified_column_sql("t", mod, SqlDialect.POSTGRES)
    assert len(stmts) == 2
    assert stmts[0].startswith("-- ATTENTION")
    assert "LOWER('timestamp without time zone')" in stmts[1]
    assert 'ALTER TABLE "t" ALTER COLUMN "created_at" TYPE timestamp;' in stmts[1]


def test_modified_column_not_null_and_default_postgres():
    mod = ColumnModification(
        old=Column(name="c", data_type="integer", default_value="1"),
        new=Column(name="c", data_type="integer", not_null=True),
    )
    stmts = generate_modified_column_sql("t", mod, SqlDialect.POSTGRES)
    assert len(stmts) == 2
    assert "is_nullable = 'YES'" in stmts[0]
    assert "SET NOT NULL;" in stmts[0]
    assert "column_default IS NOT NULL" in stmts[1]
    assert "DROP DEFAULT;" in stmts[1]


def test_modified_column_set_default_unguarded():
    mod = ColumnModification(
        old=Column(name="c", data_type="integer"),
        new=Column(name="c", data_type="integer", default_value="5"),
    )
    assert generate_modified_column_sql("t", mod, SqlDialect.POSTGRES) == [
        'ALTER TABLE "t" ALTER COLUMN "c" SET DEFAULT 5;'
    ]


def test_modified_column_sqlite_comments_only():
    mod = ColumnModification(
        old=Column(name="c", data_type="text", not_null=True),
        new=Column(name="c", data_type="integer"),
    )
    stmts = generate_modified_column_sql("t", mod, SqlDialect.SQLITE)
    assert len(stmts) == 2
    assert all(s.startswith("-- SQLite") for s in stmts)


def test_sqlite_table_rebuild():
    src = make_table("orders", [("id", "integer", True), ("amount", "text", False)])
    tgt = make_table("orders", [("id", "integer", True), ("amount", "numeric", False)])
    sql = generate_sqlite_table_rebuild(src, tgt)
    assert sql == (
        "-- SQLite: recreation de table orders pour appliquer les modifications de colonnes\n"
        "BEGIN TRANSACTION;\n"
        'CREATE TABLE "_migration_tmp_orders" AS SELECT "amount", "id" FROM "orders";\n'
        'DROP TABLE "orders";\n'
        'CREATE TABLE "orders" (\n'
        '  "amount" numeric,\n'
        '  "id" integer NOT NULL\n'
        ");\n"
        'INSERT INTO "orders" ("amount", "id") SELECT "amount", "id" FROM "_migration_tmp_orders";\n'
        'DROP TABLE "_migration_tmp_orders";\n'
        "COMMIT;"
    )


def test_sqlite_rebuild_copies_only_common_columns():
    src = make_table("t", [("id", "integer", True), ("gone", "text", False)])
    tgt = make_table("t", [("id", "integer", True), ("fresh", "text", False)])
    sql = generate_sqlite_table_rebuild(src, tgt)
    assert 'AS SELECT "id" FROM "t";' in sql
    assert '"gone"' not in sql
    assert '  "fresh" text' in sql