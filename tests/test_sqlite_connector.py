import sqlite3
from contextlib import closing

import pytest

from schemadiff.diff_engine import diff_schema
from schemadiff.schema_model import ConnectorKind, ConstraintInfo, SchemaModel
from schemadiff.sql_dump_parser import parse_schema_from_sql
from schemadiff.sqlite_connector import SqliteConnector, parse_sqlite_constraints


def make_db(path, ddl):
    with closing(sqlite3.connect(path)) as conn:
        conn.executescript(ddl)
    return str(path)


def test_kind_is_sqlite(tmp_path):
    path = make_db(tmp_path / "db.sqlite", "CREATE TABLE t (id integer);")
    with SqliteConnector(path) as conn:
        assert conn.kind() == ConnectorKind.SQLITE


def test_missing_file_raises(tmp_path):
    with pytest.raises(sqlite3.OperationalError):
        SqliteConnector(str(tmp_path / "missing.sqlite"))


def test_mode_rwc_creates_file(tmp_path):
    path = tmp_path / "created.sqlite"
    with SqliteConnector(f"sqlite://{path}?mode=rwc") as conn:
        assert conn.list_tables() == []
    assert path.exists()


def test_closed_connector_cannot_ping(tmp_path):
    path = make_db(tmp_path / "db.sqlite", "CREATE TABLE t (id integer);")
    conn = SqliteConnector(f"sqlite:{path}")
    with conn:
        conn.ping()
    with pytest.raises(sqlite3.ProgrammingError):
        conn.ping()


def test_list_tables_sorted_and_skips_internal(tmp_path):
    path = make_db(
        tmp_path / "db.sqlite",
        "CREATE TABLE b (id INTEGER PRIMARY KEY AUTOINCREMENT);"
        "CREATE TABLE a (id integer);"
        "INSERT INTO b DEFAULT VALUES;",
    )
    with SqliteConnector(path) as conn:
        assert conn.list_tables() == ["a", "b"]


def test_load_schema_columns(tmp_path):
    path = make_db(
        tmp_path / "db.sqlite",
        "CREATE TABLE users (id INTEGER NOT NULL, status TEXT DEFAULT 'active');",
    )
    with SqliteConnector(path) as conn:
        (table,) = conn.load_schema()
    assert table.name == "users"
    assert [(c.name, c.data_type, c.not_null, c.default_value) for c in table.columns] == [
        ("id", "INTEGER", True, None),
        ("status", "TEXT", False, "'active'"),
    ]


def test_load_schema_indexes_skip_primary_key(tmp_path):
    path = make_db(
        tmp_path / "db.sqlite",
        "CREATE TABLE users (code TEXT PRIMARY KEY, name TEXT, email TEXT);"
        "CREATE INDEX idx_users_name ON users (name);"
        "CREATE UNIQUE INDEX idx_users_email ON users (email);",
    )
    with SqliteConnector(path) as conn:
        (table,) = conn.load_schema()
    assert [(i.name, i.columns, i.unique) for i in table.indexes] == [
        ("idx_users_email", ["email"], True),
        ("idx_users_name", ["name"], False),
    ]


def test_load_schema_foreign_keys(tmp_path):
    path = make_db(
        tmp_path / "db.sqlite",
        "CREATE TABLE users (id integer PRIMARY KEY);"
        "CREATE TABLE orders (id integer, user_id integer REFERENCES users(id));",
    )
    with SqliteConnector(path) as conn:
        tables = {t.name: t for t in conn.load_schema()}
    (fk,) = tables["orders"].foreign_keys
    assert fk.name.startswith("fk_orders_")
    assert fk.columns == ["user_id"]
    assert fk.referenced_table == "users"
    assert fk.referenced_columns == ["id"]
    assert tables["users"].foreign_keys == []


def test_load_schema_check_constraint(tmp_path):
    path = make_db(
        tmp_path / "db.sqlite",
        "CREATE TABLE accounts (id integer, balance numeric, "
        "CONSTRAINT ck_pos CHECK (balance >= 0));",
    )
    with SqliteConnector(path) as conn:
        (table,) = conn.load_schema()
    assert table.constraints == [
        ConstraintInfo(name="ck_pos", kind="check", columns=[], expression="balance >= 0")
    ]


def test_parse_constraints_named_and_anonymous():
    ddl = 'CREATE TABLE t (id integer, CONSTRAINT "UQ_X" UNIQUE ("A", b), CHECK (a > 0))'
    constraints = parse_sqlite_constraints(ddl, "t")
    assert constraints[0] == ConstraintInfo(name="uq_x", kind="unique", columns=["a", "b"])
    assert constraints[1].kind == "check"
    assert constraints[1].expression == "a > 0"
    assert constraints[1].name == "auto_t_ck_2"


def test_parse_constraints_without_parens_is_empty():
    assert parse_sqlite_constraints("CREATE TABLE t", "t") == []


def test_connector_schema_matches_dump_schema(tmp_path):
    ddl = (
        "CREATE TABLE users (id integer NOT NULL, email varchar(80), created_at datetime);"
        "CREATE INDEX idx_users_email ON users (email);"
    )
    path = make_db(tmp_path / "db.sqlite", ddl)
    with SqliteConnector(path) as conn:
        from_db = SchemaModel.from_connector_tables(conn.load_schema())
    from_dump = parse_schema_from_sql(ddl)
    diff = diff_schema(from_db, from_dump)
    assert not diff.has_changes()
    assert diff.destructive_warnings == []