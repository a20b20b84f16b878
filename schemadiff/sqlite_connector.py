"""Read a schema from a live SQLite database."""

from __future__ import annotations

import re
import sqlite3
from typing import Optional
from urllib.parse import parse_qsl, quote

from schemadiff.schema_model import (
    ColumnInfo,
    ConnectorKind,
    ConstraintInfo,
    ForeignKeyInfo,
    IndexInfo,
    SchemaConnector,
    TableInfo,
)
from schemadiff.sql_dump_parser import split_top_level

_WHITESPACE = re.compile(r"\s")


def _open(database_url: str) -> sqlite3.Connection:
    """Open a database from a sqlite URL or a plain path; the file must exist unless mode=rwc."""
    url = database_url
    for prefix in ("sqlite://", "sqlite:"):
        if url.startswith(prefix):
            url = url[len(prefix):]
            break
    path, _, query = url.partition("?")
    params = dict(parse_qsl(query))
    mode = params.get("mode", "rw")
    if path in ("", ":memory:") or mode == "memory":
        return sqlite3.connect(":memory:")
    return sqlite3.connect(f"file:{quote(path)}?mode={mode}", uri=True)


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _require_text(value: Optional[str], what: str) -> str:
    if value is None:
        raise ValueError(f"unexpected NULL {what}")
    return value


class SqliteConnector(SchemaConnector):
    """Schema connector over a SQLite database file."""

    def __init__(self, database_url: str) -> None:
        self._conn = _open(database_url)
        self._conn.row_factory = sqlite3.Row

    def kind(self) -> ConnectorKind:
        return ConnectorKind.SQLITE

    def ping(self) -> None:
        self._conn.execute("SELECT 1").fetchall()

    def list_tables(self) -> list[str]:
        rows = self._conn.execute(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        ).fetchall()
        return [row["name"] for row in rows]

    def load_schema(self) -> list[TableInfo]:
        return [
            TableInfo(
                name=name,
                columns=self._load_columns(name),
                indexes=self._load_indexes(name),
                foreign_keys=self._load_foreign_keys(name),
                constraints=self._load_constraints(name),
            )
            for name in self.list_tables()
        ]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SqliteConnector":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _load_columns(self, table_name: str) -> list[ColumnInfo]:
        rows = self._conn.execute(f"PRAGMA table_info({_quote_ident(table_name)})").fetchall()
        return [
            ColumnInfo(
                name=row["name"],
                data_type=row["type"],
                not_null=row["notnull"] == 1,
                default_value=row["dflt_value"],
            )
            for row in rows
        ]

    def _load_indexes(self, table_name: str) -> list[IndexInfo]:
        indexes = []
        rows = self._conn.execute(f"PRAGMA index_list({_quote_ident(table_name)})").fetchall()
        for row in rows:
            if row["origin"] == "pk":
                continue
            index_name = row["name"]
            col_rows = self._conn.execute(
                f"PRAGMA index_info({_quote_ident(index_name)})"
            ).fetchall()
            columns = [_require_text(c["name"], f"column name in index {index_name}") for c in col_rows]
            indexes.append(IndexInfo(name=index_name, columns=columns, unique=row["unique"] == 1))
        return sorted(indexes, key=lambda i: i.name)

    def _load_foreign_keys(self, table_name: str) -> list[ForeignKeyInfo]:
        grouped: dict[int, ForeignKeyInfo] = {}
        rows = self._conn.execute(
            f"PRAGMA foreign_key_list({_quote_ident(table_name)})"
        ).fetchall()
        for row in rows:
            fk_id = row["id"]
            entry = grouped.setdefault(
                fk_id,
                ForeignKeyInfo(
                    name=f"fk_{table_name}_{fk_id}",
                    referenced_table=_require_text(row["table"], "referenced table"),
                ),
            )
            entry.columns.append(_require_text(row["from"], "foreign key column"))
            entry.referenced_columns.append(_require_text(row["to"], "referenced column"))
        fks = [grouped[key] for key in sorted(grouped)]
        return sorted(fks, key=lambda f: f.name)

    def _load_constraints(self, table_name: str) -> list[ConstraintInfo]:
        row = self._conn.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (table_name,)
        ).fetchone()
        if row is None or row["sql"] is None:
            return []
        return parse_sqlite_constraints(row["sql"], table_name)


def parse_sqlite_constraints(ddl: str, table_name: str) -> list[ConstraintInfo]:
    """Table-level UNIQUE and CHECK constraints declared in a CREATE TABLE statement."""
    open_idx = ddl.find("(")
    close_idx = ddl.rfind(")")
    if open_idx < 0 or close_idx < 0:
        return []
    body = ddl[open_idx + 1:close_idx]

    constraints: list[ConstraintInfo] = []
    auto_idx = 0
    for part in split_top_level(body, ","):
        item = part.strip()
        lowered = item.lower()

        if lowered.startswith("constraint"):
            tokens = _WHITESPACE.split(item, maxsplit=2)
            name = tokens[1].strip('"').strip("`").lower() if len(tokens) > 1 else ""
            rest = tokens[2] if len(tokens) > 2 else ""
        else:
            auto_idx += 1
            suffix = "uq" if "unique" in lowered else "ck"
            name = f"auto_{table_name}_{suffix}_{auto_idx}"
            rest = item

        rest_lower = rest.lower().lstrip()
        if rest_lower.startswith("unique"):
            cols = _extract_cols_from_parens(rest)
            if cols is not None:
                constraints.append(ConstraintInfo(name=name, kind="unique", columns=cols))
        elif rest_lower.startswith("check"):
            expression = _extract_check_expression(rest)
            if expression is not None:
                constraints.append(ConstraintInfo(name=name, kind="check", expression=expression))

    return constraints


def _extract_cols_from_parens(text: str) -> Optional[list[str]]:
    open_idx = text.find("(")
    close_idx = text.rfind(")")
    if open_idx < 0 or close_idx < 0:
        return None
    cleaned = (c.strip().strip('"').strip("`").lower() for c in text[open_idx + 1:close_idx].split(","))
    return [c for c in cleaned if c]


def _extract_check_expression(text: str) -> Optional[str]:
    open_idx = text.find("(")
    close_idx = text.rfind(")")
    if open_idx < 0 or close_idx < 0:
        return None
    return text[open_idx + 1:close_idx].strip()