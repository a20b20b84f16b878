"""Single SQL statements used to build migration and rollback scripts."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from schemadiff.diff_model import ColumnModification
from schemadiff.schema_model import (
    CheckConstraint,
    Column,
    ConnectorKind,
    Constraint,
    ForeignKey,
    Index,
    Table,
    UniqueConstraint,
)


class SqlDialect(str, Enum):
    """SQL dialect the generated script is written for."""

    POSTGRES = "postgres"
    SQLITE = "sqlite"

    @classmethod
    def from_connector(cls, kind: ConnectorKind) -> "SqlDialect":
        """The dialect matching a connector kind."""
        if kind is ConnectorKind.POSTGRES:
            return cls.POSTGRES
        if kind is ConnectorKind.SQLITE:
            return cls.SQLITE
        raise ValueError(f"unknown connector kind: {kind!r}")


_INFORMATION_SCHEMA_TYPES = {
    "timestamp": "timestamp without time zone",
    "double": "double precision",
}


def quote_ident(name: str) -> str:
    """Quote an identifier with double quotes, doubling embedded ones."""
    return '"' + name.replace('"', '""') + '"'


def escape_literal(value: str) -> str:
    """Escape a value for use inside a single-quoted SQL literal."""
    return value.replace("'", "''")


def format_default(default: Optional[str]) -> str:
    """The " DEFAULT <value>" suffix of a column definition, or an empty string."""
    return f" DEFAULT {default}" if default is not None else ""


def _column_definition(col: Column) -> str:
    not_null = " NOT NULL" if col.not_null else ""
    return f"  {quote_ident(col.name)} {col.data_type}{not_null}{format_default(col.default_value)}"


def _column_definitions(table: Table) -> str:
    return ",\n".join(_column_definition(table.columns[name]) for name in sorted(table.columns))


def _ident_list(names: list[str]) -> str:
    return ", ".join(quote_ident(name) for name in names)


def create_table_statement(table: Table) -> str:
    """An idempotent CREATE TABLE holding the table's columns."""
    return f"CREATE TABLE IF NOT EXISTS {quote_ident(table.name)} (\n{_column_definitions(table)}\n);"


def create_index_statement(table_name: str, index: Index) -> str:
    """An idempotent CREATE [UNIQUE] INDEX."""
    unique = "UNIQUE " if index.unique else ""
    return (
        f"CREATE {unique}INDEX IF NOT EXISTS {quote_ident(index.name)} "
        f"ON {quote_ident(table_name)} ({_ident_list(index.columns)});"
    )


def drop_index_statement(index_name: str) -> str:
    """An idempotent DROP INDEX."""
    return f"DROP INDEX IF EXISTS {quote_ident(index_name)};"


def drop_fk_statements(table_name: str, constraint_name: str, dialect: SqlDialect) -> list[str]:
    """Statements dropping a foreign key; SQLite only gets an explanatory comment."""
    if dialect is SqlDialect.POSTGRES:
        return [
            f"ALTER TABLE {quote_ident(table_name)} DROP CONSTRAINT IF EXISTS "
            f"{quote_ident(constraint_name)};"
        ]
    return [
        "-- SQLite: DROP CONSTRAINT non supporte. Recreer la table sans la contrainte "
        f"{constraint_name}."
    ]


def add_fk_statement(table_name: str, fk: ForeignKey, dialect: SqlDialect) -> str:
    """A statement adding a foreign key, guarded for Postgres, a comment for SQLite."""
    if dialect is SqlDialect.POSTGRES:
        return (
            "DO $$ BEGIN IF NOT EXISTS (SELECT 1 FROM information_schema.table_constraints tc "
            f"WHERE tc.table_name = '{escape_literal(table_name)}' "
            f"AND tc.constraint_name = '{escape_literal(fk.name)}' "
            "AND tc.constraint_type = 'FOREIGN KEY') THEN "
            f"ALTER TABLE {quote_ident(table_name)} ADD CONSTRAINT {quote_ident(fk.name)} "
            f"FOREIGN KEY ({_ident_list(fk.columns)}) REFERENCES {quote_ident(fk.referenced_table)} "
            f"({_ident_list(fk.referenced_columns)}); END IF; END $$;"
        )
    return (
        f"-- SQLite: ajout FK {table_name}.{fk.name} necessite recreation de table "
        "(ADD CONSTRAINT non supporte)."
    )


def drop_constraint_statements(
    table_name: str, constraint_name: str, dialect: SqlDialect
) -> list[str]:
    """Statements dropping a UNIQUE or CHECK constraint."""
    if dialect is SqlDialect.POSTGRES:
        return [
            f"ALTER TABLE {quote_ident(table_name)} DROP CONSTRAINT IF EXISTS "
            f"{quote_ident(constraint_name)};"
        ]
    return [
        "-- SQLite: DROP CONSTRAINT non supporte directement. Recreer la table pour supprimer "
        f"{constraint_name}."
    ]


def add_constraint_statements(
    table_name: str, constraint_name: str, constraint: Constraint, dialect: SqlDialect
) -> list[str]:
    """Statements adding a UNIQUE or CHECK constraint."""
    if isinstance(constraint, UniqueConstraint):
        if dialect is SqlDialect.POSTGRES:
            return [
                "DO $$ BEGIN IF NOT EXISTS (SELECT 1 FROM information_schema.table_constraints "
                "WHERE table_schema = current_schema() "
                f"AND table_name = '{escape_literal(table_name)}' "
                f"AND constraint_name = '{escape_literal(constraint_name)}' "
                "AND constraint_type = 'UNIQUE') THEN "
                f"ALTER TABLE {quote_ident(table_name)} ADD CONSTRAINT {quote_ident(constraint_name)} "
                f"UNIQUE ({_ident_list(constraint.columns)}); END IF; END $$;"
            ]
        return [
            f"-- SQLite: ajout contrainte UNIQUE {table_name}.{constraint_name} "
            "necessite recreation de table."
        ]
    if isinstance(constraint, CheckConstraint):
        if dialect is SqlDialect.POSTGRES:
            return [
                f"ALTER TABLE {quote_ident(table_name)} ADD CONSTRAINT {quote_ident(constraint_name)} "
                f"CHECK ({constraint.expression});"
            ]
        return [
            f"-- SQLite: ajout contrainte CHECK {table_name}.{constraint_name} "
            "necessite recreation de table."
        ]
    raise TypeError(f"unsupported constraint: {constraint!r}")


def _postgres_information_schema_type(canonical: str) -> str:
    return _INFORMATION_SCHEMA_TYPES.get(canonical, canonical)


def _postgres_guarded_column_statement(
    table_name: str, column_name: str, condition_sql: str, statement: str
) -> str:
    return (
        "DO $$ BEGIN IF EXISTS (SELECT 1 FROM information_schema.columns "
        "WHERE table_schema = current_schema() "
        f"AND table_name = '{escape_literal(table_name)}' "
        f"AND column_name = '{escape_literal(column_name)}' "
        f"AND {condition_sql}) THEN {statement} END IF; END $$;"
    )


def _type_change_sql(table_name: str, mod: ColumnModification, dialect: SqlDialect) -> list[str]:
    statements = []
    if mod.destructive:
        statements.append(
            "-- ATTENTION: changement de type potentiellement destructif sur "
            f"{table_name}.{mod.old.name}"
        )
    if dialect is SqlDialect.POSTGRES:
        statement = (
            f"ALTER TABLE {quote_ident(table_name)} ALTER COLUMN {quote_ident(mod.old.name)} "
            f"TYPE {mod.new.data_type};"
        )
        expected = _postgres_information_schema_type(mod.new.data_type)
        statements.append(
            _postgres_guarded_column_statement(
                table_name,
                mod.old.name,
                f"LOWER(data_type) <> LOWER('{escape_literal(expected)}')",
                statement,
            )
        )
    else:
        statements.append(
            f"-- SQLite: ALTER COLUMN TYPE non supporte. Recreer la table pour "
            f"{table_name}.{mod.old.name} ({mod.old.data_type} -> {mod.new.data_type})."
        )
    return statements


def _not_null_change_sql(table_name: str, mod: ColumnModification, dialect: SqlDialect) -> str:
    if dialect is SqlDialect.SQLITE:
        return (
            f"-- SQLite: modification NOT NULL sur {table_name}.{mod.old.name} "
            "necessite recreation de table."
        )
    action, condition = (
        ("SET NOT NULL", "is_nullable = 'YES'")
        if mod.new.not_null
        else ("DROP NOT NULL", "is_nullable = 'NO'")
    )
    statement = (
        f"ALTER TABLE {quote_ident(table_name)} ALTER COLUMN {quote_ident(mod.old.name)} {action};"
    )
    return _postgres_guarded_column_statement(table_name, mod.old.name, condition, statement)


def _default_change_sql(table_name: str, mod: ColumnModification, dialect: SqlDialect) -> str:
    if dialect is SqlDialect.SQLITE:
        return (
            f"-- SQLite: modification DEFAULT sur {table_name}.{mod.old.name} "
            "necessite recreation de table."
        )
    prefix = f"ALTER TABLE {quote_ident(table_name)} ALTER COLUMN {quote_ident(mod.old.name)}"
    if mod.new.default_value is not None:
        return f"{prefix} SET DEFAULT {mod.new.default_value};"
    return _postgres_guarded_column_statement(
        table_name, mod.old.name, "column_default IS NOT NULL", f"{prefix} DROP DEFAULT;"
    )


def generate_modified_column_sql(
    table_name: str, modification: ColumnModification, dialect: SqlDialect
) -> list[str]:
    """Statements applying a column's type, NOT NULL and DEFAULT changes."""
    statements: list[str] = []
    if modification.old.data_type != modification.new.data_type:
        statements.extend(_type_change_sql(table_name, modification, dialect))
    if modification.old.not_null != modification.new.not_null:
        statements.append(_not_null_change_sql(table_name, modification, dialect))
    if modification.old.default_value != modification.new.default_value:
        statements.append(_default_change_sql(table_name, modification, dialect))
    return statements


def generate_sqlite_table_rebuild(source_table: Table, target_table: Table) -> str:
    """The SQLite copy/drop/recreate sequence giving a table its target definition.

    Data of the columns present on both sides is preserved.
    """
    table = quote_ident(source_table.name)
    tmp = quote_ident(f"_migration_tmp_{source_table.name}")
    common = [name for name in sorted(target_table.columns) if name in source_table.columns]
    col_list = _ident_list(common)
    return (
        f"-- SQLite: recreation de table {source_table.name} pour appliquer les modifications "
        "de colonnes\n"
        "BEGIN TRANSACTION;\n"
        f"CREATE TABLE {tmp} AS SELECT {col_list} FROM {table};\n"
        f"DROP TABLE {table};\n"
        f"CREATE TABLE {table} (\n{_column_definitions(target_table)}\n);\n"
        f"INSERT INTO {table} ({col_list}) SELECT {col_list} FROM {tmp};\n"
        f"DROP TABLE {tmp};\n"
        "COMMIT;"
    )