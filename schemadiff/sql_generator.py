"""Migration and rollback scripts built from a schema diff."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from schemadiff.diff_model import ColumnModification, DiffResult, TableDiff
from schemadiff.schema_model import SchemaModel
from schemadiff.sql_statements import (
    SqlDialect,
    add_constraint_statements,
    add_fk_statement,
    create_index_statement,
    create_table_statement,
    drop_constraint_statements,
    drop_fk_statements,
    drop_index_statement,
    format_default,
    generate_modified_column_sql,
    generate_sqlite_table_rebuild,
    quote_ident,
)

_DIALECT_LABELS = {
    SqlDialect.POSTGRES: "Postgres",
    SqlDialect.SQLITE: "Sqlite",
}


def topological_sort_tables(names: Sequence[str], target: SchemaModel) -> list[str]:
    """Order tables so that tables referenced by foreign keys come first.

    Only dependencies between the given tables count. Tables caught in a cycle
    are appended in their original order.
    """
    name_set = set(names)
    dependents: dict[str, set[str]] = {name: set() for name in names}
    dependencies: dict[str, set[str]] = {name: set() for name in names}

    for name in names:
        table = target.tables.get(name)
        if table is None:
            continue
        for fk in table.foreign_keys.values():
            ref = fk.referenced_table
            if ref in name_set and ref != name and ref not in dependencies[name]:
                dependencies[name].add(ref)
                dependents[ref].add(name)

    in_degree = {name: len(deps) for name, deps in dependencies.items()}
    queue = deque(sorted(name for name, degree in in_degree.items() if degree == 0))
    ordered: list[str] = []

    while queue:
        node = queue.popleft()
        ordered.append(node)
        ready = []
        for dependent in dependents.get(node, ()):
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)
        queue.extend(sorted(ready))

    seen = set(ordered)
    for name in names:
        if name not in seen:
            ordered.append(name)
            seen.add(name)
    return ordered


def _header(title: str, dialect: SqlDialect, direction: str) -> list[str]:
    return [title, f"-- Cible: {_DIALECT_LABELS[dialect]}", direction, ""]


def _rename_sql(table: str, old: str, new: str) -> str:
    return (
        f"ALTER TABLE {quote_ident(table)} RENAME COLUMN {quote_ident(old)} TO {quote_ident(new)};"
    )


def _drop_column_sql(table: str, column: str, dialect: SqlDialect) -> str:
    if_exists = "IF EXISTS " if dialect is SqlDialect.POSTGRES else ""
    return f"ALTER TABLE {quote_ident(table)} DROP COLUMN {if_exists}{quote_ident(column)};"


def _altered_table_migration(
    source: SchemaModel, target: SchemaModel, td: TableDiff, dialect: SqlDialect
) -> list[str]:
    out: list[str] = []
    table = td.table_name

    if dialect is SqlDialect.SQLITE and td.modified_columns:
        src = source.tables.get(table)
        tgt = target.tables.get(table)
        if src is not None and tgt is not None:
            out.append(generate_sqlite_table_rebuild(src, tgt))
        out.extend(create_index_statement(table, idx) for idx in td.added_indexes)
        return out

    for rename in td.renamed_columns:
        if dialect is SqlDialect.SQLITE:
            out.append(
                f"-- SQLite: renommage de colonne {table}.{rename.old_name} -> {rename.new_name} "
                "(ALTER TABLE ... RENAME COLUMN supporte depuis SQLite 3.25.0)."
            )
        out.append(_rename_sql(table, rename.old_name, rename.new_name))

    for col in td.added_columns:
        if dialect is SqlDialect.POSTGRES:
            not_null = " NOT NULL" if col.not_null else ""
            out.append(
                f"ALTER TABLE {quote_ident(table)} ADD COLUMN IF NOT EXISTS {quote_ident(col.name)} "
                f"{col.data_type}{not_null}{format_default(col.default_value)};"
            )
        else:
            out.append(
                f"ALTER TABLE {quote_ident(table)} ADD COLUMN {quote_ident(col.name)} "
                f"{col.data_type}{format_default(col.default_value)};"
            )

    for modified in td.modified_columns:
        out.extend(generate_modified_column_sql(table, modified, dialect))

    out.extend(create_index_statement(table, idx) for idx in td.added_indexes)
    for idx_mod in td.modified_indexes:
        out.append(drop_index_statement(idx_mod.old.name))
        out.append(create_index_statement(table, idx_mod.new))
    out.extend(drop_index_statement(idx.name) for idx in td.removed_indexes)

    for fk_mod in td.modified_foreign_keys:
        out.extend(drop_fk_statements(table, fk_mod.old.name, dialect))
    for fk in td.removed_foreign_keys:
        out.append(f"-- DESTRUCTIVE: suppression de cle etrangere {table}.{fk.name}")
        out.extend(drop_fk_statements(table, fk.name, dialect))

    for col in td.removed_columns:
        out.append(f"-- DESTRUCTIVE: suppression de colonne {table}.{col.name}")
        out.append(_drop_column_sql(table, col.name, dialect))

    for c_name, _ in td.removed_constraints:
        out.append(f"-- DESTRUCTIVE: suppression de contrainte {table}.{c_name}")
        out.extend(drop_constraint_statements(table, c_name, dialect))
    for c_name, constraint in td.added_constraints:
        out.extend(add_constraint_statements(table, c_name, constraint, dialect))
    for c_mod in td.modified_constraints:
        out.extend(drop_constraint_statements(table, c_mod.name, dialect))
        out.extend(add_constraint_statements(table, c_mod.name, c_mod.new, dialect))

    return out


def generate_migration_sql(
    source: SchemaModel, target: SchemaModel, diff: DiffResult, dialect: SqlDialect
) -> str:
    """An idempotent script turning the source schema into the target schema."""
    out = _header("-- Migration SQL generee automatiquement", dialect, "-- Source -> Target")

    new_tables = [
        target.tables[name]
        for name in topological_sort_tables(diff.added_tables, target)
        if name in target.tables
    ]

    out.extend(create_table_statement(table) for table in new_tables)

    for td in diff.altered_tables:
        out.extend(_altered_table_migration(source, target, td, dialect))

    for table in new_tables:
        out.extend(
            create_index_statement(table.name, table.indexes[name]) for name in sorted(table.indexes)
        )

    for table in new_tables:
        out.extend(
            add_fk_statement(table.name, table.foreign_keys[name], dialect)
            for name in sorted(table.foreign_keys)
        )
        for c_name in sorted(table.constraints):
            out.extend(
                add_constraint_statements(table.name, c_name, table.constraints[c_name], dialect)
            )
    for td in diff.altered_tables:
        out.extend(add_fk_statement(td.table_name, fk, dialect) for fk in td.added_foreign_keys)
        out.extend(
            add_fk_statement(td.table_name, fk_mod.new, dialect)
            for fk_mod in td.modified_foreign_keys
        )

    for name in diff.removed_tables:
        out.append(f"-- DESTRUCTIVE: suppression de table {name}")
        out.append(f"DROP TABLE IF EXISTS {quote_ident(name)};")

    if not diff.has_changes():
        out.append("-- Aucun changement detecte")

    return "\n".join(out)


def _altered_table_rollback(td: TableDiff, dialect: SqlDialect) -> list[str]:
    out: list[str] = []
    table = td.table_name

    out.extend(
        _rename_sql(table, rename.new_name, rename.old_name) for rename in td.renamed_columns
    )

    for col in td.added_columns:
        out.append(
            f"-- ROLLBACK: suppression de colonne {table}.{col.name} ajoutee par la migration"
        )
        out.append(_drop_column_sql(table, col.name, dialect))

    out.extend(
        f"ALTER TABLE {quote_ident(table)} ADD COLUMN {quote_ident(col.name)} "
        f"{col.data_type}{format_default(col.default_value)};"
        for col in td.removed_columns
    )

    for modified in td.modified_columns:
        inverse = ColumnModification(old=modified.new, new=modified.old)
        out.extend(generate_modified_column_sql(table, inverse, dialect))

    out.extend(drop_index_statement(idx.name) for idx in td.added_indexes)
    out.extend(create_index_statement(table, idx) for idx in td.removed_indexes)
    for idx_mod in td.modified_indexes:
        out.append(drop_index_statement(idx_mod.new.name))
        out.append(create_index_statement(table, idx_mod.old))

    for fk in td.added_foreign_keys:
        out.extend(drop_fk_statements(table, fk.name, dialect))
    out.extend(add_fk_statement(table, fk, dialect) for fk in td.removed_foreign_keys)
    for fk_mod in td.modified_foreign_keys:
        out.extend(drop_fk_statements(table, fk_mod.new.name, dialect))
        out.append(add_fk_statement(table, fk_mod.old, dialect))

    for c_name, _ in td.added_constraints:
        out.extend(drop_constraint_statements(table, c_name, dialect))
    for c_name, constraint in td.removed_constraints:
        out.extend(add_constraint_statements(table, c_name, constraint, dialect))

    return out


def generate_rollback_sql(
    source: SchemaModel, target: SchemaModel, diff: DiffResult, dialect: SqlDialect
) -> str:
    """A script undoing the migration: target schema back to the source schema."""
    out = _header(
        "-- Script de ROLLBACK (migration inverse)",
        dialect,
        "-- Target -> Source (annule la migration)",
    )

    restored = [source.tables[name] for name in diff.removed_tables if name in source.tables]

    out.extend(create_table_statement(table) for table in restored)

    for td in diff.altered_tables:
        out.extend(_altered_table_rollback(td, dialect))

    for table in restored:
        out.extend(
            create_index_statement(table.name, table.indexes[name]) for name in sorted(table.indexes)
        )
    for table in restored:
        out.extend(
            add_fk_statement(table.name, table.foreign_keys[name], dialect)
            for name in sorted(table.foreign_keys)
        )

    for name in diff.added_tables:
        out.append(f"-- ROLLBACK: suppression de table {name} ajoutee par la migration")
        out.append(f"DROP TABLE IF EXISTS {quote_ident(name)};")

    if not diff.has_changes():
        out.append("-- Aucun changement a annuler")

    return "\n".join(out)