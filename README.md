# schemadiff

`schemadiff` compares two database schemas and reports what changed
between them: added and removed tables, and within tables present on both
sides the added, removed, renamed and modified columns, indexes, foreign
keys and `UNIQUE` / `CHECK` constraints. From that difference it generates
an idempotent migration script for PostgreSQL or SQLite, a matching
rollback script, and a report in Markdown or HTML.

A schema can come from:

- a SQL dump (`CREATE TABLE`, `CREATE [UNIQUE] INDEX`,
  `ALTER TABLE ... FOREIGN KEY`), read with
  `schemadiff.sql_dump_parser.parse_schema_from_sql`;
- a live SQLite database, read with
  `schemadiff.sqlite_connector.SqliteConnector` and turned into a model
  with `SchemaModel.from_connector_tables`.

Column types are reduced to a canonical form by
`schemadiff.schema_model.canonical_type` before comparison, so `serial`
and `integer`, `varchar(255)` and `text`, or `timestamp without time zone`
and `timestamptz` compare equal.

The package has no dependencies outside the standard library.

## Comparing two SQL dumps

```python
from schemadiff.sql_dump_parser import parse_schema_from_sql
from schemadiff.diff_engine import diff_schema
from schemadiff.sql_generator import generate_migration_sql, generate_rollback_sql
from schemadiff.sql_statements import SqlDialect
from schemadiff.reporter import render_diff_markdown, render_diff_html

source = parse_schema_from_sql("""
    CREATE TABLE users (id integer NOT NULL, email text NOT NULL, age integer);
    CREATE UNIQUE INDEX idx_users_email ON users (email);
""")
target = parse_schema_from_sql("""
    CREATE TABLE users (
      id integer NOT NULL,
      email text NOT NULL,
      age bigint,
      full_name text DEFAULT 'anonymous'
    );
    CREATE UNIQUE INDEX idx_users_email ON users (email);
    CREATE TABLE orders (id integer NOT NULL, user_id integer NOT NULL);
""")

diff = diff_schema(source, target)

if diff.has_changes():
    print(render_diff_markdown(diff))
    print(generate_migration_sql(source, target, diff, SqlDialect.POSTGRES))

for warning in diff.destructive_warnings:
    print("WARNING:", warning)

rollback = generate_rollback_sql(source, target, diff, SqlDialect.POSTGRES)
html_report = render_diff_html(diff)
```

`diff_schema` returns a `DiffResult` (from `schemadiff.diff_model`) with
`added_tables`, `removed_tables`, `altered_tables` (one `TableDiff` per
changed table) and `destructive_warnings`. Table names and every list in a
`TableDiff` are sorted by name.

## Reading a SQLite database

```python
from schemadiff.schema_model import SchemaModel
from schemadiff.sqlite_connector import SqliteConnector

with SqliteConnector("app.db") as connector:
    connector.ping()
    model = SchemaModel.from_connector_tables(connector.load_schema())

for table in model.tables.values():
    print(table.name, list(table.columns))
```

`SqliteConnector` takes a file path, a `sqlite:` / `sqlite://` URL, or
`:memory:`. The file must already exist unless the URL carries
`?mode=rwc`. It reads columns, non-primary-key indexes, foreign keys
(named `fk_<table>_<id>`) and the table-level `UNIQUE` and `CHECK`
constraints declared in each table's `CREATE TABLE` statement.

## What counts as destructive

`diff_schema` adds a warning to `destructive_warnings` for every change
that can lose data:

- a dropped table, column, foreign key or constraint;
- a modified foreign key;
- a column type change other than a safe widening (`smallint` →
  `integer`, `smallint`/`integer` → `bigint`, `real` → `double`);
- a column becoming `NOT NULL` without a default value.

Renames are detected by a heuristic (`detect_renames`): a removed and an
added column with the same canonical type and the same nullability form a
rename only when they are the sole candidates with that signature;
ambiguous cases stay as a drop plus an add.

## Generated SQL

For PostgreSQL, statements are guarded so the script can be run more than
once (`IF NOT EXISTS`, `IF EXISTS`, and `DO $$ ... $$` blocks checking
`information_schema`). New tables are created in foreign-key dependency
order (`topological_sort_tables`), their indexes, foreign keys and
constraints are added after all tables exist, and dropped tables come
last.

For SQLite, a table with modified columns is rebuilt inside a transaction
(copy to a temporary table, drop, recreate, copy back); operations SQLite
cannot perform with `ALTER TABLE`, such as adding or dropping constraints
and foreign keys, are written as explanatory comments.

Reports, warnings and the comments inside generated scripts are written in
French.

## What this package does not do

- It has no command-line program; everything is used from Python.
- It cannot read a live PostgreSQL database. PostgreSQL schemas are read
  from SQL dumps; `SchemaConnector` is the abstract interface a connector
  for another engine would implement.
- It does not run migration scripts or write files; the generated SQL and
  reports are returned as strings.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.