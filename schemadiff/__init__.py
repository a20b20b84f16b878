"""Compare SQL schemas from dumps or SQLite databases and generate migration scripts and reports."""

__version__ = "0.1.0"

__all__ = [
    "diff_engine",
    "diff_model",
    "reporter",
    "schema_model",
    "sql_dump_parser",
    "sql_generator",
    "sql_statements",
    "sqlite_connector",
]