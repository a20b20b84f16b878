"""Canonical schema model shared by connectors, the SQL dump parser and the diff engine."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class ConnectorKind(str, Enum):
    """Database engines a schema can be read from."""

    POSTGRES = "postgres"
    SQLITE = "sqlite"


@dataclass
class ColumnInfo:
    """A column as reported by a database connector."""

    name: str
    data_type: str
    not_null: bool = False
    default_value: Optional[str] = None


@dataclass
class IndexInfo:
    """An index as reported by a database connector."""

    name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False


@dataclass
class ForeignKeyInfo:
    """A foreign key as reported by a database connector."""

    name: str
    columns: list[str] = field(default_factory=list)
    referenced_table: str = ""
    referenced_columns: list[str] = field(default_factory=list)


@dataclass
class ConstraintInfo:
    """A table constraint as reported by a connector; kind is "unique" or "check"."""

    name: str
    kind: str
    columns: list[str] = field(default_factory=list)
    expression: Optional[str] = None


@dataclass
class TableInfo:
    """A table as reported by a database connector."""

    name: str
    columns: list[ColumnInfo] = field(default_factory=list)
    indexes: list[IndexInfo] = field(default_factory=list)
    foreign_keys: list[ForeignKeyInfo] = field(default_factory=list)
    constraints: list[ConstraintInfo] = field(default_factory=list)


class SchemaConnector(ABC):
    """Something that can read the schema of a live database."""

    @abstractmethod
    def kind(self) -> ConnectorKind:
        """The engine this connector talks to."""

    @abstractmethod
    def ping(self) -> None:
        """Check that the database answers; raise if it does not."""

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Names of the user tables, sorted."""

    @abstractmethod
    def load_schema(self) -> list[TableInfo]:
        """Read every user table with its columns, indexes, keys and constraints."""


@dataclass
class Column:
    name: str
    data_type: str
    not_null: bool = False
    default_value: Optional[str] = None


@dataclass
class Index:
    name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False


@dataclass
class ForeignKey:
    name: str
    columns: list[str] = field(default_factory=list)
    referenced_table: str = ""
    referenced_columns: list[str] = field(default_factory=list)


@dataclass
class UniqueConstraint:
    """UNIQUE over a list of columns."""

    columns: list[str] = field(default_factory=list)


@dataclass
class CheckConstraint:
    """CHECK with a raw SQL expression."""

    expression: str = ""


Constraint = Union[UniqueConstraint, CheckConstraint]


@dataclass
class Table:
    """A table; the mappings are keyed by object name."""

    name: str
    columns: dict[str, Column] = field(default_factory=dict)
    indexes: dict[str, Index] = field(default_factory=dict)
    foreign_keys: dict[str, ForeignKey] = field(default_factory=dict)
    constraints: dict[str, Constraint] = field(default_factory=dict)


@dataclass
class SchemaModel:
    """A whole schema: tables keyed by name."""

    tables: dict[str, Table] = field(default_factory=dict)

    @classmethod
    def from_connector_tables(cls, tables: Iterable[TableInfo]) -> "SchemaModel":
        """Build a normalised model from what a connector reported."""
        by_name: dict[str, Table] = {}
        for info in tables:
            columns = {
                col.name: Column(
                    name=col.name,
                    data_type=canonical_type(col.data_type),
                    not_null=col.not_null,
                    default_value=_normalize_default(col.default_value),
                )
                for col in info.columns
            }
            indexes = {
                idx.name: Index(
                    name=idx.name,
                    columns=[normalize_identifier(c) for c in idx.columns],
                    unique=idx.unique,
                )
                for idx in info.indexes
            }
            foreign_keys = {
                fk.name: ForeignKey(
                    name=fk.name,
                    columns=[normalize_identifier(c) for c in fk.columns],
                    referenced_table=normalize_identifier(fk.referenced_table),
                    referenced_columns=[normalize_identifier(c) for c in fk.referenced_columns],
                )
                for fk in info.foreign_keys
            }
            constraints: dict[str, Constraint] = {}
            for c in info.constraints:
                if c.kind == "unique":
                    constraints[c.name] = UniqueConstraint(
                        columns=[normalize_identifier(col) for col in c.columns]
                    )
                elif c.kind == "check":
                    constraints[c.name] = CheckConstraint(expression=c.expression or "")
            by_name[info.name] = Table(
                name=info.name,
                columns=_sorted_by_key(columns),
                indexes=_sorted_by_key(indexes),
                foreign_keys=_sorted_by_key(foreign_keys),
                constraints=_sorted_by_key(constraints),
            )
        return cls(tables=_sorted_by_key(by_name))


def _sorted_by_key(mapping: dict) -> dict:
    return dict(sorted(mapping.items()))


_TYPE_BASE_SPLIT = re.compile(r"[(\s]")

_CANONICAL_BASES = {
    "serial": "integer",
    "smallserial": "integer",
    "bigserial": "bigint",
    "int": "integer",
    "int4": "integer",
    "integer": "integer",
    "int2": "smallint",
    "smallint": "smallint",
    "int8": "bigint",
    "bigint": "bigint",
    "numeric": "numeric",
    "decimal": "numeric",
    "real": "real",
    "float4": "real",
    "double": "double",
    "float8": "double",
    "float": "double",
    "character": "text",
    "varchar": "text",
    "char": "text",
    "nvarchar": "text",
    "text": "text",
    "string": "text",
    "clob": "text",
    "timestamp": "timestamp",
    "timestamptz": "timestamp",
    "datetime": "timestamp",
    "boolean": "boolean",
    "bool": "boolean",
    "date": "date",
    "time": "time",
}


def canonical_type(raw: str) -> str:
    """Canonical type name used to compare columns across database engines.

    serial ~ integer, numeric(p,s) ~ numeric, timestamp variants ~ timestamp.
    """
    t = raw.strip().lower()
    base = _TYPE_BASE_SPLIT.split(t, maxsplit=1)[0]
    if base in _CANONICAL_BASES:
        return _CANONICAL_BASES[base]
    if t.startswith("timestamp"):
        return "timestamp"
    if t.startswith(("varchar", "character varying")):
        return "text"
    if t.startswith(("numeric", "decimal")):
        return "numeric"
    if t.startswith(("double", "float")):
        return "double"
    return t


def normalize_identifier(raw: str) -> str:
    """Strip surrounding whitespace and double quotes, then lower-case."""
    return raw.strip().strip('"').lower()


def _normalize_default(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    value = raw.strip()
    return value or None