"""Build a schema model from a plain SQL dump (CREATE TABLE / CREATE INDEX / ALTER TABLE)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from schemadiff.schema_model import (
    CheckConstraint,
    Column,
    Constraint,
    ForeignKey,
    Index,
    SchemaModel,
    Table,
    UniqueConstraint,
    canonical_type,
)

_WHITESPACE = re.compile(r"\s")
_CREATE_TABLE_PREFIXES = ("CREATE TABLE", "create table", "Create Table")
_TYPE_TERMINATORS = (
    " not null",
    " default ",
    " primary key",
    " unique",
    " check ",
    " references ",
)
_DEFAULT_MARKER = " default "


@dataclass
class _Counter:
    value: int = 0


def parse_schema_from_sql(sql: str) -> SchemaModel:
    """Parse the tables, indexes, foreign keys and constraints declared in a SQL dump."""
    tables: dict[str, Table] = {}

    for statement in split_top_level(sql, ";"):
        stmt = statement.strip()
        if not stmt:
            continue
        lowered = stmt.lower()

        if lowered.startswith("create table"):
            parsed_table = _parse_create_table(stmt)
            if parsed_table is not None:
                name, table = parsed_table
                tables[name] = table
            continue

        if lowered.startswith(("create index", "create unique index")):
            parsed_index = _parse_create_index(stmt)
            if parsed_index is not None:
                table_name, index = parsed_index
                tables.setdefault(table_name, Table(name=table_name)).indexes[index.name] = index
            continue

        if lowered.startswith("alter table") and "foreign key" in lowered:
            parsed_fk = _parse_alter_table_fk(stmt)
            if parsed_fk is not None:
                table_name, fk = parsed_fk
                tables.setdefault(table_name, Table(name=table_name)).foreign_keys[fk.name] = fk

    return SchemaModel(tables={name: _sorted_table(tables[name]) for name in sorted(tables)})


def split_top_level(text: str, separator: str) -> list[str]:
    """Split on separator where it is outside parentheses and quotes; parts are stripped."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    in_single = False
    in_double = False

    for ch in text:
        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == "(" and not in_single and not in_double:
            depth += 1
        elif ch == ")" and not in_single and not in_double and depth > 0:
            depth -= 1

        if ch == separator and depth == 0 and not in_single and not in_double:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def _sorted_table(table: Table) -> Table:
    return Table(
        name=table.name,
        columns=dict(sorted(table.columns.items())),
        indexes=dict(sorted(table.indexes.items())),
        foreign_keys=dict(sorted(table.foreign_keys.items())),
        constraints=dict(sorted(table.constraints.items())),
    )


def _parse_create_table(statement: str) -> tuple[str, Table] | None:
    prefix = next((p for p in _CREATE_TABLE_PREFIXES if statement.startswith(p)), None)
    if prefix is None:
        return None
    rest = statement[len(prefix):]

    open_idx = rest.find("(")
    if open_idx < 0:
        return None
    table_part = rest[:open_idx].replace("IF NOT EXISTS", "")
    table_name = _normalize_identifier_token(table_part.strip())
    if table_name is None:
        return None
    close_idx = rest.rfind(")")
    if close_idx < 0:
        return None
    body = rest[open_idx + 1:close_idx]

    columns: dict[str, Column] = {}
    foreign_keys: dict[str, ForeignKey] = {}
    constraints: dict[str, Constraint] = {}
    counter = _Counter()

    for part in split_top_level(body, ","):
        item = part.strip()
        if not item:
            continue
        if "foreign key" in item.lower():
            fk = _parse_inline_fk(item, table_name)
            if fk is not None:
                foreign_keys[fk.name] = fk
            continue
        constraint = _parse_table_constraint(item, table_name, counter)
        if constraint is not None:
            name, value = constraint
            constraints[name] = value
            continue
        column = _parse_column_def(item)
        if column is not None:
            columns[column.name] = column

    return table_name, Table(
        name=table_name,
        columns=columns,
        foreign_keys=foreign_keys,
        constraints=constraints,
    )


def _parse_table_constraint(
    item: str, table_name: str, counter: _Counter
) -> tuple[str, Constraint] | None:
    """A table-level UNIQUE or CHECK, with or without a CONSTRAINT name."""
    if item.lower().lstrip().startswith("constraint"):
        tokens = _WHITESPACE.split(item, maxsplit=2)
        if len(tokens) < 2:
            return None
        name = _normalize_identifier_token(tokens[1]) or f"auto_{table_name}_{counter.value}"
        rest = tokens[2] if len(tokens) > 2 else ""
    else:
        name = ""
        rest = item

    rest_lower = rest.strip().lower()

    if rest_lower.startswith("unique"):
        counter.value += 1
        constraint_name = name or f"uq_{table_name}_{counter.value}"
        cols = _extract_paren_cols(rest)
        if cols is None:
            return None
        return constraint_name, UniqueConstraint(columns=cols)

    if rest_lower.startswith("check"):
        counter.value += 1
        constraint_name = name or f"ck_{table_name}_{counter.value}"
        open_idx = rest.find("(")
        close_idx = rest.rfind(")")
        if open_idx < 0 or close_idx < 0:
            return None
        expression = rest[open_idx + 1:close_idx].strip()
        return constraint_name, CheckConstraint(expression=expression)

    return None


def _extract_paren_cols(text: str) -> list[str] | None:
    open_idx = text.find("(")
    close_idx = text.rfind(")")
    if open_idx < 0 or close_idx < 0:
        return None
    inner = text[open_idx + 1:close_idx]
    return _identifiers(inner.split(","))


def _identifiers(tokens) -> list[str]:
    normalized = (_normalize_identifier_token(token.strip()) for token in tokens)
    return [name for name in normalized if name is not None]


def _parse_create_index(statement: str) -> tuple[str, Index] | None:
    tokens = statement.split()
    if len(tokens) < 6:
        return None

    unique = tokens[1].lower() == "unique"
    idx_pos = 2 if unique else 1
    if tokens[idx_pos].lower() != "index":
        return None

    name_pos = idx_pos + 1
    if tokens[name_pos].lower() == "if":
        if len(tokens) <= name_pos + 1:
            return None
        if tokens[name_pos + 1].lower() == "not":
            if len(tokens) <= name_pos + 2:
                return None
            if tokens[name_pos + 2].lower() == "exists":
                name_pos += 3
    if len(tokens) <= name_pos:
        return None
    index_name = _normalize_identifier_token(tokens[name_pos])
    if index_name is None:
        return None

    on_pos = next((i for i, token in enumerate(tokens) if token.lower() == "on"), None)
    if on_pos is None or on_pos + 1 >= len(tokens):
        return None
    table_name = _extract_table_name_from_index_on(tokens[on_pos + 1])
    if table_name is None:
        return None

    open_idx = statement.find("(")
    close_idx = statement.rfind(")")
    if open_idx < 0 or close_idx < 0:
        return None
    columns = _identifiers(split_top_level(statement[open_idx + 1:close_idx], ","))

    return table_name, Index(name=index_name, columns=columns, unique=unique)


def _parse_alter_table_fk(statement: str) -> tuple[str, ForeignKey] | None:
    tokens = statement.split()
    if len(tokens) < 3:
        return None
    table_name = _normalize_identifier_token(tokens[2])
    if table_name is None:
        return None
    fk = _parse_inline_fk(statement, table_name)
    if fk is None:
        return None
    return table_name, fk


def _parse_inline_fk(item: str, table_name: str) -> ForeignKey | None:
    lowered = item.lower()
    fallback_name = f"fk_{table_name}_auto"
    if lowered.startswith("constraint"):
        tokens = item.split()
        if len(tokens) < 2:
            return None
        name = _normalize_identifier_token(tokens[1]) or fallback_name
    else:
        name = fallback_name

    fk_pos = lowered.find("foreign key")
    if fk_pos < 0:
        return None
    after_fk = item[fk_pos + len("foreign key"):]
    local_open = after_fk.find("(")
    if local_open < 0:
        return None
    local_close = after_fk.find(")", local_open + 1)
    if local_close < 0:
        return None
    local_cols = after_fk[local_open + 1:local_close]

    ref_pos = lowered.find("references")
    if ref_pos < 0:
        return None
    after_ref = item[ref_pos + len("references"):].strip()
    ref_open = after_ref.find("(")
    if ref_open < 0:
        return None
    ref_table = _normalize_identifier_token(after_ref[:ref_open].strip())
    if ref_table is None:
        return None
    ref_close = after_ref.find(")", ref_open + 1)
    if ref_close < 0:
        return None
    ref_cols = after_ref[ref_open + 1:ref_close]

    return ForeignKey(
        name=name,
        columns=_identifiers(split_top_level(local_cols, ",")),
        referenced_table=ref_table,
        referenced_columns=_identifiers(split_top_level(ref_cols, ",")),
    )


def _extract_table_name_from_index_on(token: str) -> str | None:
    """Table name from the ON clause token: "users" or "users(email)" give "users"."""
    trimmed = token.strip().strip('"').strip("`")
    paren = trimmed.find("(")
    name = trimmed[:paren].strip() if paren >= 0 else trimmed
    return name.lower() or None


def _parse_column_def(item: str) -> Column | None:
    trimmed = item.strip()
    if not trimmed:
        return None
    lowered = trimmed.lower()

    first_ws = _WHITESPACE.search(trimmed)
    if first_ws is None:
        return None
    name = _normalize_identifier_token(trimmed[:first_ws.start()].strip())
    if name is None:
        return None

    after_name = trimmed[first_ws.start():].lstrip()
    after_name_lower = after_name.lower()
    positions = [after_name_lower.find(marker) for marker in _TYPE_TERMINATORS]
    type_end = min((p for p in positions if p >= 0), default=len(after_name))
    type_str = after_name[:type_end].strip()
    if not type_str:
        return None

    default_value = None
    default_idx = lowered.find(_DEFAULT_MARKER)
    if default_idx >= 0:
        rest = trimmed[default_idx + len(_DEFAULT_MARKER):].strip()
        end = next((i for i, ch in enumerate(rest) if ch in ",)"), len(rest))
        default_value = rest[:end].strip() or None

    return Column(
        name=name,
        data_type=canonical_type(type_str),
        not_null="not null" in lowered,
        default_value=default_value,
    )


def _normalize_identifier_token(token: str) -> str | None:
    trimmed = token.strip().strip('"').strip("`")
    return trimmed.lower() or None