"""Compare two schema models and describe what separates them."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional, TypeVar

from schemadiff.diff_model import (
    ColumnModification,
    ColumnRename,
    ConstraintModification,
    DiffResult,
    ForeignKeyModification,
    IndexModification,
    TableDiff,
)
from schemadiff.schema_model import Column, SchemaModel, Table

_T = TypeVar("_T")

_SAFE_WIDENINGS = frozenset(
    {
        ("smallint", "integer"),
        ("smallint", "bigint"),
        ("integer", "bigint"),
        ("real", "double"),
    }
)


def diff_schema(source: SchemaModel, target: SchemaModel) -> DiffResult:
    """Describe the changes that turn the source schema into the target schema."""
    source_names = set(source.tables)
    target_names = set(target.tables)

    added_tables = sorted(target_names - source_names)
    removed_tables = sorted(source_names - target_names)

    altered_tables: list[TableDiff] = []
    warnings: list[str] = []

    for name in sorted(source_names & target_names):
        table_diff, table_warnings = _diff_table(name, source.tables[name], target.tables[name])
        warnings.extend(table_warnings)
        if table_diff is not None:
            altered_tables.append(table_diff)

    warnings.extend(f"Suppression de table detectee: {name}" for name in removed_tables)

    return DiffResult(
        added_tables=added_tables,
        removed_tables=removed_tables,
        altered_tables=altered_tables,
        destructive_warnings=warnings,
    )


def _split(old: dict[str, _T], new: dict[str, _T]) -> tuple[list[_T], list[_T], list[tuple[str, _T, _T]]]:
    """Items only in new, items only in old, and differing items present in both."""
    added = [new[name] for name in sorted(new.keys() - old.keys())]
    removed = [old[name] for name in sorted(old.keys() - new.keys())]
    changed = [
        (name, old[name], new[name])
        for name in sorted(old.keys() & new.keys())
        if old[name] != new[name]
    ]
    return added, removed, changed


def _diff_table(name: str, source: Table, target: Table) -> tuple[Optional[TableDiff], list[str]]:
    warnings: list[str] = []

    raw_added, raw_removed, changed_columns = _split(source.columns, target.columns)
    added_columns, removed_columns, renamed_columns = detect_renames(raw_added, raw_removed)

    modified_columns: list[ColumnModification] = []
    for _, old_col, new_col in changed_columns:
        destructive, reason = _detect_destructive_change(old_col, new_col)
        if destructive:
            warnings.append(
                f"Colonne {name}.{old_col.name} modifiee de maniere destructive: "
                f"{reason or 'changement potentiellement riske'}"
            )
        modified_columns.append(
            ColumnModification(old=old_col, new=new_col, destructive=destructive, reason=reason)
        )

    added_indexes, removed_indexes, changed_indexes = _split(source.indexes, target.indexes)
    added_fks, removed_fks, changed_fks = _split(source.foreign_keys, target.foreign_keys)

    added_constraints = sorted(
        (c_name, target.constraints[c_name])
        for c_name in target.constraints.keys() - source.constraints.keys()
    )
    removed_constraints = sorted(
        (c_name, source.constraints[c_name])
        for c_name in source.constraints.keys() - target.constraints.keys()
    )
    _, _, changed_constraints = _split(source.constraints, target.constraints)

    table_diff = TableDiff(
        table_name=name,
        added_columns=sorted(added_columns, key=lambda c: c.name),
        removed_columns=sorted(removed_columns, key=lambda c: c.name),
        modified_columns=sorted(modified_columns, key=lambda m: m.old.name),
        renamed_columns=sorted(renamed_columns, key=lambda r: r.old_name),
        added_indexes=sorted(added_indexes, key=lambda i: i.name),
        removed_indexes=sorted(removed_indexes, key=lambda i: i.name),
        modified_indexes=[IndexModification(old=o, new=n) for _, o, n in changed_indexes],
        added_foreign_keys=sorted(added_fks, key=lambda f: f.name),
        removed_foreign_keys=sorted(removed_fks, key=lambda f: f.name),
        modified_foreign_keys=[ForeignKeyModification(old=o, new=n) for _, o, n in changed_fks],
        added_constraints=added_constraints,
        removed_constraints=removed_constraints,
        modified_constraints=[
            ConstraintModification(name=c_name, old=o, new=n) for c_name, o, n in changed_constraints
        ],
    )

    if not table_diff.has_changes():
        return None, warnings

    warnings.extend(
        f"Suppression de colonne detectee: {name}.{col.name}" for col in table_diff.removed_columns
    )
    warnings.extend(
        f"Suppression de cle etrangere detectee: {name}.{fk.name}"
        for fk in table_diff.removed_foreign_keys
    )
    warnings.extend(
        f"Modification de cle etrangere detectee: {name}.{mod.old.name}"
        for mod in table_diff.modified_foreign_keys
    )
    warnings.extend(
        f"Suppression de contrainte detectee: {name}.{c_name}"
        for c_name, _ in table_diff.removed_constraints
    )
    return table_diff, warnings


def _detect_destructive_change(old: Column, new: Column) -> tuple[bool, Optional[str]]:
    if old.data_type != new.data_type:
        return is_destructive_type_change(old.data_type, new.data_type)
    if not old.not_null and new.not_null and new.default_value is None:
        return True, "passage a NOT NULL sans valeur par defaut"
    return False, None


def detect_renames(
    added: Iterable[Column], removed: Iterable[Column]
) -> tuple[list[Column], list[Column], list[ColumnRename]]:
    """Pair removed and added columns that look like renames.

    A removed column and an added column form a rename when they share the same
    canonical type and NOT NULL flag and neither side has another unused
    candidate with that signature. Returns (remaining added, remaining removed, renames).
    """
    added = list(added)
    removed = list(removed)
    used_added: set[int] = set()
    used_removed: set[int] = set()
    renames: list[ColumnRename] = []

    def same_signature(a: Column, b: Column) -> bool:
        return a.data_type == b.data_type and a.not_null == b.not_null

    for ri, rem in enumerate(removed):
        candidates = [
            ai for ai, col in enumerate(added) if ai not in used_added and same_signature(col, rem)
        ]
        if len(candidates) != 1:
            continue
        other_removed = any(
            oi != ri and oi not in used_removed and same_signature(other, rem)
            for oi, other in enumerate(removed)
        )
        if other_removed:
            continue
        ai = candidates[0]
        used_added.add(ai)
        used_removed.add(ri)
        renames.append(
            ColumnRename(old_name=rem.name, new_name=added[ai].name, data_type=rem.data_type)
        )

    remaining_added = [col for i, col in enumerate(added) if i not in used_added]
    remaining_removed = [col for i, col in enumerate(removed) if i not in used_removed]
    return remaining_added, remaining_removed, renames


def is_destructive_type_change(from_type: str, to_type: str) -> tuple[bool, Optional[str]]:
    """Whether changing a canonical type may lose data, with a reason; safe widenings are not."""
    if from_type == to_type:
        return False, None
    return (from_type, to_type) not in _SAFE_WIDENINGS, f"type {from_type} -> {to_type}"