"""Result types produced by comparing two schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from schemadiff.schema_model import Column, Constraint, ForeignKey, Index


@dataclass
class ColumnModification:
    old: Column
    new: Column
    destructive: bool = False
    reason: Optional[str] = None


@dataclass
class ColumnRename:
    """A column judged renamed: same canonical type and NOT NULL, different name."""

    old_name: str
    new_name: str
    data_type: str


@dataclass
class IndexModification:
    old: Index
    new: Index


@dataclass
class ForeignKeyModification:
    old: ForeignKey
    new: ForeignKey


@dataclass
class ConstraintModification:
    name: str
    old: Constraint
    new: Constraint


@dataclass
class TableDiff:
    """Differences found in one table present on both sides."""

    table_name: str
    added_columns: list[Column] = field(default_factory=list)
    removed_columns: list[Column] = field(default_factory=list)
    modified_columns: list[ColumnModification] = field(default_factory=list)
    renamed_columns: list[ColumnRename] = field(default_factory=list)
    added_indexes: list[Index] = field(default_factory=list)
    removed_indexes: list[Index] = field(default_factory=list)
    modified_indexes: list[IndexModification] = field(default_factory=list)
    added_foreign_keys: list[ForeignKey] = field(default_factory=list)
    removed_foreign_keys: list[ForeignKey] = field(default_factory=list)
    modified_foreign_keys: list[ForeignKeyModification] = field(default_factory=list)
    added_constraints: list[tuple[str, Constraint]] = field(default_factory=list)
    removed_constraints: list[tuple[str, Constraint]] = field(default_factory=list)
    modified_constraints: list[ConstraintModification] = field(default_factory=list)

    def has_changes(self) -> bool:
        """True when any change at all was recorded for the table."""
        return any(
            (
                self.added_columns,
                self.removed_columns,
                self.renamed_columns,
                self.modified_columns,
                self.added_indexes,
                self.removed_indexes,
                self.modified_indexes,
                self.added_foreign_keys,
                self.removed_foreign_keys,
                self.modified_foreign_keys,
                self.added_constraints,
                self.removed_constraints,
                self.modified_constraints,
            )
        )


@dataclass
class DiffResult:
    """Everything that separates a source schema from a target schema."""

    added_tables: list[str] = field(default_factory=list)
    removed_tables: list[str] = field(default_factory=list)
    altered_tables: list[TableDiff] = field(default_factory=list)
    destructive_warnings: list[str] = field(default_factory=list)

    def has_changes(self) -> bool:
        """True when a table was added, removed or altered."""
        return bool(self.added_tables or self.removed_tables or self.altered_tables)