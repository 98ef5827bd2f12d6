"""Sensitive column removal."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..columns import resolve_all
from .base import BaseTransform, Table, TransformResult


@dataclass
class ColumnPruner(BaseTransform):
    """
    Drop sensitive columns from every row.

    `remove` lists canonical names; each is resolved against the column
    list and every raw key that normalizes to it is removed. This is the
    only stage allowed to shrink the column set.
    """

    remove: list[str] = field(default_factory=list)

    def resolved(self) -> list[str]:
        """Raw column names that will be dropped."""
        found = (column for name in self.remove for column in resolve_all(self.columns, name))
        return list(dict.fromkeys(found))

    def output_columns(self) -> list[str]:
        dropped = set(self.resolved())
        return [column for column in self.columns if column not in dropped]

    def apply(self, data: Table, result: TransformResult) -> Table:
        dropped = set(self.resolved())
        result.removed_columns = self.resolved()
        return [
            {key: value for key, value in row.items() if key not in dropped}
            for row in data
        ]


__all__ = ["ColumnPruner"]
