"""
Transform Building Blocks

Result type, base class and the shared helpers every stage uses:
numeric coercion of cells and per-patient grouping of rows.
"""

from __future__ import annotations

import hashlib
import json
import math
import numbers
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

Row = dict[str, Any]
Table = list[Row]


# =============================================================================
# CELL HELPERS
# =============================================================================


def to_number(value: Any) -> float | None:
    """
    Parse a cell as a number.

    Accepts real numbers and numeric strings ("8", "8.0", " 4,5 ").
    Returns None for blanks, booleans, NaN/inf and anything else, so
    callers skip the cell instead of treating it as zero.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        number = float(value)
    elif isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(" ", "")
        if not text:
            return None
        # Decimal comma, as written by Swedish locale exports
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        # NaN, sNaN and Infinity spellings
        if not parsed.is_finite():
            return None
        number = float(parsed)
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def group_by_patient(data: Table, pnr_column: str) -> dict[Any, list[int]]:
    """
    Group row indices by patient key.

    Patients appear in order of their first row and each list keeps the
    original row order. Rows without a key group under None.
    """
    groups: dict[Any, list[int]] = {}
    for idx, row in enumerate(data):
        groups.setdefault(row.get(pnr_column), []).append(idx)
    return groups


def distinct_sample(data: Table, column: str | None, limit: int = 10) -> list[Any]:
    """Up to `limit` distinct non-blank values of a column, in table order."""
    if column is None:
        return []
    seen: dict[Any, None] = {}
    for row in data:
        value = row.get(column)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        try:
            seen.setdefault(value, None)
        except TypeError:
            seen.setdefault(str(value), None)
        if len(seen) >= limit:
            break
    return list(seen)


# =============================================================================
# TRANSFORM RESULT
# =============================================================================


class TransformResult(BaseModel, Generic[T]):
    """Result of one pipeline stage."""

    data: T | None = None
    warnings: list[str] = Field(default_factory=list)

    # Metrics
    input_count: int = 0
    output_count: int = 0
    filtered_count: int = 0
    modified_count: int = 0
    patient_count: int = 0

    # Column set before and after the stage
    columns_in: list[str] = Field(default_factory=list)
    columns_out: list[str] = Field(default_factory=list)
    removed_columns: list[str] = Field(default_factory=list)

    # Audit
    transform_name: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    duration_ms: int = 0

    # Lineage
    input_hash: str = ""
    output_hash: str = ""

    @property
    def transform_ratio(self) -> float:
        """Ratio of output to input records."""
        if self.input_count == 0:
            return 0.0
        return self.output_count / self.input_count


# =============================================================================
# BASE TRANSFORM
# =============================================================================


@dataclass
class BaseTransform(ABC):
    """
    Base class for pipeline stages.

    A stage reads the column list it was built with and never renames
    columns. Subclasses implement `apply`; `transform` wraps it with
    timing, counts and content hashes.
    """

    name: str
    columns: list[str] = field(default_factory=list)
    description: str = ""
    version: str = "1.0.0"

    @abstractmethod
    def apply(self, data: Table, result: TransformResult) -> Table:
        """Return the transformed table, recording metrics on `result`."""

    def output_columns(self) -> list[str]:
        """Column list after this stage."""
        return list(self.columns)

    def transform(self, data: Table) -> TransformResult[Table]:
        """Run the stage."""
        start = time.time()
        result: TransformResult[Table] = TransformResult(
            transform_name=self.name,
            input_count=len(data),
            columns_in=list(self.columns),
            input_hash=self._compute_hash(data),
        )

        output = self.apply(data, result)

        result.data = output
        result.output_count = len(output)
        result.columns_out = self.output_columns()
        result.output_hash = self._compute_hash(output)
        result.duration_ms = int((time.time() - start) * 1000)
        result.completed_at = datetime.now(timezone.utc)
        return result

    def _compute_hash(self, data: Any) -> str:
        """Compute deterministic hash of data."""
        json_str = json.dumps(data, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()[:16]


__all__ = [
    "Row",
    "Table",
    "to_number",
    "group_by_patient",
    "distinct_sample",
    "TransformResult",
    "BaseTransform",
]
