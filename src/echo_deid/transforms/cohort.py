"""
Cohort Filters

Patient-aware row filters. Each filter decides per patient whether the
patient qualifies and then keeps every row of a qualifying patient, in
original order. An empty cohort is fatal.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..columns import require
from ..config import INDICATOR_SPELLINGS, PNR_SPELLINGS, VELOCITY_SPELLINGS
from ..errors import EmptyCohortError
from .base import BaseTransform, Table, TransformResult, distinct_sample, group_by_patient, to_number


@dataclass
class PatientFilter(BaseTransform):
    """Keep all rows of patients that satisfy `qualifies`."""

    pnr_spellings: tuple[str, ...] = PNR_SPELLINGS

    @abstractmethod
    def qualifies(self, rows: list[dict[str, Any]]) -> bool:
        """Whether a patient with these rows belongs to the cohort."""

    @abstractmethod
    def empty_cohort_error(self, data: Table) -> EmptyCohortError:
        """Error raised when no patient qualifies."""

    def prepare(self) -> None:
        """Resolve the columns the filter needs."""

    def apply(self, data: Table, result: TransformResult) -> Table:
        pnr_column = require(self.columns, self.pnr_spellings, purpose=self.name, stage=self.name)
        self.prepare()

        groups = group_by_patient(data, pnr_column)
        qualifying = {
            key for key, indices in groups.items()
            if self.qualifies([data[idx] for idx in indices])
        }
        if not qualifying:
            raise self.empty_cohort_error(data)

        output = [dict(row) for row in data if row.get(pnr_column) in qualifying]
        result.patient_count = len(qualifying)
        result.filtered_count = len(data) - len(output)
        return output


@dataclass
class IndicatorFilter(PatientFilter):
    """Keep patients with at least one visit coded with the cohort indicator."""

    code: float = 8
    indicator_spellings: tuple[str, ...] = INDICATOR_SPELLINGS
    _column: str = field(default="", init=False, repr=False)

    def prepare(self) -> None:
        self._column = require(self.columns, self.indicator_spellings, purpose=self.name, stage=self.name)

    def qualifies(self, rows: list[dict[str, Any]]) -> bool:
        return any(to_number(row.get(self._column)) == self.code for row in rows)

    def empty_cohort_error(self, data: Table) -> EmptyCohortError:
        code = int(self.code) if float(self.code).is_integer() else self.code
        return EmptyCohortError(
            f"No patients with {self._column} = {code} found",
            samples=distinct_sample(data, self._column),
            stage=self.name,
        )


@dataclass
class ThresholdFilter(PatientFilter):
    """Keep patients with at least one velocity at or above the threshold."""

    threshold: float = 4.0
    velocity_spellings: tuple[str, ...] = VELOCITY_SPELLINGS
    _column: str = field(default="", init=False, repr=False)

    def prepare(self) -> None:
        self._column = require(self.columns, self.velocity_spellings, purpose=self.name, stage=self.name)

    def qualifies(self, rows: list[dict[str, Any]]) -> bool:
        for row in rows:
            value = to_number(row.get(self._column))
            if value is not None and value >= self.threshold:
                return True
        return False

    def empty_cohort_error(self, data: Table) -> EmptyCohortError:
        return EmptyCohortError(
            f"No patients with {self._column} >= {self.threshold} found",
            samples=distinct_sample(data, self._column),
            stage=self.name,
        )


@dataclass
class FrequencyFilter(PatientFilter):
    """Keep patients with at least `min_visits` rows."""

    min_visits: int = 5
    _max_seen: int = field(default=0, init=False, repr=False)

    def qualifies(self, rows: list[dict[str, Any]]) -> bool:
        self._max_seen = max(self._max_seen, len(rows))
        return len(rows) >= self.min_visits

    def empty_cohort_error(self, data: Table) -> EmptyCohortError:
        return EmptyCohortError(
            f"No patients with {self.min_visits}+ visits found "
            f"(most visits for one patient: {self._max_seen})",
            stage=self.name,
        )

    def apply(self, data: Table, result: TransformResult) -> Table:
        self._max_seen = 0
        return super().apply(data, result)


__all__ = [
    "PatientFilter",
    "IndicatorFilter",
    "ThresholdFilter",
    "FrequencyFilter",
]
