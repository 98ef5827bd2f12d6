"""Pipeline stages: cohort filters, derived fields, column pruning."""

from .base import (
    Row,
    Table,
    TransformResult,
    BaseTransform,
    to_number,
    group_by_patient,
    distinct_sample,
)
from .cohort import (
    PatientFilter,
    IndicatorFilter,
    ThresholdFilter,
    FrequencyFilter,
)
from .derive import ValveAreaTransform, continuity_valve_area
from .prune import ColumnPruner

__all__ = [
    "Row",
    "Table",
    "TransformResult",
    "BaseTransform",
    "to_number",
    "group_by_patient",
    "distinct_sample",
    "PatientFilter",
    "IndicatorFilter",
    "ThresholdFilter",
    "FrequencyFilter",
    "ValveAreaTransform",
    "continuity_valve_area",
    "ColumnPruner",
]
