"""Derived clinical fields."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..columns import resolve_any
from ..config import AV_VTI_SPELLINGS, LVOT_DIAMETER_SPELLINGS, LVOT_VTI_SPELLINGS
from .base import BaseTransform, Table, TransformResult, to_number


def continuity_valve_area(diameter_mm: Any, vti_source: Any, vti_target: Any) -> float | None:
    """
    Valve area (cm2) by the continuity equation.

    area = pi * (d / 2)^2 * VTI_source / VTI_target, with the diameter
    converted from mm to cm. Returns None when an input is missing or
    not numeric, or when VTI_target is zero.
    """
    d = to_number(diameter_mm)
    v1 = to_number(vti_source)
    v2 = to_number(vti_target)
    if d is None or v1 is None or v2 is None or v2 == 0:
        return None

    radius_cm = d / 10 / 2
    return round(math.pi * radius_cm ** 2 * v1 / v2, 2)


@dataclass
class ValveAreaTransform(BaseTransform):
    """Add the aortic valve area computed from LVOT and AV measurements."""

    output_field: str = "AVA (cm2)"
    diameter_spellings: tuple[str, ...] = LVOT_DIAMETER_SPELLINGS
    source_vti_spellings: tuple[str, ...] = LVOT_VTI_SPELLINGS
    target_vti_spellings: tuple[str, ...] = AV_VTI_SPELLINGS

    def output_columns(self) -> list[str]:
        if self.output_field in self.columns:
            return list(self.columns)
        return [*self.columns, self.output_field]

    def apply(self, data: Table, result: TransformResult) -> Table:
        sources = {
            "LVOT diameter": resolve_any(self.columns, self.diameter_spellings),
            "LVOT VTI": resolve_any(self.columns, self.source_vti_spellings),
            "AV VTI": resolve_any(self.columns, self.target_vti_spellings),
        }
        missing = [label for label, column in sources.items() if column is None]
        if missing:
            result.warnings.append(
                f"{self.output_field} not computed, missing columns: {', '.join(missing)}"
            )

        diameter, vti_source, vti_target = sources.values()
        output = []
        for row in data:
            new_row = dict(row)
            value = None
            if not missing:
                value = continuity_valve_area(
                    row.get(diameter), row.get(vti_source), row.get(vti_target)
                )
            new_row[self.output_field] = value
            if value is not None:
                result.modified_count += 1
            output.append(new_row)

        return output


__all__ = ["continuity_valve_area", "ValveAreaTransform"]
