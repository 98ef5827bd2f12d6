"""Bounded random perturbation of numeric quasi-identifiers."""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from ..columns import resolve
from ..transforms.base import BaseTransform, Table, TransformResult, to_number


def jitter_value(value: float, magnitude: float, rng: random.Random) -> float | int:
    """
    Add uniform noise from [-magnitude, +magnitude].

    Magnitudes of 1 or more round to a whole number, smaller ones to one
    decimal.
    """
    perturbed = value + rng.uniform(-magnitude, magnitude)
    if magnitude >= 1:
        return int(round(perturbed))
    return round(perturbed, 1)


@dataclass
class NumericJitter(BaseTransform):
    """
    Perturb every numeric cell of the configured columns.

    Draws are independent per cell; repeated visits of one patient get
    unrelated noise. Non-numeric cells are left as they are.
    """

    magnitudes: dict[str, float] = field(default_factory=dict)
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def apply(self, data: Table, result: TransformResult) -> Table:
        output = [dict(row) for row in data]

        for feature, magnitude in self.magnitudes.items():
            column = resolve(self.columns, feature)
            if column is None:
                continue
            for row in output:
                number = to_number(row.get(column))
                if number is None:
                    continue
                row[column] = jitter_value(number, magnitude, self.rng)
                result.modified_count += 1

        return output


__all__ = ["jitter_value", "NumericJitter"]
