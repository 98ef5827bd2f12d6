"""Patient identifier pseudonymization."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any

from ..columns import require
from ..config import PNR_SPELLINGS
from ..transforms.base import BaseTransform, Table, TransformResult, group_by_patient

ID_RANGE_START = 1_000_000
ID_RANGE_END = 9_999_999


def assign_pseudonyms(keys: list[Any], rng: random.Random) -> dict[Any, int]:
    """
    Number distinct keys from a randomly seeded ascending counter.

    The mapping is a bijection over `keys` and lives only as long as the
    caller holds it.
    """
    counter = rng.randint(ID_RANGE_START, ID_RANGE_END)
    return {key: counter + offset for offset, key in enumerate(dict.fromkeys(keys))}


@dataclass
class Pseudonymizer(BaseTransform):
    """Replace every patient key with a new integer identifier."""

    rng: random.Random = field(default_factory=random.Random, repr=False)
    pnr_spellings: tuple[str, ...] = PNR_SPELLINGS

    def apply(self, data: Table, result: TransformResult) -> Table:
        pnr_column = require(self.columns, self.pnr_spellings, purpose=self.name, stage=self.name)
        mapping = assign_pseudonyms(list(group_by_patient(data, pnr_column)), self.rng)

        output = []
        for row in data:
            new_row = dict(row)
            new_row[pnr_column] = mapping[row.get(pnr_column)]
            output.append(new_row)

        result.patient_count = len(mapping)
        result.modified_count = len(output)
        return output


__all__ = ["ID_RANGE_START", "ID_RANGE_END", "assign_pseudonyms", "Pseudonymizer"]
