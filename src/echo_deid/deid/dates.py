"""
Temporal Anonymization

Visit dates are replaced by the number of days since the patient's
first visit. Dates arrive as native dates, spreadsheet serial numbers or
loosely formatted strings; anything that cannot be read aborts the run.
"""

from __future__ import annotations

import math
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Literal

from ..columns import require
from ..config import DATE_SPELLINGS, PNR_SPELLINGS
from ..errors import MalformedValueError
from ..transforms.base import BaseTransform, Table, TransformResult, group_by_patient

# Spreadsheet day zero (the 1900 leap-year bug is absorbed by the 30th)
SERIAL_EPOCH = date(1899, 12, 30)
SERIAL_MIN = 1_000
SERIAL_MAX = 100_000

_ISO_DATE = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})(?:[ T].*)?\s*$")
_NON_DIGITS = re.compile(r"\D")


def _expand_year(yy: int) -> int:
    return 2000 + yy if yy < 50 else 1900 + yy


def _from_serial(serial: float) -> date:
    return SERIAL_EPOCH + timedelta(days=math.floor(serial))


def _from_digits(digits: str, short_date_order: str) -> date | None:
    """Interpret a digit-only string as a calendar date, or return None."""
    try:
        if len(digits) == 6:
            a, b, c = int(digits[:2]), int(digits[2:4]), int(digits[4:6])
            if short_date_order == "DMY":
                return date(_expand_year(c), b, a)
            return date(_expand_year(a), b, c)
        if len(digits) == 8:
            return date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]))
        if len(digits) == 9:
            # Century-prefixed national identifier: CC YY MM DD + check digit
            century, yy = int(digits[:2]), int(digits[2:4])
            return date(century * 100 + yy, int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        return None
    return None


def parse_visit_date(value: Any, short_date_order: Literal["YMD", "DMY"] = "YMD") -> date:
    """
    Parse a raw date cell into a calendar date.

    Accepted shapes:
    - date/datetime values (time of day dropped)
    - spreadsheet serial numbers (days since 1899-12-30)
    - ISO strings, YYYY-MM-DD with an optional time part
    - digit strings after removing every non-digit: YYMMDD (or DDMMYY
      with short_date_order="DMY"), YYYYMMDD, or a 9-digit
      century-prefixed identifier
    - 5 to 7 digits that are not a date but lie in the serial range

    Raises:
        MalformedValueError: for empty or unrecognized values
    """
    if value is None:
        raise MalformedValueError(value)

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        number = float(value)
        if not math.isfinite(number):
            raise MalformedValueError(value)
        if SERIAL_MIN <= number <= SERIAL_MAX:
            return _from_serial(number)
        if not number.is_integer():
            raise MalformedValueError(value)
        # Dates typed as plain numbers, e.g. 20230115
        digits = str(int(number))
    elif isinstance(value, str) and value.strip():
        match = _ISO_DATE.match(value)
        if match:
            try:
                return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
            except ValueError:
                raise MalformedValueError(value) from None
        digits = _NON_DIGITS.sub("", value)
    else:
        raise MalformedValueError(value)

    parsed = _from_digits(digits, short_date_order)
    if parsed is not None:
        return parsed

    if 5 <= len(digits) <= 7 and SERIAL_MIN <= int(digits) <= SERIAL_MAX:
        return _from_serial(int(digits))

    raise MalformedValueError(value, cleaned=digits)


@dataclass
class DateAnonymizer(BaseTransform):
    """
    Replace visit dates with day offsets from each patient's first visit.

    Each patient's rows are sorted by date (ties keep table order) and
    written back into the positions that patient already occupied, so
    rows of other patients do not move.
    """

    short_date_order: Literal["YMD", "DMY"] = "YMD"
    pnr_spellings: tuple[str, ...] = PNR_SPELLINGS
    date_spellings: tuple[str, ...] = DATE_SPELLINGS

    def apply(self, data: Table, result: TransformResult) -> Table:
        pnr_column = require(self.columns, self.pnr_spellings, purpose=self.name, stage=self.name)
        date_column = require(self.columns, self.date_spellings, purpose=self.name, stage=self.name)

        output: Table = [dict(row) for row in data]
        for indices in group_by_patient(data, pnr_column).values():
            visits = []
            for idx in indices:
                try:
                    visits.append((parse_visit_date(data[idx].get(date_column), self.short_date_order), idx))
                except MalformedValueError as e:
                    e.stage = self.name
                    raise
            # sorted() is stable, so equal dates keep table order
            ordered = sorted(visits, key=lambda visit: visit[0])
            first = ordered[0][0]

            for slot, (visit_date, idx) in zip(indices, ordered):
                row = dict(data[idx])
                row[date_column] = (visit_date - first).days
                output[slot] = row

        result.modified_count = len(output)
        return output


__all__ = [
    "SERIAL_EPOCH",
    "SERIAL_MIN",
    "SERIAL_MAX",
    "parse_visit_date",
    "DateAnonymizer",
]
