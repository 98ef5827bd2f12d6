"""Shared fixtures: a small synthetic echo export."""

from datetime import date, timedelta

import pytest

COLUMNS = [
    "PNR",
    "Datum",
    "INDIK",
    "Vmax (m/s)",
    "Namn",
    "Ålder",
    "LVOT diam (mm)",
    "LVOT VTI (cm)",
    "AV VTI (cm)",
]


def make_visits(pnr, velocities, indicators=None, start=date(2023, 1, 1), step_days=30):
    """Rows for one patient, one per velocity."""
    indicators = indicators or [1] * len(velocities)
    rows = []
    for i, (vmax, indik) in enumerate(zip(velocities, indicators)):
        rows.append({
            "PNR": pnr,
            "Datum": (start + timedelta(days=i * step_days)).isoformat(),
            "INDIK": indik,
            "Vmax (m/s)": vmax,
            "Namn": f"Patient {pnr}",
            "Ålder": 70,
            "LVOT diam (mm)": 21,
            "LVOT VTI (cm)": 20,
            "AV VTI (cm)": 80,
        })
    return rows


@pytest.fixture
def echo_rows():
    """
    Four patients, one of whom survives every default filter.

    - 19400101-1111: 6 visits, INDIK 8 once, Vmax 4.2 once -> kept
    - 19400101-2222: 5 visits, INDIK 8, Vmax never above 3.5 -> threshold
    - 19400101-3333: 4 visits, INDIK 8, Vmax 5.0 -> frequency
    - 19400101-4444: 6 visits, never INDIK 8, Vmax 4.1 -> indicator
    """
    return (
        make_visits("19400101-1111", [3.1, 3.4, 4.2, 3.9, 3.8, 3.7], [1, 8, 1, 1, 1, 1])
        + make_visits("19400101-2222", [2.0, 2.5, 3.0, 3.5, 3.2], [8, 8, 8, 8, 8])
        + make_visits("19400101-3333", [5.0, 4.5, 4.0, 3.0], [8, 1, 1, 1])
        + make_visits("19400101-4444", [4.1, 3.0, 3.0, 3.0, 3.0, 3.0], [2, 2, 2, 2, 2, 2])
    )
