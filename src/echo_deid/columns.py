"""
Column Resolution

Exports from the echo lab's spreadsheet tool carry noisy headers:
stray whitespace, non-breaking spaces, zero-width characters and a byte
order mark glued to the first header. Columns are resolved by comparing
normalized names; rows are still read and written under their raw keys.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Sequence

from .errors import MissingColumnError

# Zero-width space/joiners, word joiner and BOM
_INVISIBLE = re.compile("[\u200b\u200c\u200d\u2060\ufeff]")
# No-break, figure and narrow no-break spaces
_NBSP = re.compile("[\u00a0\u2007\u202f]")
_WHITESPACE = re.compile(r"\s+")


def normalize_column(name: Any) -> str:
    """Normalize a header for comparison."""
    text = _INVISIBLE.sub("", str(name))
    text = _NBSP.sub(" ", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return text.casefold()


def resolve(columns: Iterable[str], target: str) -> str | None:
    """Return the first column whose normalized name equals the target's."""
    wanted = normalize_column(target)
    for column in columns:
        if normalize_column(column) == wanted:
            return column
    return None


def resolve_all(columns: Iterable[str], target: str) -> list[str]:
    """Every column whose normalized name equals the target's, in order."""
    wanted = normalize_column(target)
    return [column for column in columns if normalize_column(column) == wanted]


def resolve_any(columns: Sequence[str], spellings: Sequence[str]) -> str | None:
    """Try each spelling in order and return the first hit."""
    for spelling in spellings:
        column = resolve(columns, spelling)
        if column is not None:
            return column
    return None


def require(
    columns: Sequence[str],
    spellings: Sequence[str] | str,
    purpose: str | None = None,
    stage: str | None = None,
) -> str:
    """Resolve a required column or raise MissingColumnError."""
    if isinstance(spellings, str):
        spellings = [spellings]
    column = resolve_any(columns, spellings)
    if column is None:
        raise MissingColumnError(spellings[0], purpose=purpose, stage=stage)
    return column


def discover_columns(
    rows: Sequence[dict[str, Any]],
    header: Sequence[Any] | None = None,
) -> list[str]:
    """
    Build the column list for a table.

    The declared header row wins: a row parser omits keys for blank
    cells, so a column with data only in later rows would be lost if
    columns were taken from the first row. Without a header, fall back
    to the union of keys across all rows, in first-seen order.
    """
    if header is not None:
        names = [str(h) for h in header if h is not None and str(h).strip()]
        return list(dict.fromkeys(names))

    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


__all__ = [
    "normalize_column",
    "resolve",
    "resolve_all",
    "resolve_any",
    "require",
    "discover_columns",
]
