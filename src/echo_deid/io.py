"""
Spreadsheet Input and CSV Output

Reads the first sheet of an export into rows keyed by the declared
header, and writes the finished table as a quoted, BOM-prefixed CSV.
"""

from __future__ import annotations

import csv
import hashlib
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from .errors import InputError

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv"}


class SheetTable(BaseModel):
    """Rows of the first sheet plus its declared header row."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    header: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def frame_to_rows(df: pd.DataFrame) -> SheetTable:
    """
    Convert a parsed sheet into rows.

    Blank cells are left out of the row, as a spreadsheet row parser
    would, and fully blank rows are dropped. The header keeps every
    declared column, including ones that are blank in the first rows.
    """
    header = [str(c) for c in df.columns]
    rows = []
    for record in df.to_dict(orient="records"):
        row = {str(k): v for k, v in record.items() if not _is_blank(v)}
        if row:
            rows.append(row)
    return SheetTable(header=header, rows=rows)


def read_table(path: str | Path) -> SheetTable:
    """Read the first sheet of a workbook, or a CSV file."""
    path = Path(path)
    if not path.exists():
        raise InputError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in SPREADSHEET_SUFFIXES | CSV_SUFFIXES:
        raise InputError(f"Unsupported input file type: {path.suffix or path.name}")

    try:
        if suffix in CSV_SUFFIXES:
            df = pd.read_csv(path, dtype=object, encoding="utf-8-sig")
        else:
            df = pd.read_excel(path, sheet_name=0, dtype=object)
    except pd.errors.EmptyDataError:
        raise InputError("File is empty") from None
    except (ValueError, OSError, zipfile.BadZipFile) as e:
        raise InputError(f"Could not read {path.name}: {e}") from e

    return frame_to_rows(df)


def table_columns(rows: list[dict[str, Any]]) -> list[str]:
    """Union of row keys in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def write_csv(
    rows: list[dict[str, Any]],
    path: str | Path,
    columns: list[str] | None = None,
) -> Path:
    """
    Write rows as UTF-8 CSV with a BOM, every field quoted.

    `columns` is the header, in order; a column that is blank in every
    row is still written. Without it the header is the union of row keys.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    header = list(columns) if columns is not None else table_columns(rows)
    df = pd.DataFrame(rows, columns=header, dtype=object)
    df.to_csv(
        path,
        index=False,
        encoding="utf-8-sig",
        quoting=csv.QUOTE_ALL,
        na_rep="",
    )
    return path


def output_path_for(input_path: str | Path, output_dir: str | Path | None = None) -> Path:
    """`<basename>.csv` in `output_dir` (default: next to the input)."""
    input_path = Path(input_path)
    directory = Path(output_dir) if output_dir is not None else input_path.parent
    output = directory / f"{input_path.stem}.csv"
    if output.resolve() == input_path.resolve():
        raise InputError(f"Output would overwrite the input file: {input_path}")
    return output


def compute_file_hash(path: str | Path) -> str:
    """Compute SHA-256 hash of a file."""
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


__all__ = [
    "SheetTable",
    "frame_to_rows",
    "read_table",
    "table_columns",
    "write_csv",
    "output_path_for",
    "compute_file_hash",
]
