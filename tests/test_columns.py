"""Tests for column name resolution."""

import pytest

from echo_deid.columns import (
    discover_columns,
    normalize_column,
    require,
    resolve,
    resolve_all,
    resolve_any,
)
from echo_deid.config import VELOCITY_SPELLINGS
from echo_deid.errors import ErrorCategory, MissingColumnError


class TestNormalizeColumn:
    """Tests for header normalization."""

    def test_case_and_whitespace(self):
        assert normalize_column("  Pnr") == "pnr"
        assert normalize_column("Vmax   (m/s) ") == "vmax (m/s)"
        assert normalize_column("Vmax\t(m/s)") == "vmax (m/s)"

    def test_invisible_characters(self):
        """BOM and zero-width characters are stripped."""
        assert normalize_column("\ufeffPNR") == "pnr"
        assert normalize_column("P\u200bNR") == "pnr"
        assert normalize_column("PNR\u2060") == "pnr"

    def test_non_breaking_spaces(self):
        """Non-breaking spaces count as ordinary spaces."""
        assert normalize_column("Vmax\u00a0(m/s)") == "vmax (m/s)"
        assert normalize_column("pnr\u00a0") == "pnr"

    def test_non_string_header(self):
        assert normalize_column(2023) == "2023"


class TestResolve:
    """Tests for resolve and resolve_any."""

    @pytest.mark.parametrize("header", ["  Pnr", "PNR", "pnr\u00a0", "\ufeffPnr"])
    def test_noisy_headers_resolve(self, header):
        assert resolve(["Datum", header, "INDIK"], "pnr") == header

    def test_first_match_wins(self):
        assert resolve(["PNR", "pnr"], "Pnr") == "PNR"

    def test_no_match(self):
        assert resolve(["Datum", "INDIK"], "PNR") is None

    def test_resolve_all_keeps_every_match(self):
        columns = ["Namn", "PNR", "namn ", "\u200bNAMN", "Namnbyte"]
        assert resolve_all(columns, "Namn") == ["Namn", "namn ", "\u200bNAMN"]
        assert resolve_all(columns, "Adress") == []

    def test_target_is_normalized_too(self):
        assert resolve(["Vmax (m/s)"], " VMAX\u00a0 (M/S) ") == "Vmax (m/s)"

    def test_resolve_any_follows_spelling_order(self):
        """The earliest spelling in the list wins, not the earliest column."""
        columns = ["AV Vmax", "Datum", "Vmax(m/s)"]
        assert resolve_any(columns, VELOCITY_SPELLINGS) == "Vmax(m/s)"

    def test_resolve_any_stops_at_first_hit(self):
        columns = ["Vmax", "Vmax m/s"]
        assert resolve_any(columns, ["Vmax m/s", "Vmax"]) == "Vmax m/s"

    def test_resolve_any_none(self):
        assert resolve_any(["PNR"], VELOCITY_SPELLINGS) is None


class TestRequire:
    """Tests for required column lookup."""

    def test_found(self):
        assert require(["pnr "], ["PNR", "Personnummer"]) == "pnr "

    def test_single_spelling(self):
        assert require(["Datum"], "datum") == "Datum"

    def test_missing_names_canonical_column(self):
        with pytest.raises(MissingColumnError) as exc_info:
            require(["Datum"], ["PNR", "Personnummer"], purpose="threshold_filter")

        error = exc_info.value
        assert error.column == "PNR"
        assert error.category == ErrorCategory.MISSING_COLUMN
        assert "PNR column not found" in str(error)
        assert "threshold_filter" in str(error)


class TestDiscoverColumns:
    """Tests for header discovery."""

    def test_declared_header_wins(self):
        """Columns with no value in any row still come from the header."""
        rows = [{"PNR": 1}, {"PNR": 2}]
        header = ["PNR", "Datum", "Kommentar"]
        assert discover_columns(rows, header) == ["PNR", "Datum", "Kommentar"]

    def test_blank_header_cells_dropped(self):
        assert discover_columns([], ["PNR", None, "", "  ", "Datum"]) == ["PNR", "Datum"]

    def test_duplicate_header_kept_once(self):
        assert discover_columns([], ["PNR", "PNR", "Datum"]) == ["PNR", "Datum"]

    def test_union_fallback(self):
        """Without a header, a key first seen in a later row is not lost."""
        rows = [{"PNR": 1, "Datum": "20230101"}, {"PNR": 1, "Kommentar": "x", "Datum": "20230102"}]
        assert discover_columns(rows) == ["PNR", "Datum", "Kommentar"]
