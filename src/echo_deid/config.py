"""
Pipeline Settings

Fixed configuration for a de-identification run. Settings are built (or
loaded from JSON) before a run starts and are never changed during one.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .columns import normalize_column

REMOVE = "remove"

FeatureAction = Union[Literal["remove"], float]


# =============================================================================
# COLUMN SPELLINGS
# =============================================================================


PNR_SPELLINGS = ("PNR", "Personnummer")
INDICATOR_SPELLINGS = ("INDIK", "Indikation")
DATE_SPELLINGS = ("Datum", "Date", "Undersökningsdatum")

# Peak velocity is spelled differently in nearly every export.
VELOCITY_SPELLINGS = (
    "Vmax (m/s)",
    "Vmax(m/s)",
    "Vmax m/s",
    "Vmax, m/s",
    "Vmax [m/s]",
    "Vmax (m/sec)",
    "AV Vmax (m/s)",
    "AV Vmax",
    "Vmax",
)

LVOT_DIAMETER_SPELLINGS = ("LVOT diam (mm)", "LVOT (mm)", "LVOTd (mm)", "LVOT diameter (mm)")
LVOT_VTI_SPELLINGS = ("LVOT VTI (cm)", "LVOT VTI", "VTI LVOT (cm)", "VTI LVOT")
AV_VTI_SPELLINGS = ("AV VTI (cm)", "AV VTI", "VTI AV (cm)", "VTI AV")


# =============================================================================
# FEATURE MAP
# =============================================================================


DEFAULT_FEATURE_MAP: dict[str, FeatureAction] = {
    # Direct identifiers and free text
    "Namn": REMOVE,
    "Adress": REMOVE,
    "Telefon": REMOVE,
    "Remittent": REMOVE,
    "Undersökare": REMOVE,
    "Kommentar": REMOVE,
    "Sjukhus": REMOVE,
    # Quasi-identifiers, perturbed in place
    "Ålder": 2,
    "Längd (cm)": 3,
    "Vikt (kg)": 3,
    "BSA (m2)": 0.1,
    "Puls": 3,
}


class DeidSettings(BaseModel):
    """Static configuration for one de-identification run."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    feature_map: dict[str, FeatureAction] = Field(
        default_factory=lambda: dict(DEFAULT_FEATURE_MAP)
    )

    # Cohort filters
    apply_indicator_filter: bool = True
    indicator_code: float = 8
    velocity_threshold: float = Field(default=4.0, ge=0)
    min_visits: int = Field(default=5, ge=1)

    # Date parsing
    short_date_order: Literal["YMD", "DMY"] = "YMD"

    # Derived valve area
    compute_valve_area: bool = True
    valve_area_column: str = "AVA (cm2)"

    # Pruning
    drop_indicator_column: bool = False

    # Column spellings, tried in order
    pnr_spellings: tuple[str, ...] = PNR_SPELLINGS
    indicator_spellings: tuple[str, ...] = INDICATOR_SPELLINGS
    date_spellings: tuple[str, ...] = DATE_SPELLINGS
    velocity_spellings: tuple[str, ...] = VELOCITY_SPELLINGS
    lvot_diameter_spellings: tuple[str, ...] = LVOT_DIAMETER_SPELLINGS
    lvot_vti_spellings: tuple[str, ...] = LVOT_VTI_SPELLINGS
    av_vti_spellings: tuple[str, ...] = AV_VTI_SPELLINGS

    @field_validator("feature_map", mode="before")
    @classmethod
    def normalize_actions(cls, v: dict) -> dict:
        """Accept the legacy "rm" alias for the remove action."""
        if not isinstance(v, dict):
            return v
        return {
            name: REMOVE if isinstance(action, str) and action.strip().lower() in ("rm", REMOVE) else action
            for name, action in v.items()
        }

    @field_validator("feature_map")
    @classmethod
    def validate_feature_map(cls, v: dict[str, FeatureAction]) -> dict[str, FeatureAction]:
        """One action per column, jitter magnitudes non-negative."""
        seen: dict[str, str] = {}
        for name, action in v.items():
            key = normalize_column(name)
            if key in seen:
                raise ValueError(f"Columns {seen[key]!r} and {name!r} name the same column")
            seen[key] = name
            if action != REMOVE and action < 0:
                raise ValueError(f"Jitter magnitude for {name!r} must be non-negative")
        return v

    @field_validator(
        "pnr_spellings",
        "indicator_spellings",
        "date_spellings",
        "velocity_spellings",
        "lvot_diameter_spellings",
        "lvot_vti_spellings",
        "av_vti_spellings",
    )
    @classmethod
    def validate_spellings(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("At least one spelling is required")
        return v

    @property
    def removed_features(self) -> list[str]:
        """Feature-map columns to drop."""
        return [name for name, action in self.feature_map.items() if action == REMOVE]

    @property
    def jitter_features(self) -> dict[str, float]:
        """Feature-map columns to perturb, with their magnitudes."""
        return {
            name: float(action)
            for name, action in self.feature_map.items()
            if action != REMOVE
        }

    @classmethod
    def from_json_file(cls, path: str | Path) -> "DeidSettings":
        """Load settings from a JSON file."""
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))


__all__ = [
    "REMOVE",
    "FeatureAction",
    "DEFAULT_FEATURE_MAP",
    "PNR_SPELLINGS",
    "INDICATOR_SPELLINGS",
    "DATE_SPELLINGS",
    "VELOCITY_SPELLINGS",
    "LVOT_DIAMETER_SPELLINGS",
    "LVOT_VTI_SPELLINGS",
    "AV_VTI_SPELLINGS",
    "DeidSettings",
]
