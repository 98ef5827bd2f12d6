"""
Stage Lineage

Records what each stage did to the table: row counts in and out, the
column set before and after, and content hashes. Records are chained
through `parent_lineage_id` so a run's history reads stage by stage.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .transforms.base import TransformResult


class LineageRecord(BaseModel):
    """Lineage of one stage."""

    lineage_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    stage: str
    transformation_version: str = "1.0.0"
    parameters: dict[str, Any] = Field(default_factory=dict)

    # Metrics
    input_records: int
    output_records: int
    records_filtered: int = 0
    values_modified: int = 0
    patient_count: int = 0

    # Columns
    columns_in: list[str] = Field(default_factory=list)
    columns_out: list[str] = Field(default_factory=list)

    # Content hashes
    input_hash: str | None = None
    output_hash: str | None = None

    # Previous stage in the same run
    parent_lineage_id: str | None = None

    @property
    def columns_removed(self) -> list[str]:
        kept = set(self.columns_out)
        return [c for c in self.columns_in if c not in kept]


class LineageTracker:
    """
    Tracks lineage across the stages of one run.

    Each recorded stage links to the previously recorded one.
    """

    def __init__(self, records: list[LineageRecord] | None = None):
        self._records: list[LineageRecord] = list(records or [])

    @property
    def records(self) -> list[LineageRecord]:
        return list(self._records)

    def record(
        self,
        result: TransformResult,
        version: str = "1.0.0",
        parameters: dict[str, Any] | None = None,
    ) -> LineageRecord:
        """Record the lineage of a finished stage."""
        parent = self._records[-1].lineage_id if self._records else None
        record = LineageRecord(
            stage=result.transform_name,
            transformation_version=version,
            parameters=parameters or {},
            input_records=result.input_count,
            output_records=result.output_count,
            records_filtered=result.filtered_count,
            values_modified=result.modified_count,
            patient_count=result.patient_count,
            columns_in=result.columns_in,
            columns_out=result.columns_out,
            input_hash=result.input_hash or None,
            output_hash=result.output_hash or None,
            parent_lineage_id=parent,
        )
        self._records.append(record)
        return record

    def get_lineage(self, lineage_id: str) -> LineageRecord | None:
        """Get a specific lineage record."""
        for record in self._records:
            if record.lineage_id == lineage_id:
                return record
        return None

    def get_ancestors(self, lineage_id: str) -> list[LineageRecord]:
        """Get the record and every earlier stage, most recent first."""
        ancestors = []
        current_id = lineage_id

        while current_id:
            record = self.get_lineage(current_id)
            if record:
                ancestors.append(record)
                current_id = record.parent_lineage_id
            else:
                break

        return ancestors

    def get_by_stage(self, stage: str) -> LineageRecord | None:
        """Get the record of a named stage."""
        for record in self._records:
            if record.stage == stage:
                return record
        return None

    def export(self) -> list[dict[str, Any]]:
        """Export all lineage records as dictionaries."""
        return [r.model_dump() for r in self._records]

    def summary(self) -> dict[str, Any]:
        """Get a summary of the run."""
        if not self._records:
            return {"total_stages": 0}

        first, last = self._records[0], self._records[-1]
        return {
            "total_stages": len(self._records),
            "input_records": first.input_records,
            "output_records": last.output_records,
            "total_filtered_records": sum(r.records_filtered for r in self._records),
            "total_modified_values": sum(r.values_modified for r in self._records),
            "input_columns": len(first.columns_in),
            "output_columns": len(last.columns_out),
        }


__all__ = ["LineageRecord", "LineageTracker"]
