"""
Pipeline Runner Module

`run` is the core entry point: a parsed table in, a de-identified table
and diagnostics out. `run_pipeline` wraps it with file input/output and
an audit trail, and `main` is the command-line interface.
"""

from __future__ import annotations

import argparse
import random
import sys
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .audit import AuditLogger
from .columns import discover_columns, resolve_any
from .config import DeidSettings
from .deid import DateAnonymizer, NumericJitter, Pseudonymizer
from .errors import ErrorCategory, InputError, PipelineError
from .io import compute_file_hash, output_path_for, read_table, write_csv
from .lineage import LineageRecord, LineageTracker
from .transforms import (
    BaseTransform,
    ColumnPruner,
    FrequencyFilter,
    IndicatorFilter,
    ThresholdFilter,
    ValveAreaTransform,
)


class ProgressEvent(BaseModel):
    """Progress notification for a presentation shell."""

    stage: str
    message: str
    rows: int
    columns: int


ProgressCallback = Callable[[ProgressEvent], None]


class RunDiagnostics(BaseModel):
    """Counters describing a finished run."""

    input_records: int
    output_records: int
    patient_count: int = 0
    modified_values: int = 0
    valve_areas_computed: int = 0
    removed_columns: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    lineage: list[LineageRecord] = Field(default_factory=list)


class RunOutput(BaseModel):
    """De-identified table and diagnostics."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    rows: list[dict[str, Any]]
    columns: list[str]
    diagnostics: RunDiagnostics


def build_stages(
    columns: list[str],
    settings: DeidSettings,
    rng: random.Random,
) -> list[tuple[BaseTransform, str]]:
    """Stages in execution order, each with its progress message."""
    stages: list[tuple[BaseTransform, str]] = []

    if settings.apply_indicator_filter:
        stages.append((
            IndicatorFilter(
                name="indicator_filter",
                columns=columns,
                code=settings.indicator_code,
                pnr_spellings=settings.pnr_spellings,
                indicator_spellings=settings.indicator_spellings,
            ),
            f"Filtering to patients with at least one {settings.indicator_spellings[0]} = {settings.indicator_code:g}",
        ))

    stages += [
        (
            ThresholdFilter(
                name="threshold_filter",
                columns=columns,
                threshold=settings.velocity_threshold,
                pnr_spellings=settings.pnr_spellings,
                velocity_spellings=settings.velocity_spellings,
            ),
            f"Filtering to patients with Vmax >= {settings.velocity_threshold}",
        ),
        (
            FrequencyFilter(
                name="frequency_filter",
                columns=columns,
                min_visits=settings.min_visits,
                pnr_spellings=settings.pnr_spellings,
            ),
            f"Filtering to patients with {settings.min_visits}+ visits",
        ),
        (
            Pseudonymizer(
                name="pseudonymize",
                columns=columns,
                rng=rng,
                pnr_spellings=settings.pnr_spellings,
            ),
            "Replacing PNR with randomized identifiers",
        ),
        (
            DateAnonymizer(
                name="anonymize_dates",
                columns=columns,
                short_date_order=settings.short_date_order,
                pnr_spellings=settings.pnr_spellings,
                date_spellings=settings.date_spellings,
            ),
            "Converting visit dates to days since first visit",
        ),
        (
            NumericJitter(
                name="jitter",
                columns=columns,
                magnitudes=settings.jitter_features,
                rng=rng,
            ),
            "Perturbing numeric values",
        ),
    ]

    if settings.compute_valve_area:
        stages.append((
            ValveAreaTransform(
                name="valve_area",
                columns=columns,
                output_field=settings.valve_area_column,
                diameter_spellings=settings.lvot_diameter_spellings,
                source_vti_spellings=settings.lvot_vti_spellings,
                target_vti_spellings=settings.av_vti_spellings,
            ),
            f"Computing {settings.valve_area_column}",
        ))

    return stages


def columns_to_remove(columns: list[str], settings: DeidSettings) -> list[str]:
    """Canonical names the pruner drops."""
    remove = list(settings.removed_features)
    if settings.drop_indicator_column:
        indicator = resolve_any(columns, settings.indicator_spellings)
        if indicator is not None:
            remove.append(indicator)
    return remove


def run(
    rows: Sequence[dict[str, Any]],
    settings: DeidSettings | None = None,
    *,
    header: Sequence[Any] | None = None,
    rng: random.Random | None = None,
    progress: ProgressCallback | None = None,
    audit: AuditLogger | None = None,
    run_id: str | None = None,
) -> RunOutput:
    """
    De-identify a parsed table.

    Args:
        rows: Parsed rows, keyed by raw column name
        settings: Run configuration (defaults when None)
        header: Declared header row of the source sheet, if known
        rng: Random source for pseudonyms and jitter
        progress: Receives a ProgressEvent before and after each stage
        audit: Audit logger for per-stage entries
        run_id: Identifier used in audit entries

    Raises:
        PipelineError: on any fatal condition; nothing is returned then
    """
    settings = settings or DeidSettings()
    rng = rng or random.Random()
    audit = audit or AuditLogger()
    run_id = run_id or str(uuid.uuid4())[:8]

    def notify(stage: str, message: str, data: Sequence[dict[str, Any]], columns: list[str]) -> None:
        if progress is not None:
            progress(ProgressEvent(stage=stage, message=message, rows=len(data), columns=len(columns)))

    if not rows:
        raise InputError("File is empty", stage="read")

    columns = discover_columns(rows, header)
    data = [dict(row) for row in rows]
    notify("read", f"File read: {len(data)} rows, {len(columns)} columns", data, columns)

    stages = build_stages(columns, settings, rng)
    stages.append((
        ColumnPruner(
            name="prune_columns",
            columns=stages[-1][0].output_columns(),
            remove=columns_to_remove(columns, settings),
        ),
        "Removing sensitive columns",
    ))

    lineage = LineageTracker()
    diagnostics = RunDiagnostics(input_records=len(data), output_records=0)

    for stage, message in stages:
        notify(stage.name, message, data, stage.columns)
        audit.log_start(run_id, stage.name, record_count=len(data), column_count=len(stage.columns))
        try:
            result = stage.transform(data)
        except PipelineError as e:
            e.stage = e.stage or stage.name
            audit.log_failure(run_id, stage.name, error=str(e), details={"category": e.category.value})
            raise

        data = result.data or []
        lineage.record(result, version=stage.version)
        audit.log_complete(
            run_id,
            stage.name,
            record_count=result.output_count,
            column_count=len(result.columns_out),
            duration_ms=result.duration_ms,
            output_hash=result.output_hash,
        )

        diagnostics.warnings.extend(result.warnings)
        if isinstance(stage, Pseudonymizer):
            diagnostics.patient_count = result.patient_count
        elif isinstance(stage, NumericJitter):
            diagnostics.modified_values = result.modified_count
        elif isinstance(stage, ValveAreaTransform):
            diagnostics.valve_areas_computed = result.modified_count
        elif isinstance(stage, ColumnPruner):
            diagnostics.removed_columns = result.removed_columns

        notify(stage.name, _summarize(stage, result), data, result.columns_out)

    diagnostics.output_records = len(data)
    diagnostics.lineage = lineage.records
    return RunOutput(rows=data, columns=lineage.records[-1].columns_out, diagnostics=diagnostics)


def _summarize(stage: BaseTransform, result) -> str:
    if isinstance(stage, (IndicatorFilter, ThresholdFilter, FrequencyFilter)):
        return f"Filtered to {result.output_count} rows ({result.patient_count} patients)"
    if isinstance(stage, NumericJitter):
        return f"Modified {result.modified_count} values"
    if isinstance(stage, ValveAreaTransform):
        return f"Computed {result.modified_count} valve areas"
    if isinstance(stage, ColumnPruner):
        return f"Removed {len(result.removed_columns)} columns"
    return f"{stage.name} done: {result.output_count} rows"


# =============================================================================
# FILE-LEVEL RUN
# =============================================================================


class PipelineConfig(BaseModel):
    """Configuration for a file-to-file run."""

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4())[:8])
    input_path: Path
    output_dir: Path | None = None
    audit_path: Path | None = None
    seed: int | None = None
    settings: DeidSettings = Field(default_factory=DeidSettings)


class PipelineResult(BaseModel):
    """Result of a file-to-file run."""

    run_id: str
    success: bool
    input_records: int = 0
    output_records: int = 0
    duration_ms: int = 0
    output_path: Path | None = None
    output_hash: str = ""
    diagnostics: RunDiagnostics | None = None
    error_category: str | None = None
    errors: list[str] = Field(default_factory=list)


def run_pipeline(config: PipelineConfig, progress: ProgressCallback | None = None) -> PipelineResult:
    """Read the input file, de-identify it and write `<basename>.csv`."""
    start_time = time.time()
    audit = AuditLogger(config.audit_path)
    rng = random.Random(config.seed)

    audit.log_start(config.run_id, "pipeline", details={"input": config.input_path.name})

    try:
        output_path = output_path_for(config.input_path, config.output_dir)
        sheet = read_table(config.input_path)
        audit.log_complete(
            config.run_id, "read",
            record_count=len(sheet.rows),
            column_count=len(sheet.header),
            details={"input_hash": compute_file_hash(config.input_path)},
        )

        output = run(
            sheet.rows,
            config.settings,
            header=sheet.header,
            rng=rng,
            progress=progress,
            audit=audit,
            run_id=config.run_id,
        )

        write_csv(output.rows, output_path, columns=output.columns)
        output_hash = compute_file_hash(output_path)
        duration_ms = int((time.time() - start_time) * 1000)
        audit.log_complete(
            config.run_id, "pipeline",
            record_count=len(output.rows),
            column_count=len(output.columns),
            duration_ms=duration_ms,
            output_hash=output_hash,
        )

        return PipelineResult(
            run_id=config.run_id,
            success=True,
            input_records=output.diagnostics.input_records,
            output_records=output.diagnostics.output_records,
            duration_ms=duration_ms,
            output_path=output_path,
            output_hash=output_hash,
            diagnostics=output.diagnostics,
        )

    except PipelineError as e:
        duration_ms = int((time.time() - start_time) * 1000)
        audit.log_failure(config.run_id, "pipeline", error=str(e), details={"stage": e.stage})
        return PipelineResult(
            run_id=config.run_id,
            success=False,
            duration_ms=duration_ms,
            error_category=e.category.value,
            errors=[str(e)],
        )

    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        audit.log_failure(config.run_id, "pipeline", error=str(e), details={"exception": type(e).__name__})
        return PipelineResult(
            run_id=config.run_id,
            success=False,
            duration_ms=duration_ms,
            error_category=ErrorCategory.UNEXPECTED.value,
            errors=[f"{type(e).__name__}: {e}"],
        )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="De-identify an echocardiography export")
    parser.add_argument("input", help="Input spreadsheet (.xlsx, .xls) or CSV file")
    parser.add_argument("--output-dir", "-o", help="Directory for the CSV (default: next to the input)")
    parser.add_argument("--settings", "-s", help="Settings JSON file")
    parser.add_argument("--audit", "-a", help="Audit log file (JSONL)")
    parser.add_argument("--seed", type=int, help="Seed for the random source (testing only)")

    args = parser.parse_args(argv)

    settings = DeidSettings.from_json_file(args.settings) if args.settings else DeidSettings()
    config = PipelineConfig(
        input_path=Path(args.input),
        output_dir=Path(args.output_dir) if args.output_dir else None,
        audit_path=Path(args.audit) if args.audit else None,
        seed=args.seed,
        settings=settings,
    )

    print(f"Starting run {config.run_id}...")
    result = run_pipeline(config, progress=lambda event: print(f"  {event.message}"))

    if result.success:
        removed = result.diagnostics.removed_columns if result.diagnostics else []
        print(
            f"✅ Success! Processed {result.output_records} rows, "
            f"removed {len(removed)} columns. Saved {result.output_path}"
        )
        return 0
    else:
        print(f"❌ Error: {'; '.join(result.errors)}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
