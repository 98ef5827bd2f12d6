"""Echo DeID - de-identification of echocardiography visit exports."""

__version__ = "0.1.0"

from .run import run, run_pipeline, PipelineConfig, PipelineResult, RunOutput
from .config import DeidSettings
from .errors import PipelineError
from .audit import AuditLogger, AuditEntry
from .lineage import LineageRecord, LineageTracker

__all__ = [
    "run",
    "run_pipeline",
    "PipelineConfig",
    "PipelineResult",
    "RunOutput",
    "DeidSettings",
    "PipelineError",
    "AuditLogger",
    "AuditEntry",
    "LineageRecord",
    "LineageTracker",
]
