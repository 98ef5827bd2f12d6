"""
Audit Logging Module

Append-only audit trail for de-identification runs. Each stage writes a
"started" and a "completed" entry with row and column counts; a fatal
error writes a single "failed" entry. Entries never contain cell values.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class AuditStatus(str, Enum):
    """Lifecycle status of an audited operation."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class AuditEntry(BaseModel):
    """Immutable audit log entry."""

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_id: str
    stage: str
    status: AuditStatus
    record_count: int | None = None
    column_count: int | None = None
    duration_ms: int | None = None
    output_hash: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class AuditLogger:
    """
    Append-only JSON lines audit logger.

    With no path the entries are kept in memory only, which is what the
    core `run` uses when no audit file is configured.
    """

    def __init__(self, audit_path: str | Path | None = None):
        self.audit_path = Path(audit_path) if audit_path is not None else None
        self._entries: list[AuditEntry] = []
        if self.audit_path is not None:
            self.audit_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: AuditEntry) -> AuditEntry:
        """Append an audit entry."""
        self._entries.append(entry)
        if self.audit_path is not None:
            with open(self.audit_path, "a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        return entry

    def log_start(
        self,
        run_id: str,
        stage: str,
        record_count: int | None = None,
        column_count: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Log the start of a stage."""
        return self.log(AuditEntry(
            run_id=run_id,
            stage=stage,
            status=AuditStatus.STARTED,
            record_count=record_count,
            column_count=column_count,
            details=details or {},
        ))

    def log_complete(
        self,
        run_id: str,
        stage: str,
        record_count: int | None = None,
        column_count: int | None = None,
        duration_ms: int | None = None,
        output_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Log the successful completion of a stage."""
        return self.log(AuditEntry(
            run_id=run_id,
            stage=stage,
            status=AuditStatus.COMPLETED,
            record_count=record_count,
            column_count=column_count,
            duration_ms=duration_ms,
            output_hash=output_hash,
            details=details or {},
        ))

    def log_failure(
        self,
        run_id: str,
        stage: str,
        error: str,
        details: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """Log a fatal error."""
        return self.log(AuditEntry(
            run_id=run_id,
            stage=stage,
            status=AuditStatus.FAILED,
            details={"error": error, **(details or {})},
        ))

    @property
    def entries(self) -> list[AuditEntry]:
        """Entries written by this logger instance."""
        return list(self._entries)

    def read_all(self) -> list[AuditEntry]:
        """Read every entry from the audit file."""
        if self.audit_path is None or not self.audit_path.exists():
            return self.entries

        entries = []
        with open(self.audit_path, "r", encoding="utf-8") as f:
            for line in f:
                if line.strip():
                    entries.append(AuditEntry.model_validate_json(line))
        return entries


__all__ = ["AuditStatus", "AuditEntry", "AuditLogger"]
