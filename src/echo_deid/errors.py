"""
Error Taxonomy

Every error raised by the pipeline is fatal to the run. Per-cell issues
(a non-numeric value in a jitter column, a blank derived-field input)
are tolerated inside the stages and never surface here.

ERROR CATEGORIES:
1. Input errors - the source table is unusable before any stage runs
2. Missing-column errors - a required column cannot be resolved
3. Empty-cohort errors - a filter left no qualifying patients
4. Malformed-value errors - a date cell cannot be parsed
5. Unexpected errors - anything else a file run catches and reports
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Category of a fatal pipeline error."""

    INPUT = "input"
    MISSING_COLUMN = "missing_column"
    EMPTY_COHORT = "empty_cohort"
    MALFORMED_VALUE = "malformed_value"
    UNEXPECTED = "unexpected"


class PipelineError(Exception):
    """Base class for all fatal pipeline errors."""

    category: ErrorCategory = ErrorCategory.INPUT

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class InputError(PipelineError):
    """The source table or file cannot be processed at all."""

    category = ErrorCategory.INPUT


class MissingColumnError(PipelineError):
    """A required column is not present under any accepted spelling."""

    category = ErrorCategory.MISSING_COLUMN

    def __init__(self, column: str, purpose: str | None = None, stage: str | None = None):
        message = f"{column} column not found"
        if purpose:
            message += f" (needed for {purpose})"
        super().__init__(message, stage=stage)
        self.column = column


class EmptyCohortError(PipelineError):
    """A cohort filter left no qualifying patients."""

    category = ErrorCategory.EMPTY_COHORT

    def __init__(self, message: str, samples: list[Any] | None = None, stage: str | None = None):
        self.samples = list(samples or [])
        if self.samples:
            message += ". Found these values: " + ", ".join(str(s) for s in self.samples)
        super().__init__(message, stage=stage)


class MalformedValueError(PipelineError):
    """A cell value cannot be interpreted in any accepted format."""

    category = ErrorCategory.MALFORMED_VALUE

    def __init__(self, value: Any, cleaned: str | None = None, stage: str | None = None):
        if value is None or (isinstance(value, str) and not value.strip()):
            message = f"Missing date value: {value!r}"
        else:
            message = f"Unrecognized date value: {value!r}"
        if cleaned is not None and cleaned != str(value):
            message += f" (digits: {cleaned!r})"
        super().__init__(message, stage=stage)
        self.value = value
        self.cleaned = cleaned


__all__ = [
    "ErrorCategory",
    "PipelineError",
    "InputError",
    "MissingColumnError",
    "EmptyCohortError",
    "MalformedValueError",
]
