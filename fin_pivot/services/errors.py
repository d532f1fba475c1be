from __future__ import annotations

"""Structural (fatal) pipeline faults.

Each subclass carries an UPPER_SNAKE ``error_type`` used by the error log.
Content problems (bad cells, duplicates, ...) are never raised; they are
accumulated in ValidationResult instead.
"""

__all__ = [
    "PipelineError",
    "WorkbookReadError",
    "MissingSheetsError",
    "MissingWorksheetError",
    "NoMonthColumnsError",
    "PipelineCancelled",
]


class PipelineError(Exception):
    """Base exception for faults that abort a job."""
    error_type = "PROCESSING_ERROR"


class WorkbookReadError(PipelineError):
    """Raised when the container cannot be opened as an .xlsx workbook."""
    error_type = "WORKBOOK_READ_ERROR"


class MissingSheetsError(PipelineError):
    """Raised when required sheets are absent from the workbook."""
    error_type = "MISSING_SHEETS"

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"required sheets not found: {', '.join(self.missing)}")


class MissingWorksheetError(PipelineError):
    """Raised when a listed sheet cannot be loaded."""
    error_type = "MISSING_WORKSHEET"


class NoMonthColumnsError(PipelineError):
    """Raised when no month column is detected in the first processed sheet."""
    error_type = "NO_MONTH_COLUMNS"


class PipelineCancelled(PipelineError):
    """Raised at a cancellation checkpoint once the job's cancel event is set."""
    error_type = "CANCELLED"
