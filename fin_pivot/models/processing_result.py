from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .financial_row import UnpivotedRecord
from .validation_result import ValidationResult

"""Processing progress and result models.

Stage transitions: reading → parsing → validating_structure → validating_data →
validating_business → cross_validating → transforming → (complete | error)

Only ``error`` may be entered from any stage; ``complete`` and ``error`` are terminal.
"""

__all__ = [
    "Stage",
    "ProcessingProgress",
    "ProcessingResult",
]


class Stage(Enum):
    """Closed set of pipeline stages (declaration order == pipeline order)."""
    READING = "reading"
    PARSING = "parsing"
    VALIDATING_STRUCTURE = "validating_structure"
    VALIDATING_DATA = "validating_data"
    VALIDATING_BUSINESS = "validating_business"
    CROSS_VALIDATING = "cross_validating"
    TRANSFORMING = "transforming"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)


@dataclass(frozen=True)
class ProcessingProgress:
    """One progress snapshot. Snapshots overwrite each other per job id."""
    stage: Stage
    progress: int  # 0-100
    message: str
    sheet_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stage": self.stage.value,
            "progress": self.progress,
            "message": self.message,
        }
        if self.sheet_name is not None:
            data["sheetName"] = self.sheet_name
        return data


@dataclass(frozen=True)
class ProcessingResult:
    """Terminal value of a pipeline run.

    ``success`` is False only for structural faults; content problems are
    reported through ``validation`` with ``success`` still True.
    """
    success: bool
    raw_data: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    unpivoted_data: list[UnpivotedRecord] = field(default_factory=list)
    validation: ValidationResult = field(default_factory=ValidationResult)
    month_columns: list[str] = field(default_factory=list)
    error: str | None = None
    error_type: str | None = None  # UPPER_SNAKE (fatal のみ)

    @classmethod
    def failed(cls, message: str, error_type: str) -> ProcessingResult:
        return cls(
            success=False,
            raw_data={},
            unpivoted_data=[],
            validation=ValidationResult.failure(message),
            month_columns=[],
            error=message,
            error_type=error_type,
        )

    @property
    def total_rows(self) -> int:
        return sum(len(rows) for rows in self.raw_data.values())

