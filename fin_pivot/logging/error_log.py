from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import FILE_LEVEL_SHEET, ErrorRecord
from ..models.financial_row import REQUIRED_SHEETS
from ..models.processing_result import ProcessingResult

"""Error log buffering.

- JSON Lines with a fixed key set (no extra keys)
- One file per run: ``logs/errors-YYYYMMDD-HHMMSS.log`` (UTC), created on
  first flush
- Records are buffered and written in one go per flush
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "records_from_result",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
VALIDATION_ERROR = "VALIDATION_ERROR"

_ROW_RE = re.compile(r"\bRow (\d+)\b")


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush appends JSON Lines.

    The file path is fixed on first access. Not thread-safe: the CLI
    processes files serially.
    """

    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def extend(self, records: list[ErrorRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records. Returns the file path, or None when nothing was written."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp


def _split_message(message: str) -> tuple[str, int, str]:
    """Extract (sheet, row, message) from a prefixed validation message."""
    sheet = FILE_LEVEL_SHEET
    head, sep, rest = message.partition(": ")
    if sep and head in REQUIRED_SHEETS:
        sheet, message = head, rest
    match = _ROW_RE.search(message)
    row = int(match.group(1)) if match else -1
    return sheet, row, message


def records_from_result(file_name: str, result: ProcessingResult) -> list[ErrorRecord]:
    """Error records for one processed workbook.

    A fatal fault yields a single file-level record; otherwise each
    validation error becomes a VALIDATION_ERROR record. Warnings are not logged.
    """
    if not result.success:
        return [
            ErrorRecord.create(
                file=file_name,
                sheet=FILE_LEVEL_SHEET,
                row=-1,
                error_type=result.error_type or "PROCESSING_ERROR",
                message=result.error or "",
            )
        ]
    records = []
    for message in result.validation.errors:
        sheet, row, text = _split_message(message)
        records.append(
            ErrorRecord.create(
                file=file_name,
                sheet=sheet,
                row=row,
                error_type=VALIDATION_ERROR,
                message=text,
            )
        )
    return records
