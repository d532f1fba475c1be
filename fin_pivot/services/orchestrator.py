from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

import pandas as pd

from ..excel.reader import normalize_sheet, read_sheet, read_workbook
from ..models.config_models import PipelineConfig
from ..models.financial_row import REQUIRED_COLUMNS, REQUIRED_SHEETS
from ..models.processing_result import ProcessingProgress, ProcessingResult, Stage
from ..models.validation_result import ValidationResult
from .business_rules import validate_business_rules, validate_cross_sheet
from .errors import MissingSheetsError, NoMonthColumnsError, PipelineCancelled, PipelineError
from .month_columns import detect_month_columns
from .progress import InMemoryProgressStore, ProgressStore
from .schema_validation import validate_data_types, validate_required_columns
from .unpivot import unpivot

"""Pipeline orchestration for one workbook (one job).

Stages run strictly in order:
reading → parsing → validating_structure → validating_data →
validating_business → cross_validating → transforming → complete

Any structural fault jumps to ``error`` (terminal) and the job returns
success=False with empty collections. Content problems never abort: they are
merged into the job's ValidationResult, prefixed with the sheet name.

Progress schedule (clamped so it never decreases):
reading 10, parsing 20, per sheet i parsing 25+9i / structure 29+9i,
data 70+2i, business 80+i, cross 85, transforming 90, complete 100, error 0.
"""

__all__ = [
    "process_workbook",
]

logger = logging.getLogger(__name__)

_SHEET_BASE = 25
_SHEET_STEP = 9


class _ProgressEmitter:
    """Writes monotonic snapshots for one job; nothing is written after a terminal stage."""

    def __init__(self, job_id: str, store: ProgressStore) -> None:
        self.job_id = job_id
        self.store = store
        self.last = 0
        self.finished = False

    def emit(self, stage: Stage, progress: int, message: str, sheet_name: str | None = None) -> None:
        if self.finished:
            return
        if stage is Stage.ERROR:
            value = 0
        elif stage is Stage.COMPLETE:
            value = 100
        else:
            value = max(self.last, min(progress, 99))
            self.last = value
        logger.debug("job=%s stage=%s progress=%d %s", self.job_id, stage.value, value, message)
        self.store.set_progress(
            self.job_id,
            ProcessingProgress(stage=stage, progress=value, message=message, sheet_name=sheet_name),
        )
        if stage.is_terminal:
            self.finished = True


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PipelineCancelled("processing cancelled")


def process_workbook(
    source: bytes | Path,
    job_id: str,
    *,
    config: PipelineConfig | None = None,
    progress_store: ProgressStore | None = None,
    cancel_event: threading.Event | None = None,
) -> ProcessingResult:
    """Run the whole pipeline over one workbook.

    Args:
        source: Raw .xlsx bytes (or a path to the file)
        job_id: Caller-generated id, used only to key progress snapshots
        config: Pipeline settings (defaults when omitted)
        progress_store: Sink for progress snapshots and the final result
        cancel_event: Checked between per-sheet steps; when set the job ends in ``error``

    Returns:
        ProcessingResult; success=False only for structural faults

    Raises:
        ValueError: If the store still holds a result for ``job_id`` (evict it first)
    """
    cfg = config or PipelineConfig()
    store = progress_store if progress_store is not None else InMemoryProgressStore()
    if store.get_result(job_id) is not None:
        raise ValueError(f"job {job_id} already has a result; evict it before reusing the id")
    emitter = _ProgressEmitter(job_id, store)

    try:
        result = _run(source, cfg, emitter, cancel_event)
    except PipelineError as e:
        logger.error("job=%s %s: %s", job_id, e.error_type, e)
        emitter.emit(Stage.ERROR, 0, str(e))
        result = ProcessingResult.failed(str(e), e.error_type)
    except Exception as e:
        # 想定外の例外も error ステージで終端させる (進捗が途中で止まらないように)
        logger.exception("job=%s unexpected error", job_id)
        message = str(e) or e.__class__.__name__
        emitter.emit(Stage.ERROR, 0, message)
        result = ProcessingResult.failed(message, "UNEXPECTED_ERROR")

    store.set_result(job_id, result)
    return result


def _run(
    source: bytes | Path,
    cfg: PipelineConfig,
    emitter: _ProgressEmitter,
    cancel_event: threading.Event | None,
) -> ProcessingResult:
    emitter.emit(Stage.READING, 10, "reading Excel file...")
    xls = read_workbook(source)
    _check_cancelled(cancel_event)

    emitter.emit(Stage.PARSING, 20, "analyzing sheets...")
    available = {str(name) for name in xls.sheet_names}
    missing = [s for s in REQUIRED_SHEETS if s not in available]
    if missing:
        raise MissingSheetsError(missing)

    all_sheets, row_numbers, month_columns, total = _ingest_sheets(xls, cfg, emitter, cancel_event)

    emitter.emit(Stage.VALIDATING_DATA, 70, "validating data types...")
    for i, (sheet_name, rows) in enumerate(all_sheets.items()):
        _check_cancelled(cancel_event)
        emitter.emit(Stage.VALIDATING_DATA, 70 + 2 * i, f"validating data types of {sheet_name}...", sheet_name)
        types = validate_data_types(rows, month_columns, row_numbers[sheet_name])
        total = total.merge(types.prefixed(sheet_name))

    emitter.emit(Stage.VALIDATING_BUSINESS, 80, "validating business rules...")
    for i, (sheet_name, rows) in enumerate(all_sheets.items()):
        _check_cancelled(cancel_event)
        emitter.emit(Stage.VALIDATING_BUSINESS, 80 + i, f"validating business rules of {sheet_name}...", sheet_name)
        business = validate_business_rules(
            rows, month_columns, cfg.business_rules, cfg.date, row_numbers[sheet_name]
        )
        total = total.merge(business.prefixed(sheet_name))

    _check_cancelled(cancel_event)
    emitter.emit(Stage.CROSS_VALIDATING, 85, "validating consistency between sheets...")
    if cfg.cross_sheet_check:
        total = total.merge(validate_cross_sheet(all_sheets))

    _check_cancelled(cancel_event)
    emitter.emit(Stage.TRANSFORMING, 90, "transforming data...")
    records = unpivot(all_sheets, month_columns, cfg.date)

    emitter.emit(Stage.COMPLETE, 100, f"processing complete! {len(records)} records processed.")
    logger.debug(
        "job=%s sheets=%d records=%d valid=%s errors=%d warnings=%d",
        emitter.job_id,
        len(all_sheets),
        len(records),
        total.is_valid,
        len(total.errors),
        len(total.warnings),
    )
    return ProcessingResult(
        success=True,
        raw_data=all_sheets,
        unpivoted_data=records,
        validation=total,
        month_columns=month_columns,
    )


def _ingest_sheets(
    xls: pd.ExcelFile,
    cfg: PipelineConfig,
    emitter: _ProgressEmitter,
    cancel_event: threading.Event | None,
) -> tuple[dict[str, list[dict[str, Any]]], dict[str, list[int]], list[str], ValidationResult]:
    """Read every required sheet in canonical order and run the structural checks.

    Month columns are detected once, on the first non-empty sheet, and reused
    for all sheets. Structural errors degrade validity but never stop the scan.
    Spreadsheet row numbers of the kept rows are returned per sheet.
    """
    total = ValidationResult()
    all_sheets: dict[str, list[dict[str, Any]]] = {}
    row_numbers: dict[str, list[int]] = {}
    month_columns: list[str] | None = None

    for i, sheet_name in enumerate(REQUIRED_SHEETS):
        _check_cancelled(cancel_event)
        base = _SHEET_BASE + i * _SHEET_STEP
        emitter.emit(Stage.PARSING, base, f"processing sheet {sheet_name}...", sheet_name)

        sheet = normalize_sheet(
            read_sheet(xls, sheet_name),
            sheet_name,
            date_config=cfg.date,
            header_row=cfg.header_row,
            null_sentinels=cfg.null_sentinels,
        )
        if not sheet.rows:
            logger.warning("sheet=%s is empty", sheet_name)
            total = total.with_warning(f"{sheet_name}: sheet is empty")
            continue

        if month_columns is None:
            month_columns = detect_month_columns(sheet.rows[0], cfg.date)
            if not month_columns:
                raise NoMonthColumnsError("no month column found in the expected format")
            logger.debug("sheet=%s month_columns=%s", sheet_name, month_columns)

        emitter.emit(
            Stage.VALIDATING_STRUCTURE,
            base + 4,
            f"validating structure of sheet {sheet_name}...",
            sheet_name,
        )
        structure = validate_required_columns(
            sheet.rows, [*REQUIRED_COLUMNS, *month_columns], cfg.date
        )
        total = total.merge(structure.prefixed(sheet_name))

        all_sheets[sheet_name] = [{**row, "sheet": sheet_name} for row in sheet.rows]
        row_numbers[sheet_name] = sheet.row_numbers

    if month_columns is None:
        raise NoMonthColumnsError("no month column found: every required sheet is empty")
    return all_sheets, row_numbers, month_columns, total
