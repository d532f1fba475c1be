from __future__ import annotations

import argparse
import json
import sys
import uuid
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config.loader import ConfigError, load_config, resolve_config_path
from ..excel.reader import format_file_size, normalize_sheet, read_sheet, read_workbook, validate_file_type
from ..logging.error_log import ErrorLogBuffer, records_from_result
from ..logging.init import log_summary, setup_logging
from ..models.config_models import PipelineConfig
from ..models.processing_result import ProcessingResult
from ..services.errors import PipelineError
from ..services.orchestrator import process_workbook
from ..services.progress import ProgressBar, TqdmProgressStore
from ..services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the YAML config
- Reject non-.xlsx inputs up front
- Run each workbook as one job (tqdm bar on a TTY)
- Log a SUMMARY line per workbook, write error records as JSON Lines

Exit codes: 0 all valid / 2 validation errors / 1 fatal fault or config error
"""

__all__ = [
    "EXIT_SUCCESS_ALL",
    "EXIT_VALIDATION_ERRORS",
    "EXIT_FATAL",
    "main",
]

EXIT_SUCCESS_ALL = 0
EXIT_VALIDATION_ERRORS = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env using python-dotenv (FIN_PIVOT_CONFIG etc.)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="fin-pivot",
        description="Validate financial workbooks and unpivot their month columns",
    )
    p.add_argument("files", nargs="+", type=Path, help="Workbook(s) to process (.xlsx)")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default: config/pipeline.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--job-id", default=None, help="Job id (single file only; generated when omitted)")
    return p.parse_args(argv)


def _json_safe(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def _inspect_data(files: list[Path], cfg: PipelineConfig) -> int:
    for f in files:
        print(f"FILE: {f.name} ({format_file_size(f.stat().st_size)})")
        try:
            xls = read_workbook(f)
        except PipelineError as e:
            print(f"  read_error: {e}")
            continue
        for sname in xls.sheet_names:
            sd = normalize_sheet(
                read_sheet(xls, str(sname)),
                str(sname),
                date_config=cfg.date,
                header_row=cfg.header_row,
                null_sentinels=cfg.null_sentinels,
            )
            print(f"  SHEET: {sname} cols={sd.columns}")
            sample = [{k: _json_safe(v) for k, v in r.items()} for r in sd.rows[:3]]
            print("    sample_rows=", json.dumps(sample, ensure_ascii=False, default=str))
    return EXIT_SUCCESS_ALL


def _run_file(path: Path, job_id: str, cfg: PipelineConfig) -> ProcessingResult:
    with ProgressBar(description=path.name) as bar:
        store = TqdmProgressStore(bar)
        return process_workbook(path, job_id, config=cfg, progress_store=store)


def main(argv: list[str] | None = None) -> int:
    # 空リスト [] の場合に sys.argv が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    config_path, required = resolve_config_path(args.config)
    try:
        cfg = load_config(config_path, required=required)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    rejected = [f for f in args.files if not validate_file_type(f)]
    if rejected:
        for f in rejected:
            logger.error(f"unsupported file type (only .xlsx is accepted): {f}")
        return EXIT_FATAL
    missing = [f for f in args.files if not f.exists()]
    if missing:
        for f in missing:
            logger.error(f"file not found: {f}")
        return EXIT_FATAL
    if args.job_id and len(args.files) > 1:
        logger.error("--job-id can only be used with a single file")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(args.files, cfg)

    error_log = ErrorLogBuffer()
    exit_code = EXIT_SUCCESS_ALL
    for path in args.files:
        job_id = args.job_id or str(uuid.uuid4())
        logger.info(f"processing {path.name} ({format_file_size(path.stat().st_size)}) job={job_id}")
        result = _run_file(path, job_id, cfg)

        if not result.success:
            logger.error(f"{path.name}: {result.error}")
            exit_code = EXIT_FATAL
        else:
            for warning in result.validation.warnings:
                logger.warning(f"{path.name}: {warning}")
            for error in result.validation.errors:
                logger.error(f"{path.name}: {error}")
            if not result.validation.is_valid and exit_code == EXIT_SUCCESS_ALL:
                exit_code = EXIT_VALIDATION_ERRORS

        error_log.extend(records_from_result(path.name, result))
        # log_summary が "SUMMARY " を付与するので先頭ラベルを除く
        log_summary(render_summary_line(path.name, result).removeprefix("SUMMARY "))

    written = error_log.flush()
    if written is not None:
        logger.info(f"error log written: {written}")
    return exit_code
