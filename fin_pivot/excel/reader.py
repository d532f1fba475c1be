from __future__ import annotations

import io
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.config_models import DateConfig
from ..services.errors import MissingWorksheetError, WorkbookReadError
from ..services.month_columns import normalize_month_column

"""Workbook reader.

The first row (configurable via header_row) is the header; rows below it are
data. Header cells that denote a month are renamed to their canonical label,
so two spellings of the same month collapse into one key (last write wins).

pandas + openpyxl で読み込み、値は Python ネイティブ型に変換して返す。
"""

__all__ = [
    "ACCEPTED_SUFFIXES",
    "SheetData",
    "validate_file_type",
    "format_file_size",
    "read_workbook",
    "read_sheet",
    "normalize_sheet",
]

ACCEPTED_SUFFIXES = (".xlsx",)


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # 正規化済 (列名→値)
    row_numbers: list[int] = field(default_factory=list)  # rows と同じ長さ, 1 始まりのシート行番号


def validate_file_type(file_name: str | Path) -> bool:
    """True if the name carries an accepted spreadsheet extension."""
    return str(file_name).lower().endswith(ACCEPTED_SUFFIXES)


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / 1024**exponent, 2)
    return f"{value:g} {units[exponent]}"


def read_workbook(source: bytes | Path) -> pd.ExcelFile:
    """Open an .xlsx workbook from raw bytes or a path.

    Raises:
        WorkbookReadError: If the container cannot be parsed
    """
    target: Any = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
    try:
        return pd.ExcelFile(target, engine="openpyxl")
    except Exception as e:  # zipfile.BadZipFile / InvalidFileException / OSError ...
        raise WorkbookReadError(f"unable to read workbook: {e}") from e


def read_sheet(xls: pd.ExcelFile, sheet_name: str) -> pd.DataFrame:
    """Raw DataFrame of one sheet, no header applied.

    pandas default NA strings ("NA", "N/A", "NULL", ...) are kept as text;
    only truly empty cells become NaN. Sentinels are mapped in normalize_sheet.

    Raises:
        MissingWorksheetError: If the sheet cannot be loaded
    """
    if sheet_name not in [str(n) for n in xls.sheet_names]:
        raise MissingWorksheetError(f"sheet {sheet_name} not found")
    try:
        return xls.parse(sheet_name, header=None, keep_default_na=False)
    except (KeyError, ValueError) as e:
        raise MissingWorksheetError(f"sheet {sheet_name} could not be loaded: {e}") from e


def _header_text(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if isinstance(value, (datetime, date)):
        # Excel の日付セルのヘッダは ISO 日付として扱う
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    text = str(value).strip()
    return text or None


def _cell_value(value: Any, null_sentinels: set[str] | None) -> Any:
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        if stripped == "":
            return None
        if null_sentinels and stripped.upper() in null_sentinels:
            return None
    return value


def normalize_sheet(
    df: pd.DataFrame,
    sheet_name: str,
    date_config: DateConfig | None = None,
    header_row: int = 0,
    null_sentinels: set[str] | None = None,
) -> SheetData:
    """Turn a raw DataFrame into row dicts keyed by header.

    Steps:
    1. Take the header from ``header_row`` (rows above it are ignored)
    2. Canonicalize month headers; drop columns with a blank header
    3. Skip data rows where every cell is empty
    4. Map NaN / blank strings / null sentinels to None
    5. Record the 1-based spreadsheet row number of every kept row
        (positional: ``df`` row i is spreadsheet row i + 1)

    A sheet without a header row yields no columns and no rows.
    """
    if df.shape[0] <= header_row:
        return SheetData(sheet_name=sheet_name, columns=[], rows=[])

    headers: list[str | None] = []
    for raw in df.iloc[header_row].tolist():
        text = _header_text(raw)
        if text is not None:
            text = normalize_month_column(text, date_config) or text
        headers.append(text)
    columns = list(dict.fromkeys(h for h in headers if h is not None))

    rows: list[dict[str, Any]] = []
    row_numbers: list[int] = []
    for offset, (_, raw) in enumerate(df.iloc[header_row + 1:].iterrows()):
        if raw.isna().all():
            continue
        row_dict: dict[str, Any] = {}
        for col, val in zip(headers, raw.tolist(), strict=False):
            if col is None:
                continue
            row_dict[col] = _cell_value(val, null_sentinels)
        if all(v is None for v in row_dict.values()):
            continue
        rows.append(row_dict)
        row_numbers.append(header_row + 2 + offset)

    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows, row_numbers=row_numbers)
