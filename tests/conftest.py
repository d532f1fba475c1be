# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from fin_pivot.logging.init import reset_logging
from fin_pivot.models import (
    REQUIRED_FILES,
    REQUIRED_SEGMENTS,
    REQUIRED_SHEETS,
    PipelineConfig,
    create_date_config,
)

MONTHS_2025 = [
    "Jan/25", "Fev/25", "Mar/25", "Abr/25", "Mai/25", "Jun/25",
    "Jul/25", "Ago/25", "Set/25", "Out/25", "Nov/25", "Dez/25",
]

SheetSpec = dict[str, list[dict[str, Any]] | pd.DataFrame]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("FIN_PIVOT_CONFIG", raising=False)
        yield p


@pytest.fixture(autouse=True)
def _reset_app_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def date_config():
    return create_date_config(2025)


@pytest.fixture()
def pipeline_config(date_config) -> PipelineConfig:
    return PipelineConfig(date=date_config)


def make_rows(sheet_rows: int = 10, months: list[str] | None = None) -> list[dict[str, Any]]:
    """Valid wide rows: unique (cod, seg), stable month values."""
    months = months or MONTHS_2025
    rows = []
    for i in range(sheet_rows):
        row: dict[str, Any] = {
            "cod": i + 1,
            "seg": REQUIRED_SEGMENTS[i % len(REQUIRED_SEGMENTS)],
            "file": REQUIRED_FILES[i % len(REQUIRED_FILES)],
        }
        for j, month in enumerate(months):
            row[month] = 1000.0 + 10 * i + j
        rows.append(row)
    return rows


def build_workbook(sheets: SheetSpec) -> bytes:
    """Write real .xlsx bytes (openpyxl engine). Empty row lists give header-less sheets."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, content in sheets.items():
            df = content if isinstance(content, pd.DataFrame) else pd.DataFrame(content)
            df.to_excel(writer, sheet_name=name, index=False)
    return buffer.getvalue()


def build_raw_workbook(sheets: dict[str, list[list[Any]]]) -> bytes:
    """Write cell grids as-is (no generated header). A row of None is a blank spreadsheet row."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, grid in sheets.items():
            pd.DataFrame(grid).to_excel(writer, sheet_name=name, index=False, header=False)
    return buffer.getvalue()


@pytest.fixture()
def workbook_builder() -> Callable[[SheetSpec], bytes]:
    return build_workbook


@pytest.fixture()
def raw_workbook_builder() -> Callable[[dict[str, list[list[Any]]]], bytes]:
    return build_raw_workbook


@pytest.fixture()
def valid_sheets() -> dict[str, list[dict[str, Any]]]:
    return {name: make_rows() for name in REQUIRED_SHEETS}


@pytest.fixture()
def valid_workbook(valid_sheets) -> bytes:
    return build_workbook(valid_sheets)


@pytest.fixture()
def rows_factory() -> Callable[..., list[dict[str, Any]]]:
    return make_rows


@pytest.fixture()
def months_2025() -> list[str]:
    return list(MONTHS_2025)
