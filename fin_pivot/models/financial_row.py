from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np

"""Row-level domain models and the fixed business enumerations.

Raw rows travel through the pipeline as ``dict[str, Any]`` keyed by header
(the shape produced by ``fin_pivot.excel.reader.normalize_sheet``).
``FinancialRow`` is the typed view with a fixed prefix (cod, seg, file, sheet)
plus a mapping of canonical month label -> cell value.
"""

__all__ = [
    "REQUIRED_SHEETS",
    "REQUIRED_COLUMNS",
    "REQUIRED_SEGMENTS",
    "REQUIRED_FILES",
    "FIRST_DATA_ROW",
    "FinancialRow",
    "UnpivotedRecord",
    "is_finite_number",
    "data_row_numbers",
]

# 順序はプログレス補間に使うので変更しないこと
REQUIRED_SHEETS: tuple[str, ...] = (
    "RESULTADO",
    "CONTABIL",
    "FICTICIO",
    "SALDO_MEDIO",
    "SALDO_PONTA",
)

REQUIRED_COLUMNS: tuple[str, ...] = ("cod", "seg", "file")

REQUIRED_SEGMENTS: tuple[str, ...] = (
    "E1", "E2", "E3", "E4", "E5", "E6",
    "S1", "S2", "S3", "S4", "S5", "S6",
)

REQUIRED_FILES: tuple[str, ...] = (
    "Cards",
    "Loans",
    "Insurance",
    "Investments",
    "Savings",
    "Payments",
)

# ヘッダ = 1 行目のときの最初のデータ行
FIRST_DATA_ROW = 2


def is_finite_number(value: Any) -> bool:
    """True for int/float (Python or numpy) values that are not NaN/inf. Bools are rejected."""
    if isinstance(value, (bool, np.bool_)):
        return False
    if isinstance(value, (int, np.integer)):
        return True
    if isinstance(value, (float, np.floating)):
        return math.isfinite(float(value))
    return False


def data_row_numbers(count: int, row_numbers: Sequence[int] | None = None) -> list[int]:
    """Spreadsheet row numbers for ``count`` kept rows.

    Falls back to consecutive numbers starting at FIRST_DATA_ROW when the
    reader did not record the real positions.
    """
    if row_numbers is None:
        return list(range(FIRST_DATA_ROW, FIRST_DATA_ROW + count))
    if len(row_numbers) != count:
        raise ValueError(f"expected {count} row numbers, got {len(row_numbers)}")
    return list(row_numbers)


def _coerce_code(value: Any) -> Any:
    # pandas は NaN を含む列を float にするので 1.0 -> 1 へ戻す
    if isinstance(value, (float, np.floating)) and math.isfinite(float(value)) and float(value).is_integer():
        return int(value)
    if isinstance(value, np.integer):
        return int(value)
    return value


@dataclass(frozen=True)
class FinancialRow:
    """Typed view of one wide row from a required sheet."""
    cod: Any
    seg: Any
    file: Any
    sheet: str
    months: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any], month_columns: list[str]) -> FinancialRow:
        return cls(
            cod=_coerce_code(row.get("cod")),
            seg=row.get("seg"),
            file=row.get("file"),
            sheet=str(row.get("sheet", "")),
            months={m: row.get(m) for m in month_columns},
        )

    @property
    def business_key(self) -> str:
        return f"{self.cod}-{self.seg}"

    def numeric_months(self) -> dict[str, float]:
        """Month label -> value for cells holding a finite number."""
        return {m: float(v) for m, v in self.months.items() if is_finite_number(v)}


@dataclass(frozen=True)
class UnpivotedRecord:
    """One narrow record: a single (entity, month) measurement."""
    cod: Any
    seg: Any
    file: Any
    sheet: str
    month: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
