from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import pandas as pd

from ..models.config_models import DateConfig
from ..models.financial_row import FinancialRow, UnpivotedRecord, is_finite_number
from .month_columns import normalize_month_column

"""Wide -> narrow transform.

One UnpivotedRecord per (row, month) whose cell holds a finite number. Output
order is sheet order, then row order, then month column order; nothing is sorted.
"""

__all__ = [
    "UNPIVOTED_COLUMNS",
    "unpivot",
    "unpivoted_frame",
]

logger = logging.getLogger(__name__)

UNPIVOTED_COLUMNS = ["cod", "seg", "file", "sheet", "month", "value"]


def unpivot(
    sheets_data: Mapping[str, list[dict[str, Any]]],
    month_columns: list[str],
    date_config: DateConfig | None = None,
) -> list[UnpivotedRecord]:
    """Unpivot every sheet's wide rows.

    Args:
        sheets_data: Sheet name -> tagged rows (insertion order is kept)
        month_columns: Canonical month labels detected for the job
        date_config: Allowed years used to re-normalize labels

    Returns:
        Flat list of records
    """
    labels: dict[str, str] = {}
    for month in month_columns:
        normalized = normalize_month_column(month, date_config)
        if normalized is None:
            # month_columns 由来なので通常は起きない
            logger.debug("unpivot: skipping month column %r (does not normalize)", month)
            continue
        labels[month] = normalized

    records: list[UnpivotedRecord] = []
    for sheet_name, rows in sheets_data.items():
        for row in rows:
            fin_row = FinancialRow.from_row(row, month_columns)
            for month, value in fin_row.months.items():
                if month not in labels or not is_finite_number(value):
                    continue
                records.append(
                    UnpivotedRecord(
                        cod=fin_row.cod,
                        seg=fin_row.seg,
                        file=fin_row.file,
                        sheet=sheet_name,
                        month=labels[month],
                        value=float(value),
                    )
                )
    return records


def unpivoted_frame(records: list[UnpivotedRecord]) -> pd.DataFrame:
    """Records as a DataFrame with UNPIVOTED_COLUMNS (empty frame keeps the columns)."""
    return pd.DataFrame([r.to_dict() for r in records], columns=UNPIVOTED_COLUMNS)
