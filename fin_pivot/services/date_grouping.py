from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from ..models.config_models import DateConfig, default_date_config
from ..models.financial_row import is_finite_number
from .month_columns import format_month_label, parse_month_label

"""Calendar helpers over month column labels.

Chronological sorting, grouping into month / quarter / semester / year
periods, and the period arithmetic (period change, YTD, YoY) the reporting
side computes on top of wide rows.
"""

__all__ = [
    "GroupingPeriod",
    "FinancialPeriod",
    "get_sorted_months",
    "group_months_by_period",
    "calculate_period_change",
    "calculate_ytd",
    "calculate_yoy",
    "get_previous_period",
]


class GroupingPeriod(Enum):
    MONTH = "month"
    QUARTER = "quarter"
    SEMESTER = "semester"
    YEAR = "year"


@dataclass
class FinancialPeriod:
    id: str
    label: str
    order: int
    months: list[str] = field(default_factory=list)


def _parsed_months(month_columns: list[str], config: DateConfig | None) -> list[tuple[str, date]]:
    parsed = [(m, parse_month_label(m, config)) for m in month_columns]
    return sorted(((m, d) for m, d in parsed if d is not None), key=lambda item: item[1])


def get_sorted_months(month_columns: list[str], config: DateConfig | None = None) -> list[str]:
    """Month labels in calendar order. Labels that do not parse are dropped."""
    return [m for m, _ in _parsed_months(month_columns, config)]


def _period_key(d: date, period: GroupingPeriod) -> tuple[str, str, int]:
    if period is GroupingPeriod.MONTH:
        return f"{d.year}-{d.month - 1:02d}", format_month_label(d), d.year * 12 + d.month - 1
    if period is GroupingPeriod.QUARTER:
        quarter = (d.month - 1) // 3 + 1
        return f"{d.year}-Q{quarter}", f"Q{quarter} {d.year}", d.year * 4 + quarter - 1
    if period is GroupingPeriod.SEMESTER:
        semester = (d.month - 1) // 6 + 1
        return f"{d.year}-S{semester}", f"{semester}º Sem {d.year}", d.year * 2 + semester - 1
    return str(d.year), str(d.year), d.year


def group_months_by_period(
    month_columns: list[str],
    period: GroupingPeriod | str,
    config: DateConfig | None = None,
) -> list[FinancialPeriod]:
    """Group month labels into periods, both periods and their months in calendar order.

    Raises:
        ValueError: If ``period`` is not a known GroupingPeriod value
    """
    period = GroupingPeriod(period)
    groups: dict[str, FinancialPeriod] = {}
    for original, d in _parsed_months(month_columns, config):
        group_id, label, order = _period_key(d, period)
        group = groups.setdefault(group_id, FinancialPeriod(id=group_id, label=label, order=order))
        group.months.append(original)
    return sorted(groups.values(), key=lambda g: g.order)


def calculate_period_change(current: Any, previous: Any) -> float | None:
    """Percentage change from ``previous`` to ``current``.

    None when either side is not a number, or previous is 0 and current is not.
    """
    if not is_finite_number(current) or not is_finite_number(previous):
        return None
    if previous == 0:
        return 0.0 if current == 0 else None
    return (float(current) - float(previous)) / abs(float(previous)) * 100


def calculate_ytd(
    row: dict[str, Any],
    month_columns: list[str],
    target_month: str,
    config: DateConfig | None = None,
) -> float | None:
    """Sum of the row's values from January up to ``target_month`` (same year)."""
    target = parse_month_label(target_month, config)
    if target is None:
        return None
    total = 0.0
    has_value = False
    for month in month_columns:
        d = parse_month_label(month, config)
        if d is None or d.year != target.year or d > target:
            continue
        value = row.get(month)
        if is_finite_number(value):
            total += float(value)
            has_value = True
    return total if has_value else None


def calculate_yoy(
    row: dict[str, Any],
    target_month: str,
    config: DateConfig | None = None,
) -> float | None:
    """Year-over-year change for ``target_month``. Both years must be allowed by ``config``."""
    cfg = config or default_date_config()
    target = parse_month_label(target_month, cfg)
    if target is None or not cfg.allows(target.year - 1):
        return None
    previous_label = format_month_label(date(target.year - 1, target.month, 1))
    return calculate_period_change(row.get(target_month), row.get(previous_label))


def get_previous_period(
    month: str, period: GroupingPeriod | str, config: DateConfig | None = None
) -> str | None:
    """Label of the month one period before ``month``."""
    period = GroupingPeriod(period)
    d = parse_month_label(month, config)
    if d is None:
        return None
    step = {
        GroupingPeriod.MONTH: 1,
        GroupingPeriod.QUARTER: 3,
        GroupingPeriod.SEMESTER: 6,
        GroupingPeriod.YEAR: 12,
    }[period]
    index = d.year * 12 + (d.month - 1) - step
    return format_month_label(date(index // 12, index % 12 + 1, 1))
