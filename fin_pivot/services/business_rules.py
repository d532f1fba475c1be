from __future__ import annotations

import logging
import statistics
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.config_models import BusinessRulesConfig, DateConfig
from ..models.financial_row import FinancialRow, data_row_numbers, is_finite_number
from ..models.validation_result import ValidationResult
from .date_grouping import get_sorted_months

"""Business rule validation for one sheet.

Two independent passes whose results are merged:
- monthly variation: statistical sanity of each row's month values (warnings only)
- uniqueness: (cod, seg) must not repeat within the sheet (errors)

validate_cross_sheet compares (cod, seg) coverage between sheets (warnings only).
"""

__all__ = [
    "DEFAULT_BUSINESS_RULES",
    "validate_monthly_variation",
    "validate_uniqueness",
    "validate_business_rules",
    "validate_cross_sheet",
]

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_RULES = BusinessRulesConfig()


def _ordered_months(
    month_columns: list[str], config: BusinessRulesConfig, date_config: DateConfig | None
) -> list[str]:
    if not config.chronological_order:
        return list(month_columns)
    ordered = get_sorted_months(month_columns, date_config)
    # パースできないラベルは元の順序のまま末尾へ
    ordered.extend(m for m in month_columns if m not in ordered)
    return ordered


def validate_monthly_variation(
    rows: list[dict[str, Any]],
    month_columns: list[str],
    config: BusinessRulesConfig = DEFAULT_BUSINESS_RULES,
    date_config: DateConfig | None = None,
    row_numbers: Sequence[int] | None = None,
) -> ValidationResult:
    """Warn about extreme spread, abrupt consecutive changes and mostly-zero rows.

    Only finite numeric cells take part; missing and non-numeric cells are skipped.
    Never produces errors. ``row_numbers`` are the spreadsheet rows of ``rows``
    (default: consecutive from row 2).
    """
    warnings: list[str] = []
    months = _ordered_months(month_columns, config, date_config)
    threshold = config.max_monthly_variation

    for row_num, row in zip(data_row_numbers(len(rows), row_numbers), rows):
        values = [float(row[m]) for m in months if is_finite_number(row.get(m))]

        if len(values) > 1:
            average = statistics.fmean(values)
            if average != 0:
                spread = abs((max(values) - min(values)) / average)
                if spread > threshold:
                    warnings.append(
                        f"Row {row_num}: extreme variation across months ({spread * 100:.1f}%)"
                    )
            for prev, curr in zip(values, values[1:]):
                if prev == 0:
                    continue
                change = abs((curr - prev) / prev)
                if change > threshold:
                    warnings.append(
                        f"Row {row_num}: abrupt variation between consecutive months ({change * 100:.1f}%)"
                    )

        non_zero = sum(1 for v in values if v != 0)
        if non_zero < config.minimum_non_zero_months:
            warnings.append(f"Row {row_num}: too few months with non-zero values ({non_zero})")

    return ValidationResult.from_messages([], warnings)


def validate_uniqueness(
    rows: list[dict[str, Any]],
    config: BusinessRulesConfig = DEFAULT_BUSINESS_RULES,
    row_numbers: Sequence[int] | None = None,
) -> ValidationResult:
    """Report every repeated ``cod-seg`` combination against its first occurrence."""
    errors: list[str] = []
    if config.allow_duplicate_cod_seg:
        return ValidationResult.from_messages(errors, [])

    first_seen: dict[str, int] = {}
    for row_num, row in zip(data_row_numbers(len(rows), row_numbers), rows):
        combo = FinancialRow.from_row(row, []).business_key
        first = first_seen.get(combo)
        if first is None:
            first_seen[combo] = row_num
            continue
        errors.append(
            f"Row {row_num}: duplicate cod+seg combination {combo} "
            f"(first occurrence at row {first})"
        )
    if errors:
        logger.debug("uniqueness: %d duplicate cod+seg rows", len(errors))
    return ValidationResult.from_messages(errors, [])


def validate_business_rules(
    rows: list[dict[str, Any]],
    month_columns: list[str],
    config: BusinessRulesConfig = DEFAULT_BUSINESS_RULES,
    date_config: DateConfig | None = None,
    row_numbers: Sequence[int] | None = None,
) -> ValidationResult:
    """Both passes, variation first; valid only if both are valid."""
    return validate_monthly_variation(rows, month_columns, config, date_config, row_numbers).merge(
        validate_uniqueness(rows, config, row_numbers)
    )


def validate_cross_sheet(sheets_data: Mapping[str, list[dict[str, Any]]]) -> ValidationResult:
    """Compare each sheet's cod+seg combinations with the first sheet's.

    Mismatches are warnings only; this check never invalidates a job.
    """
    warnings: list[str] = []
    names = list(sheets_data)
    if len(names) < 2:
        return ValidationResult.from_messages([], warnings)

    def _combos(rows: list[dict[str, Any]]) -> list[str]:
        return list(dict.fromkeys(FinancialRow.from_row(r, []).business_key for r in rows))

    base_name = names[0]
    base = _combos(sheets_data[base_name])
    base_set = set(base)
    for name in names[1:]:
        other = _combos(sheets_data[name])
        other_set = set(other)
        for combo in base:
            if combo not in other_set:
                warnings.append(f"combination {combo} present in {base_name} but missing from {name}")
        for combo in other:
            if combo not in base_set:
                warnings.append(f"combination {combo} present in {name} but missing from {base_name}")
    return ValidationResult.from_messages([], warnings)
