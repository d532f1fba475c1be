from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError

from ..models.config_models import DateConfig
from ..models.financial_row import (
    REQUIRED_COLUMNS,
    REQUIRED_FILES,
    REQUIRED_SEGMENTS,
    REQUIRED_SHEETS,
    data_row_numbers,
    is_finite_number,
)
from ..models.validation_result import ValidationResult
from .month_columns import normalize_month_column

"""Structural and cell-level validation of one sheet's rows.

validate_required_columns: header-level checks (missing / extra columns).
validate_data_types: per-row checks of the fixed fields against FINANCIAL_ROW_SCHEMA
and of every declared month column.

Row numbers in messages are spreadsheet rows: the reader records them, and
without that record the first data row is row 2.
"""

__all__ = [
    "FINANCIAL_ROW_SCHEMA",
    "validate_required_columns",
    "validate_data_types",
]

FINANCIAL_ROW_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["cod", "seg", "file", "sheet"],
    "properties": {
        "cod": {"type": "integer", "exclusiveMinimum": 0},
        "seg": {"enum": list(REQUIRED_SEGMENTS)},
        "file": {"enum": list(REQUIRED_FILES)},
        "sheet": {"enum": list(REQUIRED_SHEETS)},
    },
}

_ROW_VALIDATOR = Draft7Validator(FINANCIAL_ROW_SCHEMA)

_ALLOWED_VALUES = {
    "seg": REQUIRED_SEGMENTS,
    "file": REQUIRED_FILES,
    "sheet": REQUIRED_SHEETS,
}


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if is_finite_number(value):
        return "number"
    if isinstance(value, float):
        return "non-finite number"
    return type(value).__name__


def _field_of(error: ValidationError) -> str:
    if error.path:
        return str(error.path[0])
    if error.validator == "required":
        # "'cod' is a required property"
        return str(error.message).split("'")[1]
    return "<row>"


def _describe(error: ValidationError, field: str, row: dict[str, Any]) -> str:
    value = row.get(field)
    if error.validator == "required":
        return "required field is missing"
    if error.validator == "type":
        return f"expected integer, received {_type_name(value)}"
    if error.validator == "exclusiveMinimum":
        return f"must be a positive integer, received {value!r}"
    if error.validator == "enum":
        allowed = ", ".join(_ALLOWED_VALUES.get(field, ()))
        return f"invalid value {value!r}. Allowed values: [{allowed}]"
    return str(error.message)


def _row_errors(row: dict[str, Any]) -> list[tuple[str, str]]:
    """(field, message) pairs for the fixed fields; at most one per field."""
    seen: dict[str, str] = {}
    for error in _ROW_VALIDATOR.iter_errors(row):
        field = _field_of(error)
        if field not in seen:
            seen[field] = _describe(error, field, row)
    order = {name: idx for idx, name in enumerate(FINANCIAL_ROW_SCHEMA["required"])}
    return sorted(seen.items(), key=lambda item: order.get(item[0], len(order)))


def validate_required_columns(
    rows: list[dict[str, Any]],
    required_columns: list[str] | None = None,
    date_config: DateConfig | None = None,
) -> ValidationResult:
    """Check the sheet header (taken from the first row) against ``required_columns``.

    Missing columns are one aggregated error; columns that are neither required
    nor month columns are one aggregated warning.
    """
    if not rows:
        return ValidationResult.failure("no data")
    required = list(required_columns) if required_columns is not None else list(REQUIRED_COLUMNS)
    actual = list(rows[0].keys())
    errors: list[str] = []
    warnings: list[str] = []

    missing = [c for c in required if c not in actual]
    if missing:
        errors.append(f"required columns not found: {', '.join(missing)}")

    extra = [
        c for c in actual
        if c not in required and normalize_month_column(c, date_config) is None
    ]
    if extra:
        warnings.append(f"extra columns found: {', '.join(extra)}")

    return ValidationResult.from_messages(errors, warnings)


def validate_data_types(
    rows: list[dict[str, Any]],
    month_columns: list[str],
    row_numbers: Sequence[int] | None = None,
) -> ValidationResult:
    """Validate every row's fixed fields and month cells. No early exit."""
    errors: list[str] = []
    for row_num, row in zip(data_row_numbers(len(rows), row_numbers), rows):
        for field, message in _row_errors(row):
            errors.append(f"Row {row_num}: {field} - {message}")
        for month in month_columns:
            value = row.get(month)
            if value is None:
                continue
            if not is_finite_number(value):
                errors.append(
                    f"Row {row_num}: '{month}' must be a numeric value, found '{_type_name(value)}'"
                )
    return ValidationResult.from_messages(errors, [])
