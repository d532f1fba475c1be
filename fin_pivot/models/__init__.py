"""Domain models for the financial workbook pipeline.

Configuration, row/record, validation and progress/result types used
throughout the services.
"""

from .config_models import (
    BusinessRulesConfig,
    DateConfig,
    PipelineConfig,
    create_date_config,
    default_date_config,
)
from .financial_row import (
    FIRST_DATA_ROW,
    REQUIRED_COLUMNS,
    REQUIRED_FILES,
    REQUIRED_SEGMENTS,
    REQUIRED_SHEETS,
    FinancialRow,
    UnpivotedRecord,
    data_row_numbers,
    is_finite_number,
)
from .processing_result import ProcessingProgress, ProcessingResult, Stage
from .validation_result import ValidationResult

__all__ = [
    # Configuration models
    "BusinessRulesConfig",
    "DateConfig",
    "PipelineConfig",
    "create_date_config",
    "default_date_config",
    # Row models
    "REQUIRED_COLUMNS",
    "REQUIRED_FILES",
    "REQUIRED_SEGMENTS",
    "REQUIRED_SHEETS",
    "FIRST_DATA_ROW",
    "FinancialRow",
    "UnpivotedRecord",
    "data_row_numbers",
    "is_finite_number",
    # Processing models
    "ProcessingProgress",
    "ProcessingResult",
    "Stage",
    "ValidationResult",
]
