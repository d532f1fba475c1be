from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

"""Config dataclasses for the financial workbook pipeline.

These are the typed settings consumed by the services. The YAML loader in
fin_pivot/config/loader.py builds them; every field has a default so the
pipeline can run without a config file.
"""

__all__ = [
    "DateConfig",
    "BusinessRulesConfig",
    "PipelineConfig",
    "create_date_config",
    "default_date_config",
]


@dataclass(frozen=True)
class DateConfig:
    """Which years a month column may belong to.

    ``expected_year`` is used in messages; ``allowed_years`` is the actual filter.
    """
    expected_year: int
    allowed_years: tuple[int, ...]

    def allows(self, year: int) -> bool:
        return year in self.allowed_years

    @property
    def allowed_short_years(self) -> set[str]:
        return {f"{y % 100:02d}" for y in self.allowed_years}


def create_date_config(year: int, additional_years: list[int] | None = None) -> DateConfig:
    """Build a DateConfig for ``year`` plus optional extra years (order kept, no duplicates)."""
    years = [year]
    for y in additional_years or []:
        if y not in years:
            years.append(y)
    return DateConfig(expected_year=year, allowed_years=tuple(years))


def default_date_config() -> DateConfig:
    """Single allowed year: the current calendar year."""
    return create_date_config(date.today().year)


@dataclass(frozen=True)
class BusinessRulesConfig:
    """Thresholds for the business rule validator.

    max_monthly_variation is a ratio (5 == 500%).
    chronological_order=False compares consecutive months in raw column order.
    """
    max_monthly_variation: float = 5
    allow_duplicate_cod_seg: bool = False
    minimum_non_zero_months: int = 1
    chronological_order: bool = True


@dataclass(frozen=True)
class PipelineConfig:
    """Root configuration object for one pipeline run."""
    date: DateConfig = field(default_factory=default_date_config)
    business_rules: BusinessRulesConfig = field(default_factory=BusinessRulesConfig)
    header_row: int = 0  # 0 始まり。ヘッダ行より上はタイトル扱いで捨てる
    null_sentinels: set[str] | None = None  # 大文字化済み
    cross_sheet_check: bool = True
