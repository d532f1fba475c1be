from __future__ import annotations

import re
import unicodedata
import warnings
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Any

import pandas as pd

from ..models.config_models import DateConfig, default_date_config

"""Month column normalization.

Heterogeneous header spellings (``2025-01-01``, ``01/01/2025``, ``January 2025``,
``março/25``, ``Jan/25`` ...) are resolved to one canonical label ``Mmm/YY``
using pt-BR short month names (``Jan/25``, ``Fev/25``, ... ``Dez/25``).

Resolution is an ordered chain of parsers; the first candidate whose year is
allowed by the DateConfig wins. ``None`` means "not a month column" and is
how metadata columns (cod, seg, file, ...) are told apart from month columns.
"""

__all__ = [
    "MonthParser",
    "MONTH_PARSERS",
    "MONTH_NAMES",
    "normalize_month_column",
    "parse_month_label",
    "format_month_label",
    "detect_month_columns",
    "is_canonical_month_label",
]

_PT_LONG = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)
_PT_SHORT = ("jan", "fev", "mar", "abr", "mai", "jun", "jul", "ago", "set", "out", "nov", "dez")
_EN_LONG = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)
_EN_SHORT = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _build_month_names() -> dict[str, int]:
    names: dict[str, int] = {}
    for table in (_PT_LONG, _PT_SHORT, _EN_LONG, _EN_SHORT):
        for idx, name in enumerate(table, start=1):
            names[name] = idx
            names[_strip_accents(name)] = idx
    names["sept"] = 9
    return names


# lower-case month name (pt-BR / en-US, long / short, with and without accents) -> month number
MONTH_NAMES: dict[str, int] = _build_month_names()

_CANONICAL_ABBR = tuple(s.capitalize() for s in _PT_SHORT)

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_BR_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_FOUR_DIGITS_RE = re.compile(r"\d{4}")
_MONTH_NAME_RE = re.compile(r"^([^\W\d_]+)\.?[\s/_.\-]?(\d{4}|\d{2})$")


def _safe_date(year: int, month: int, day: int = 1) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_iso(text: str) -> date | None:
    m = _ISO_RE.match(text)
    if not m:
        return None
    year, month, day = (int(g) for g in m.groups())
    return _safe_date(year, month, day)


def _parse_brazilian(text: str) -> date | None:
    m = _BR_RE.match(text)
    if not m:
        return None
    day, month, year = (int(g) for g in m.groups())
    return _safe_date(year, month, day)


def _parse_generic(text: str) -> date | None:
    # 年を含まない文字列は pandas が当年で補完してしまうので対象外
    # 年だけのヘッダ ("2025", "1 2025") も 1 月として解釈される (Jan/25)。
    # 年合計列を置く場合は年を含まない名前にすること
    if not _FOUR_DIGITS_RE.search(text):
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return date(ts.year, ts.month, ts.day)


def _parse_month_name(text: str) -> date | None:
    m = _MONTH_NAME_RE.match(text)
    if not m:
        return None
    month_text, year_text = m.groups()
    month = MONTH_NAMES.get(month_text.lower()) or MONTH_NAMES.get(_strip_accents(month_text.lower()))
    if month is None:
        return None
    year = 2000 + int(year_text) if len(year_text) == 2 else int(year_text)
    return _safe_date(year, month)


@dataclass(frozen=True)
class MonthParser:
    """One candidate parser in the normalization chain."""
    name: str
    parse: Callable[[str], date | None]


# Order matters: first accepted candidate wins. New formats are appended here.
MONTH_PARSERS: tuple[MonthParser, ...] = (
    MonthParser("iso", _parse_iso),
    MonthParser("brazilian", _parse_brazilian),
    MonthParser("generic", _parse_generic),
    MonthParser("month_name", _parse_month_name),
)


def format_month_label(value: date) -> str:
    """Canonical ``Mmm/YY`` label for the month containing ``value``."""
    return f"{_CANONICAL_ABBR[value.month - 1]}/{value.year % 100:02d}"


def is_canonical_month_label(label: str, config: DateConfig) -> bool:
    if len(label) != 6 or label[3] != "/":
        return False
    if label[:3] not in _CANONICAL_ABBR:
        return False
    return label[4:6] in config.allowed_short_years


def parse_month_label(label: Any, config: DateConfig | None = None) -> date | None:
    """Resolve a header to the first day of its month, or None.

    Args:
        label: Raw header text
        config: Allowed years (default: current year only)
    """
    if not isinstance(label, str) or not label.strip():
        return None
    cfg = config or default_date_config()
    return _parse_cached(label.strip(), cfg)


@lru_cache(maxsize=4096)
def _parse_cached(text: str, config: DateConfig) -> date | None:
    for parser in MONTH_PARSERS:
        parsed = parser.parse(text)
        if parsed is not None and config.allows(parsed.year):
            return date(parsed.year, parsed.month, 1)
    return None


def normalize_month_column(label: Any, config: DateConfig | None = None) -> str | None:
    """Return the canonical ``Mmm/YY`` label for ``label`` or None if it is not a month column.

    Already-canonical labels with an allowed year are returned unchanged, so the
    function is idempotent.
    """
    if not isinstance(label, str) or not label:
        return None
    cfg = config or default_date_config()
    if is_canonical_month_label(label, cfg):
        return label
    parsed = parse_month_label(label, cfg)
    if parsed is None:
        return None
    return format_month_label(parsed)


def detect_month_columns(
    row: Mapping[str, Any] | Iterable[str], config: DateConfig | None = None
) -> list[str]:
    """Canonical labels of the month columns among ``row``'s keys.

    Order follows the keys; a label produced by several raw spellings is listed once.
    """
    detected: list[str] = []
    for key in row:
        label = normalize_month_column(key, config)
        if label is not None and label not in detected:
            detected.append(label)
    return detected
