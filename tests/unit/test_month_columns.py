from __future__ import annotations

from datetime import date

import pytest

from fin_pivot.models import create_date_config
from fin_pivot.services.month_columns import (
    MONTH_PARSERS,
    detect_month_columns,
    format_month_label,
    is_canonical_month_label,
    normalize_month_column,
    parse_month_label,
)

CFG = create_date_config(2025)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Jan/25", "Jan/25"),
        ("2025-01-01", "Jan/25"),
        ("2025-02-15", "Fev/25"),
        ("15/03/2025", "Mar/25"),
        ("January 2025", "Jan/25"),
        ("janeiro/25", "Jan/25"),
        ("março 2025", "Mar/25"),
        ("marco-25", "Mar/25"),
        ("MARÇO/2025", "Mar/25"),
        ("fev.25", "Fev/25"),
        ("Feb/25", "Fev/25"),
        ("dez25", "Dez/25"),
        ("Sept 2025", "Set/25"),
        ("out_25", "Out/25"),
    ],
)
def test_normalize_month_column_variants(raw, expected):
    assert normalize_month_column(raw, CFG) == expected


@pytest.mark.parametrize("raw", ["cod", "seg", "file", "", "Total", "Jan/24", "2024-01-01", "foo/25"])
def test_non_month_labels_return_none(raw):
    assert normalize_month_column(raw, CFG) is None


def test_non_string_input_returns_none():
    assert normalize_month_column(None, CFG) is None
    assert normalize_month_column(2025, CFG) is None


def test_normalization_is_idempotent():
    for raw in ["2025-04-01", "abril 2025", "Apr/25", "30/04/2025", "Abr/25"]:
        once = normalize_month_column(raw, CFG)
        assert once == "Abr/25"
        assert normalize_month_column(once, CFG) == once


def test_canonical_check_respects_allowed_years():
    assert is_canonical_month_label("Jan/25", CFG)
    assert not is_canonical_month_label("Jan/24", CFG)
    assert not is_canonical_month_label("jan/25", CFG)
    multi = create_date_config(2025, [2024])
    assert normalize_month_column("Jan/24", multi) == "Jan/24"
    assert multi.allowed_short_years == {"24", "25"}
    assert is_canonical_month_label("Dez/24", multi)
    assert not is_canonical_month_label("Dez/23", multi)


def test_bare_year_header_reads_as_january():
    # 年だけの列名は 1 月扱い
    assert normalize_month_column("2025", CFG) == "Jan/25"


def test_parse_month_label_returns_first_day():
    assert parse_month_label("15/06/2025", CFG) == date(2025, 6, 1)
    assert parse_month_label("   ", CFG) is None


def test_format_month_label_uses_pt_br_abbreviations():
    labels = [format_month_label(date(2025, m, 1)) for m in range(1, 13)]
    assert labels == [
        "Jan/25", "Fev/25", "Mar/25", "Abr/25", "Mai/25", "Jun/25",
        "Jul/25", "Ago/25", "Set/25", "Out/25", "Nov/25", "Dez/25",
    ]


def test_parser_chain_order():
    assert [p.name for p in MONTH_PARSERS] == ["iso", "brazilian", "generic", "month_name"]


def test_detect_month_columns_dedupes_and_keeps_order():
    row = {"cod": 1, "seg": "E1", "file": "Cards", "Fev/25": 1, "2025-01-01": 2, "Jan/25": 3}
    assert detect_month_columns(row, CFG) == ["Fev/25", "Jan/25"]


def test_detect_month_columns_accepts_plain_keys():
    assert detect_month_columns(["cod", "Mar/25"], CFG) == ["Mar/25"]
