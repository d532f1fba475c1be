from __future__ import annotations

import pytest

from fin_pivot.models import create_date_config
from fin_pivot.services.date_grouping import (
    GroupingPeriod,
    calculate_period_change,
    calculate_ytd,
    calculate_yoy,
    get_previous_period,
    get_sorted_months,
    group_months_by_period,
)

CFG = create_date_config(2025, [2024])


def test_get_sorted_months_is_chronological():
    assert get_sorted_months(["Mar/25", "Dez/24", "Jan/25", "cod"], CFG) == ["Dez/24", "Jan/25", "Mar/25"]


def test_group_by_quarter(months_2025):
    groups = group_months_by_period(months_2025, GroupingPeriod.QUARTER, CFG)
    assert [g.label for g in groups] == ["Q1 2025", "Q2 2025", "Q3 2025", "Q4 2025"]
    assert groups[0].months == ["Jan/25", "Fev/25", "Mar/25"]


def test_group_by_semester_and_year(months_2025):
    semesters = group_months_by_period(months_2025, "semester", CFG)
    assert [g.label for g in semesters] == ["1º Sem 2025", "2º Sem 2025"]
    years = group_months_by_period(["Jan/25", "Dez/24"], "year", CFG)
    assert [g.id for g in years] == ["2024", "2025"]


def test_group_by_month_ids():
    groups = group_months_by_period(["Fev/25", "Jan/25"], GroupingPeriod.MONTH, CFG)
    assert [(g.id, g.label) for g in groups] == [("2025-00", "Jan/25"), ("2025-01", "Fev/25")]


def test_unknown_period_raises():
    with pytest.raises(ValueError):
        group_months_by_period(["Jan/25"], "week", CFG)


@pytest.mark.parametrize(
    "current, previous, expected",
    [
        (110, 100, 10.0),
        (90, -100, 190.0),
        (0, 0, 0.0),
        (5, 0, None),
        ("x", 1, None),
        (1, None, None),
    ],
)
def test_calculate_period_change(current, previous, expected):
    assert calculate_period_change(current, previous) == expected


def test_calculate_ytd():
    row = {"Jan/25": 1, "Fev/25": 2, "Mar/25": 4, "Dez/24": 100}
    columns = ["Dez/24", "Jan/25", "Fev/25", "Mar/25"]
    assert calculate_ytd(row, columns, "Fev/25", CFG) == 3.0
    assert calculate_ytd({}, columns, "Fev/25", CFG) is None
    assert calculate_ytd(row, columns, "bogus", CFG) is None


def test_calculate_yoy_requires_previous_year_allowed():
    row = {"Jan/25": 120, "Jan/24": 100}
    assert calculate_yoy(row, "Jan/25", CFG) == pytest.approx(20.0)
    assert calculate_yoy(row, "Jan/25", create_date_config(2025)) is None
    assert calculate_yoy({"Jan/25": 1}, "Jan/25", CFG) is None


def test_get_previous_period():
    assert get_previous_period("Jan/25", "month", CFG) == "Dez/24"
    assert get_previous_period("Mai/25", GroupingPeriod.QUARTER, CFG) == "Fev/25"
    assert get_previous_period("Jul/25", "semester", CFG) == "Jan/25"
    assert get_previous_period("Jul/25", "year", CFG) == "Jul/24"
    assert get_previous_period("nope", "month", CFG) is None
