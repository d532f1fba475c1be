from __future__ import annotations

from fin_pivot.models import Stage

"""Progress stage contract: closed set, fixed order, two terminal stages."""


def test_stage_values_and_order():
    assert [s.value for s in Stage] == [
        "reading",
        "parsing",
        "validating_structure",
        "validating_data",
        "validating_business",
        "cross_validating",
        "transforming",
        "complete",
        "error",
    ]


def test_terminal_stages():
    assert {s for s in Stage if s.is_terminal} == {Stage.COMPLETE, Stage.ERROR}
