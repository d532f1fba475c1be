from __future__ import annotations

import re

from fin_pivot.models import ProcessingResult, UnpivotedRecord, ValidationResult
from fin_pivot.services.summary import render_summary_line

SUMMARY_RE = re.compile(
    r"^SUMMARY file=\S+ success=(true|false) valid=(true|false) sheets=\d+ rows=\d+ "
    r"records=\d+ errors=\d+ warnings=\d+ months=\d+$"
)


def test_success_summary():
    rec = UnpivotedRecord(cod=1, seg="E1", file="Cards", sheet="RESULTADO", month="Jan/25", value=1.0)
    result = ProcessingResult(
        success=True,
        raw_data={"RESULTADO": [{"cod": 1}], "CONTABIL": [{"cod": 1}, {"cod": 2}]},
        unpivoted_data=[rec],
        validation=ValidationResult.from_messages([], ["w"]),
        month_columns=["Jan/25"],
    )
    line = render_summary_line("book.xlsx", result)
    assert SUMMARY_RE.match(line)
    assert line == (
        "SUMMARY file=book.xlsx success=true valid=true sheets=2 rows=3 "
        "records=1 errors=0 warnings=1 months=1"
    )


def test_failure_summary():
    line = render_summary_line("bad.xlsx", ProcessingResult.failed("boom", "WORKBOOK_READ_ERROR"))
    assert SUMMARY_RE.match(line)
    assert "success=false valid=false" in line and "errors=1" in line
