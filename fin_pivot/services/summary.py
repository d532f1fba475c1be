from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""SUMMARY line rendering.

One line per processed workbook, ``key=value`` pairs separated by spaces so
the line can be grepped and parsed by CI scripts.
"""

__all__ = [
    "render_summary_line",
]


def render_summary_line(file_name: str, result: ProcessingResult) -> str:
    """Render the SUMMARY line for one workbook.

    Format:
    SUMMARY file={name} success={true|false} valid={true|false} sheets={n}
    rows={n} records={n} errors={n} warnings={n} months={n}

    Examples:
        >>> render_summary_line("a.xlsx", ProcessingResult.failed("boom", "X"))
        'SUMMARY file=a.xlsx success=false valid=false sheets=0 rows=0 records=0 errors=1 warnings=0 months=0'
    """
    validation = result.validation
    return (
        f"SUMMARY file={file_name} "
        f"success={str(result.success).lower()} "
        f"valid={str(validation.is_valid).lower()} "
        f"sheets={len(result.raw_data)} "
        f"rows={result.total_rows} "
        f"records={len(result.unpivoted_data)} "
        f"errors={len(validation.errors)} "
        f"warnings={len(validation.warnings)} "
        f"months={len(result.month_columns)}"
    )
