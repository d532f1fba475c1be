from __future__ import annotations

import json
from pathlib import Path

from fin_pivot.cli import main as cli_main
from fin_pivot.cli.app import EXIT_FATAL, EXIT_SUCCESS_ALL, EXIT_VALIDATION_ERRORS


def _write_config(workdir: Path, year: int = 2025) -> None:
    (workdir / "config" / "pipeline.yml").write_text(f"allowed_years: [{year}]\n", encoding="utf-8")


def _write_book(workdir: Path, name: str, content: bytes) -> Path:
    path = workdir / "data" / name
    path.write_bytes(content)
    return path


def test_valid_workbook_exits_zero(temp_workdir, valid_workbook, capsys):
    _write_config(temp_workdir)
    book = _write_book(temp_workdir, "book.xlsx", valid_workbook)
    assert cli_main([str(book)]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "SUMMARY file=book.xlsx success=true valid=true sheets=5 rows=50 records=600" in out
    assert not (temp_workdir / "logs").exists()


def test_validation_errors_exit_two_and_write_error_log(
    temp_workdir, valid_sheets, workbook_builder, capsys
):
    _write_config(temp_workdir)
    valid_sheets["CONTABIL"][2]["seg"] = "Z9"
    book = _write_book(temp_workdir, "bad.xlsx", workbook_builder(valid_sheets))
    assert cli_main([str(book)]) == EXIT_VALIDATION_ERRORS
    out = capsys.readouterr().out
    assert "valid=false" in out and "errors=1" in out
    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    [line] = log_file.read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["sheet"] == "CONTABIL"
    assert record["row"] == 4
    assert record["error_type"] == "VALIDATION_ERROR"


def test_fatal_fault_exits_one(temp_workdir, valid_sheets, workbook_builder, capsys):
    _write_config(temp_workdir)
    del valid_sheets["SALDO_PONTA"]
    book = _write_book(temp_workdir, "missing.xlsx", workbook_builder(valid_sheets))
    assert cli_main([str(book)]) == EXIT_FATAL
    out = capsys.readouterr().out
    assert "ERROR missing.xlsx: required sheets not found: SALDO_PONTA" in out
    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
    assert (record["sheet"], record["row"], record["error_type"]) == ("<FILE_LEVEL>", -1, "MISSING_SHEETS")


def test_fatal_wins_over_validation_errors(temp_workdir, valid_sheets, workbook_builder):
    _write_config(temp_workdir)
    bad = {k: [dict(r) for r in v] for k, v in valid_sheets.items()}
    bad["RESULTADO"][0]["cod"] = -1
    invalid = _write_book(temp_workdir, "invalid.xlsx", workbook_builder(bad))
    broken = _write_book(temp_workdir, "broken.xlsx", b"not a workbook")
    assert cli_main([str(invalid), str(broken)]) == EXIT_FATAL


def test_non_xlsx_rejected(temp_workdir, capsys):
    path = temp_workdir / "data" / "book.csv"
    path.write_text("cod,seg\n", encoding="utf-8")
    assert cli_main([str(path)]) == EXIT_FATAL
    assert "unsupported file type" in capsys.readouterr().out


def test_missing_file(temp_workdir, capsys):
    assert cli_main([str(temp_workdir / "data" / "ghost.xlsx")]) == EXIT_FATAL
    assert "file not found" in capsys.readouterr().out


def test_config_error(temp_workdir, valid_workbook, capsys):
    (temp_workdir / "config" / "pipeline.yml").write_text("unknown_key: 1\n", encoding="utf-8")
    book = _write_book(temp_workdir, "book.xlsx", valid_workbook)
    assert cli_main([str(book)]) == EXIT_FATAL
    assert "ERROR config:" in capsys.readouterr().out


def test_config_from_env_file(temp_workdir, valid_workbook):
    alt = temp_workdir / "alt.yml"
    alt.write_text("allowed_years: [2025]\n", encoding="utf-8")
    (temp_workdir / ".env").write_text(f"FIN_PIVOT_CONFIG={alt}\n", encoding="utf-8")
    book = _write_book(temp_workdir, "book.xlsx", valid_workbook)
    # temp_workdir が FIN_PIVOT_CONFIG を後始末する
    assert cli_main([str(book)]) == EXIT_SUCCESS_ALL


def test_explicit_config_must_exist(temp_workdir, valid_workbook, capsys):
    book = _write_book(temp_workdir, "book.xlsx", valid_workbook)
    assert cli_main([str(book), "--config", "nope.yml"]) == EXIT_FATAL
    assert "config file not found" in capsys.readouterr().out


def test_job_id_requires_single_file(temp_workdir, valid_workbook):
    _write_config(temp_workdir)
    a = _write_book(temp_workdir, "a.xlsx", valid_workbook)
    b = _write_book(temp_workdir, "b.xlsx", valid_workbook)
    assert cli_main([str(a), str(b), "--job-id", "x"]) == EXIT_FATAL


def test_debug_mode_shows_stage_logs(temp_workdir, valid_workbook, capsys):
    _write_config(temp_workdir)
    book = _write_book(temp_workdir, "book.xlsx", valid_workbook)
    assert cli_main([str(book), "--debug", "--job-id", "dbg"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG job=dbg stage=reading progress=10" in out


def test_inspect_data(temp_workdir, valid_workbook, capsys):
    _write_config(temp_workdir)
    book = _write_book(temp_workdir, "book.xlsx", valid_workbook)
    assert cli_main([str(book), "--inspect-data"]) == EXIT_SUCCESS_ALL
    out = capsys.readouterr().out
    assert "FILE: book.xlsx" in out
    assert "SHEET: RESULTADO cols=['cod', 'seg', 'file', 'Jan/25'" in out
    assert "SUMMARY" not in out
