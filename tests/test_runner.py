from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest

from tests.support.harness import InterpreterConfig
from msxbasic.runner import _load_source, main, run


def test_program_is_run_automatically() -> None:
    assert run("10 PRINT 1\n20 PRINT 2") == " 1\n 2\nOk"


def test_explicit_run_is_not_repeated() -> None:
    assert run("10 PRINT 1\nRUN") == " 1\nOk"


def test_immediate_lines_only() -> None:
    assert run('PRINT "HI"\n\nPRINT 2') == "HI\nOk\n 2\nOk"


def test_inputs_answer_prompts() -> None:
    source = '10 INPUT "N";N\n20 PRINT N*2'
    assert run(source, inputs=["21"]) == "N?\n 42\nOk"


def test_transcript_stops_when_inputs_run_out() -> None:
    assert run("10 INPUT A\n20 PRINT A", inputs=[]) == "?"


def test_cls_is_dropped_from_transcript() -> None:
    assert run('CLS\nPRINT "X"') == "X\nOk"


def test_errors_are_part_of_transcript() -> None:
    assert run("10 PRINT 1/0") == "Division by zero in 10\nOk"


def test_explicit_config_is_used(tmp_path: Path) -> None:
    config = InterpreterConfig(state_dir=tmp_path)
    run('A=3: SAVEF "out"', config=config)
    assert (tmp_path / "out.json").exists()


def test_load_source_reads_files(tmp_path: Path) -> None:
    path = tmp_path / "prog.bas"
    path.write_text("10 PRINT 1\n", encoding="utf-8")
    assert _load_source(str(path)) == "10 PRINT 1\n"


def test_load_source_passes_literal_source_through() -> None:
    assert _load_source('PRINT "X"') == 'PRINT "X"'


def test_load_source_reads_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO("PRINT 1\n"))
    assert _load_source("-") == "PRINT 1\n"


def test_load_source_rejects_empty_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO(""))
    with pytest.raises(SystemExit):
        _load_source(None)


def test_main_runs_argument_with_inputs(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(
        sys, "argv", ["msxbasic", "--input=3", "--input", "4", "10 INPUT A,B\n20 PRINT A*B"]
    )
    main()
    assert capsys.readouterr().out == "?\n??\n 12\nOk\n"


@pytest.mark.parametrize(
    "argv",
    [
        pytest.param(["msxbasic", "--input"], id="input-without-value"),
        pytest.param(["msxbasic", "PRINT 1", "PRINT 2"], id="two-sources"),
    ],
)
def test_main_rejects_bad_arguments(monkeypatch: pytest.MonkeyPatch, argv: list) -> None:
    monkeypatch.setattr(sys, "argv", argv)
    with pytest.raises(SystemExit):
        main()


def test_rejected_program_line_is_reported() -> None:
    assert run("65530 PRINT\nPRINT 1") == "Syntax error\nOk\n 1\nOk"
