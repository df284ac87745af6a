from __future__ import annotations

import pytest

from tests.support.harness import CLS_MARKER, fresh_interpreter, run_lines

PRINT_CASES = [
    pytest.param("PRINT 1+2", " 3\nOk", id="number-gets-sign-column"),
    pytest.param("PRINT -5", "-5\nOk", id="negative-number"),
    pytest.param("PRINT 2.5", " 2.5\nOk", id="fraction"),
    pytest.param('PRINT "HI"', "HI\nOk", id="string"),
    pytest.param('PRINT "A";"B"', "AB\nOk", id="semicolon-glues"),
    pytest.param('PRINT "A" "B"', "AB\nOk", id="juxtaposed-strings"),
    pytest.param('PRINT 1;"X"', " 1 X\nOk", id="space-between-number-and-string"),
    pytest.param('PRINT "X";1', "X 1\nOk", id="number-after-string"),
    pytest.param("PRINT 1;2", " 1 2\nOk", id="numbers"),
    pytest.param('PRINT "A","B"', "A" + " " * 13 + "B\nOk", id="comma-zone"),
    pytest.param('PRINT 1,"B"', " 1" + " " * 12 + "B\nOk", id="no-extra-space-after-zone"),
    pytest.param('PRINT "ABCDEFGHIJKLMNO","B"', "ABCDEFGHIJKLMNO" + " " * 13 + "B\nOk", id="zone-past-boundary"),
    pytest.param('PRINT "A";', "A\nOk", id="trailing-semicolon"),
    pytest.param("PRINT", "\nOk", id="empty-print"),
    pytest.param("? 7", " 7\nOk", id="question-mark-alias"),
]


@pytest.mark.parametrize("line, expected", PRINT_CASES)
def test_print_formatting(line: str, expected: str) -> None:
    assert fresh_interpreter().execute(line) == expected


def test_trailing_separator_continues_line() -> None:
    interp = fresh_interpreter()
    assert interp.execute('PRINT "A";:PRINT "B"') == "AB\nOk"


def test_let_and_bare_assignment() -> None:
    interp = fresh_interpreter()
    run_lines(interp, ["LET A=2", "B=A*3", 'C$="Z"'])
    assert interp.execute("PRINT A;B;C$") == " 2 6 Z\nOk"


def test_assignment_type_mismatch() -> None:
    interp = fresh_interpreter()
    assert interp.execute('A="X"') == "Type mismatch\nOk"


def test_multi_statement_line() -> None:
    interp = fresh_interpreter()
    assert interp.execute("A=1: B=2: PRINT A+B") == " 3\nOk"


def test_immediate_for_loop() -> None:
    interp = fresh_interpreter()
    assert interp.execute("FOR I=1 TO 3: PRINT I;: NEXT I") == " 1 2 3\nOk"


def test_immediate_for_with_step() -> None:
    interp = fresh_interpreter()
    assert interp.execute("FOR I=10 TO 1 STEP -4: PRINT I;: NEXT") == " 10 6 2\nOk"


def test_for_body_runs_at_least_once() -> None:
    interp = fresh_interpreter()
    assert interp.execute("FOR I=5 TO 1: PRINT I;: NEXT") == " 5\nOk"
    assert interp.execute("PRINT I") == " 6\nOk"


def test_nested_loops_close_with_one_next() -> None:
    interp = fresh_interpreter()
    line = "FOR I=1 TO 2: FOR J=1 TO 2: PRINT I*10+J;: NEXT J, I"
    assert interp.execute(line) == " 11 12 21 22\nOk"


def test_for_step_zero_is_syntax_error() -> None:
    assert fresh_interpreter().execute("FOR I=1 TO 2 STEP 0") == "Syntax error\nOk"


def test_for_string_variable_is_mismatch() -> None:
    assert fresh_interpreter().execute('FOR A$=1 TO 2') == "Type mismatch\nOk"


def test_next_without_for() -> None:
    assert fresh_interpreter().execute("NEXT") == "NEXT without FOR\nOk"


def test_if_then_else() -> None:
    interp = fresh_interpreter()
    interp.execute("X=5")
    assert interp.execute('IF X>3 THEN PRINT "BIG" ELSE PRINT "SMALL"') == "BIG\nOk"
    assert interp.execute('IF X>9 THEN PRINT "BIG" ELSE PRINT "SMALL"') == "SMALL\nOk"


def test_if_false_skips_rest_of_line() -> None:
    interp = fresh_interpreter()
    assert interp.execute('IF 0 THEN PRINT "A": PRINT "B"') == "Ok"


def test_if_condition_must_be_numeric() -> None:
    assert fresh_interpreter().execute('IF "A" THEN PRINT 1') == "Type mismatch\nOk"


def test_syntax_error_stops_immediate_line() -> None:
    interp = fresh_interpreter()
    assert interp.execute('PRINT "A": PRINT ): PRINT "B"') == "A\nSyntax error\nOk"


def test_fatal_error_stops_immediate_line() -> None:
    interp = fresh_interpreter()
    assert interp.execute('PRINT 1/0: PRINT "after"') == "Division by zero\nOk"


def test_non_fatal_error_continues_immediate_line() -> None:
    interp = fresh_interpreter()
    assert interp.execute('PRINT SQR(-1): PRINT "after"') == "Illegal function call\nafter\nOk"


def test_cls_returns_marker() -> None:
    assert fresh_interpreter().execute("CLS") == CLS_MARKER


def test_clear_resets_variables() -> None:
    interp = fresh_interpreter()
    run_lines(interp, ["A=1", 'B$="X"', "CLEAR"])
    assert interp.execute("PRINT A;LEN(B$)") == " 0 0\nOk"


def test_end_in_immediate_mode() -> None:
    interp = fresh_interpreter()
    assert interp.execute('PRINT "A": END: PRINT "B"') == "A\nOk"


def test_empty_line_returns_nothing() -> None:
    assert fresh_interpreter().execute("   ") == ""


def test_remark_only_line() -> None:
    assert fresh_interpreter().execute("REM nothing to do") == "Ok"


def test_def_fn_and_call() -> None:
    interp = fresh_interpreter()
    interp.execute("DEF FNSQ(X)=X*X")
    assert interp.execute("PRINT FNSQ(4)") == " 16\nOk"


def test_def_fn_parameters_shadow_globals() -> None:
    interp = fresh_interpreter()
    run_lines(interp, ["X=100", "Y=1", "DEF FNF(X)=X+Y"])
    assert interp.execute("PRINT FNF(2); X") == " 3 100\nOk"


def test_def_fn_string_function() -> None:
    interp = fresh_interpreter()
    interp.execute('DEF FNG$(A$)=A$+"!"')
    assert interp.execute('PRINT FNG$("HI")') == "HI!\nOk"


def test_def_fn_without_parameters() -> None:
    interp = fresh_interpreter()
    run_lines(interp, ["K=3", "DEF FNK=K*2"])
    assert interp.execute("PRINT FNK") == " 6\nOk"


def test_def_fn_redefinition_replaces() -> None:
    interp = fresh_interpreter()
    run_lines(interp, ["DEF FNA(X)=X+1", "DEF FNA(X)=X+2"])
    assert interp.execute("PRINT FNA(1)") == " 3\nOk"


DEF_FN_ERROR_CASES = [
    pytest.param("DEF FNA(X,X)=X", "Duplicate parameter name\nOk", id="duplicate-parameter"),
    pytest.param("DEF FNA(A,B,C,D,E,F,G,H,I)=A", "Incorrect number of arguments\nOk", id="too-many-parameters"),
    pytest.param("DEF FNA(X$)=1", "Syntax error\nOk", id="string-param-on-numeric-fn"),
    pytest.param("PRINT FNZ(1)", "Syntax error\nOk", id="undefined-function"),
]


@pytest.mark.parametrize("line, expected", DEF_FN_ERROR_CASES)
def test_def_fn_errors(line: str, expected: str) -> None:
    assert fresh_interpreter().execute(line) == expected


def test_fn_argument_count_mismatch() -> None:
    interp = fresh_interpreter()
    interp.execute("DEF FNA(X)=X")
    assert interp.execute("PRINT FNA(1,2)") == "Incorrect number of arguments\nOk"


def test_fn_argument_type_mismatch() -> None:
    interp = fresh_interpreter()
    interp.execute("DEF FNA(X)=X")
    assert interp.execute('PRINT FNA("S")') == "Type mismatch\nOk"


def test_fn_runaway_recursion_overflows() -> None:
    interp = fresh_interpreter()
    interp.execute("DEF FNR(X)=FNR(X+1)")
    assert interp.execute("PRINT FNR(1)") == "Overflow\nOk"
    assert interp.env.fn_scopes == []


def test_immediate_data_and_read() -> None:
    interp = fresh_interpreter()
    interp.execute('DATA 5, "hello", 7')
    assert interp.execute("READ A, B$, C: PRINT A+C; B$") == " 12 hello\nOk"


def test_read_past_end_is_out_of_data() -> None:
    interp = fresh_interpreter()
    interp.execute("DATA 1")
    assert interp.execute("READ A, B") == "Out of data\nOk"
