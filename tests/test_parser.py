from __future__ import annotations

from typing import List

import pytest
from lark import Token, Tree

from tests.support.harness import (
    ParseError,
    compile_line,
    labels,
    parse_expression,
)
from msxbasic.parser import parse_statement
from msxbasic.tree import tree_label, token_kind

PRECEDENCE_CASES = [
    pytest.param("1+2*3", "addexpr", id="mul-binds-tighter-than-add"),
    pytest.param("1*2+3", "addexpr", id="add-is-root-either-side"),
    pytest.param("7 MOD 2+1", "addexpr", id="mod-binds-tighter-than-add"),
    pytest.param("8\\2 MOD 3", "modexpr", id="idiv-binds-tighter-than-mod"),
    pytest.param("8*2\\3", "idivexpr", id="mul-binds-tighter-than-idiv"),
    pytest.param("-2^2", "unary", id="unary-wraps-power"),
    pytest.param("A=1 AND B=2", "bitexpr", id="compare-binds-tighter-than-and"),
    pytest.param("NOT A=B", "notexpr", id="not-wraps-compare"),
    pytest.param("A OR B AND C", "bitexpr", id="and-binds-tighter-than-or"),
    pytest.param("A IMP B EQV C", "bitexpr", id="imp-is-loosest"),
    pytest.param("(1+2)*3", "mulexpr", id="parens-override"),
    pytest.param("LEFT$(A$,2)", "call", id="builtin-call"),
    pytest.param("FNF(1,2)", "fncall", id="user-function-call"),
    pytest.param("A(1,2)", "index", id="array-element"),
]


@pytest.mark.parametrize("source, root", PRECEDENCE_CASES)
def test_expression_roots(source: str, root: str) -> None:
    assert tree_label(parse_expression(source)) == root


def test_power_is_left_associative() -> None:
    tree = parse_expression("2^3^2")
    assert tree.data == "powexpr"
    left, right = tree.children
    assert tree_label(left) == "powexpr"
    assert right == Token("NUMBER", "2")


def test_power_accepts_signed_exponent() -> None:
    tree = parse_expression("2^-1")
    assert tree.data == "powexpr"
    assert tree_label(tree.children[1]) == "unary"


def test_imp_root_operator() -> None:
    tree = parse_expression("A IMP B EQV C")
    op = tree.children[1]
    assert token_kind(op.children[0]) == "IMP"


def test_compare_normalizes_reversed_operators() -> None:
    tree = parse_expression("A >< B")
    assert token_kind(tree.children[1].children[0]) == "NEQ"


@pytest.mark.parametrize(
    "source",
    [
        pytest.param("1+", id="dangling-operator"),
        pytest.param("(1", id="unclosed-paren"),
        pytest.param("1 2", id="trailing-tokens"),
        pytest.param("LEFT$", id="builtin-without-args"),
    ],
)
def test_expression_errors(source: str) -> None:
    with pytest.raises(ParseError):
        parse_expression(source)


STATEMENT_CASES = [
    pytest.param("PRINT 1;2", ["print"], id="print"),
    pytest.param("? 1", ["print"], id="print-alias"),
    pytest.param("X=1", ["let"], id="bare-assignment"),
    pytest.param("LET A$=\"Q\"", ["let"], id="let"),
    pytest.param("A(1)=2", ["let"], id="array-assignment"),
    pytest.param("INPUT \"N\";N", ["input"], id="input"),
    pytest.param("GOTO 10", ["goto"], id="goto"),
    pytest.param("GOSUB 10: RETURN", ["gosub", "return"], id="gosub-return"),
    pytest.param("FOR I=1 TO 3: NEXT", ["for", "next"], id="for-next"),
    pytest.param("ON X GOSUB 10,20", ["ongo"], id="on-gosub"),
    pytest.param("DIM A(3), B$(2,2)", ["dim"], id="dim"),
    pytest.param("DATA 1,\"a:b\",3", ["data"], id="data-with-colon"),
    pytest.param("READ A, B$", ["read"], id="read"),
    pytest.param("RESTORE 100", ["restore"], id="restore-line"),
    pytest.param("DEF FNA(X)=X", ["deffn"], id="def-fn"),
    pytest.param("CLEAR 200", ["clear"], id="clear-with-size"),
    pytest.param("CLS: END: STOP", ["cls", "end", "stop"], id="simple-statements"),
    pytest.param("SAVEF \"s\"", ["savef"], id="savef"),
    pytest.param("LOADF \"s\",CLEAR", ["loadf"], id="loadf-clear"),
    pytest.param("SAVE \"p\": CLOAD \"p\"", ["save", "cload"], id="program-files"),
    pytest.param("X=1 ' note", ["let"], id="apostrophe-comment"),
    pytest.param("REM only a remark", [], id="rem-line"),
    pytest.param("PRINT 1: PRINT )", ["print", "badstmt"], id="bad-statement-kept"),
    pytest.param("PRINT @", ["badstmt"], id="lex-error-kept"),
    pytest.param("LEFT$=1", ["badstmt"], id="assign-to-builtin"),
]


@pytest.mark.parametrize("source, expected", STATEMENT_CASES)
def test_statement_labels(source: str, expected: List[str]) -> None:
    assert labels(source) == expected


def test_if_then_else_is_flattened() -> None:
    code = compile_line('IF A THEN PRINT 1: PRINT 2 ELSE PRINT 3')
    assert [c.data for c in code] == ["ifjump", "print", "print", "skip", "print"]
    assert code[0].children[1] == Token("OFFSET", "3")
    assert code[3].children[0] == Token("OFFSET", "1")


def test_if_without_else() -> None:
    code = compile_line("IF A THEN X=1: Y=2")
    assert [c.data for c in code] == ["ifjump", "let", "let"]
    assert code[0].children[1] == Token("OFFSET", "2")


def test_if_line_number_branches() -> None:
    code = compile_line("IF A THEN 100 ELSE 200")
    assert [c.data for c in code] == ["ifjump", "goto", "skip", "goto"]
    assert code[1].children[0] == Token("LINENO", "100")
    assert code[3].children[0] == Token("LINENO", "200")


def test_if_goto_form() -> None:
    code = compile_line("IF A>1 GOTO 50")
    assert [c.data for c in code] == ["ifjump", "goto"]


def test_if_owns_rest_of_line() -> None:
    # the statement after ':' belongs to the THEN branch
    code = compile_line("IF 0 THEN PRINT 1: PRINT 2")
    assert code[0].children[1] == Token("OFFSET", "2")


def test_if_requires_then_or_goto() -> None:
    assert labels("IF A PRINT 1") == ["badstmt"]


def test_deffn_keeps_body_text() -> None:
    (stmt,) = parse_statement("DEF FNSQ(X, Y) = X*X + Y")
    name, params, body_text, body = stmt.children
    assert name == Token("IDENT", "SQ")
    assert [p.value for p in params.children] == ["X", "Y"]
    assert body_text == Token("BODY", "X*X + Y")
    assert tree_label(body) == "addexpr"


def test_deffn_without_params() -> None:
    (stmt,) = parse_statement("DEF FNPI=3.14159")
    assert stmt.children[1] == Tree("params", [])
    assert stmt.children[2].value == "3.14159"


def test_for_defaults_step_to_one() -> None:
    (stmt,) = parse_statement("FOR I=1 TO 10")
    assert stmt.children[3] == Token("NUMBER", "1")


def test_input_prompt_and_targets() -> None:
    (stmt,) = parse_statement('INPUT "Name";N$, A(2)')
    prompt, targets = stmt.children
    assert prompt == Token("PROMPT", "Name")
    assert [tree_label(t) or t.value for t in targets.children] == ["N$", "index"]


def test_input_without_prompt() -> None:
    (stmt,) = parse_statement("INPUT A")
    assert stmt.children[0] == Token("PROMPT", "")


def test_data_is_raw_text() -> None:
    (stmt,) = parse_statement('DATA  1, "x,y" , 3 ')
    assert stmt.children[0] == Token("RAW", '1, "x,y" , 3')


def test_on_goto_targets() -> None:
    (stmt,) = parse_statement("ON N GOTO 10, 20, 30")
    _selector, kind, *targets = stmt.children
    assert token_kind(kind) == "GOTO"
    assert [t.value for t in targets] == ["10", "20", "30"]


def test_line_number_must_be_integer() -> None:
    assert labels("GOTO 1.5") == ["badstmt"]


def test_badstmt_records_reason() -> None:
    (bad,) = compile_line("PRINT (")
    text, reason = bad.children
    assert text.value == "PRINT ("
    assert "Expected expression" in reason.value
