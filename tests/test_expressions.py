from __future__ import annotations

import pytest

from tests.support.harness import (
    Environment,
    MsxNumber,
    MsxString,
    TypeMismatch,
    evaluate,
)
from msxbasic.types import DivisionByZero, IllegalFunctionCall, MsxOverflow

NUMERIC_CASES = [
    pytest.param("1+2*3", 7, id="precedence"),
    pytest.param("(1+2)*3", 9, id="parens"),
    pytest.param("10/4", 2.5, id="float-division"),
    pytest.param("7\\2", 3, id="integer-division"),
    pytest.param("-7\\2", -3, id="integer-division-truncates"),
    pytest.param("7.9\\2.9", 3, id="integer-division-truncates-operands"),
    pytest.param("7 MOD 3", 1, id="mod"),
    pytest.param("7 % 3", 1, id="mod-percent"),
    pytest.param("-7 MOD 3", -1, id="mod-keeps-dividend-sign"),
    pytest.param("2^10", 1024, id="power"),
    pytest.param("2^3^2", 64, id="power-left-assoc"),
    pytest.param("-2^2", -4, id="unary-below-power"),
    pytest.param("2^-1", 0.5, id="negative-exponent"),
    pytest.param("--3", 3, id="double-negation"),
    pytest.param("1E3", 1000, id="exponent-literal"),
    pytest.param("&HFF", 255, id="hex"),
    pytest.param("&HFFFF", -1, id="hex-wraps-16-bit"),
    pytest.param("&O17", 15, id="octal"),
    pytest.param("&B1010", 10, id="binary"),
]


@pytest.mark.parametrize("source, expected", NUMERIC_CASES)
def test_numeric_expressions(source: str, expected: float) -> None:
    assert evaluate(source) == MsxNumber(float(expected))


LOGIC_CASES = [
    pytest.param("1=1", -1, id="true-is-minus-one"),
    pytest.param("1=2", 0, id="false-is-zero"),
    pytest.param("1<>2", -1, id="neq"),
    pytest.param("2>=2", -1, id="gte"),
    pytest.param('"A"<"B"', -1, id="string-compare"),
    pytest.param('"ABC"="ABC"', -1, id="string-equal"),
    pytest.param("5 AND 3", 1, id="and"),
    pytest.param("5 OR 3", 7, id="or"),
    pytest.param("5 XOR 3", 6, id="xor"),
    pytest.param("NOT 0", -1, id="not-zero"),
    pytest.param("NOT -1", 0, id="not-true"),
    pytest.param("0 EQV 0", -1, id="eqv"),
    pytest.param("-1 IMP 0", 0, id="imp"),
    pytest.param("0 IMP 0", -1, id="imp-vacuous"),
    pytest.param("1<2 AND 3<4", -1, id="compare-before-and"),
    pytest.param("32767+1 AND 1", 0, id="bitwise-wraps-operands"),
    pytest.param("2.7 OR 0", 2, id="bitwise-truncates"),
]


@pytest.mark.parametrize("source, expected", LOGIC_CASES)
def test_logic_expressions(source: str, expected: int) -> None:
    assert evaluate(source) == MsxNumber(float(expected))


def test_string_concatenation() -> None:
    assert evaluate('"MSX"+" "+"BASIC"') == MsxString("MSX BASIC")


ERROR_CASES = [
    pytest.param('"A"+1', TypeMismatch, id="string-plus-number"),
    pytest.param('"A"*2', TypeMismatch, id="string-times"),
    pytest.param('"A"<1', TypeMismatch, id="mixed-compare"),
    pytest.param('-"A"', TypeMismatch, id="negate-string"),
    pytest.param('NOT "A"', TypeMismatch, id="not-string"),
    pytest.param("1/0", DivisionByZero, id="divide-by-zero"),
    pytest.param("1\\0", DivisionByZero, id="idiv-by-zero"),
    pytest.param("1\\0.5", DivisionByZero, id="idiv-by-truncated-zero"),
    pytest.param("5 MOD 0", DivisionByZero, id="mod-by-zero"),
    pytest.param("1E38*10", MsxOverflow, id="overflow"),
    pytest.param("0^-1", MsxOverflow, id="zero-to-negative-power"),
    pytest.param("(-8)^0.5", IllegalFunctionCall, id="negative-base-fraction"),
]


@pytest.mark.parametrize("source, exc", ERROR_CASES)
def test_expression_errors(source: str, exc: type[Exception]) -> None:
    with pytest.raises(exc):
        evaluate(source)


def test_variables_default_by_type() -> None:
    env = Environment()
    assert evaluate("X", env) == MsxNumber(0.0)
    assert evaluate("X$", env) == MsxString("")


def test_variables_are_read_from_environment() -> None:
    env = Environment()
    env.set_var("A", MsxNumber(4.0))
    env.set_var("A$", MsxString("four"))
    assert evaluate("A*A", env) == MsxNumber(16.0)
    assert evaluate('A$+"!"', env) == MsxString("four!")


def test_scalar_and_string_namespaces_are_separate() -> None:
    env = Environment()
    env.set_var("A", MsxNumber(1.0))
    assert evaluate("A$", env) == MsxString("")


def test_assigning_wrong_type_is_mismatch() -> None:
    env = Environment()
    with pytest.raises(TypeMismatch):
        env.set_var("A$", MsxNumber(1.0))
    with pytest.raises(TypeMismatch):
        env.set_var("A", MsxString("x"))
