from __future__ import annotations

import math
from typing import Any, Callable

from lark import Token

from ..runtime import Environment
from ..tree import Node, is_token, token_kind
from ..types import (
    MsxNumber, MsxString, MsxValue,
    TypeMismatch, IllegalFunctionCall, MsxOverflow, MsxSyntaxError,
)
from ..utils import to_int16

EvalFunc = Callable[[Node, Environment], MsxValue]

# Largest magnitude an MSX floating point value can hold
MSX_MAX = 1.7014118e38

TRUE = MsxNumber(-1.0)
FALSE = MsxNumber(0.0)

def require_number(value: Any) -> float:
    if not isinstance(value, MsxNumber):
        raise TypeMismatch()
    return value.value

def require_string(value: Any) -> str:
    if not isinstance(value, MsxString):
        raise TypeMismatch()
    return value.value

def checked(value: float) -> MsxNumber:
    """Wrap an arithmetic result, rejecting NaN and out-of-range magnitudes."""
    if math.isnan(value):
        raise IllegalFunctionCall()
    if math.isinf(value) or abs(value) > MSX_MAX:
        raise MsxOverflow()
    return MsxNumber(value)

def to_msx16(value: float) -> int:
    """Truncate toward zero and wrap to a signed 16-bit word."""
    return to_int16(math.trunc(value))

def truth(value: bool) -> MsxNumber:
    return TRUE if value else FALSE

def is_true(value: MsxValue) -> bool:
    return require_number(value) != 0

def token_number(token: Token, _: Any) -> MsxNumber:
    return checked(float(token.value))

def token_radix(token: Token, _: Any) -> MsxNumber:
    text = str(token.value)
    base = {"H": 16, "O": 8, "B": 2}[text[1]]
    return MsxNumber(float(to_int16(int(text[2:], base))))

def token_string(token: Token, _: Any) -> MsxString:
    return MsxString(str(token.value))

def expect_ident_token(node: Any) -> str:
    if is_token(node) and token_kind(node) == 'IDENT':
        return str(node.value)

    raise MsxSyntaxError()

def line_number(node: Any) -> int:
    return int(node.value)
