"""Built-in BASIC functions registered via msxbasic.runtime."""

from __future__ import annotations

import math
import re
from typing import List

from .eval.common import MSX_MAX, checked
from .runtime import register_builtin, Environment
from .types import (
    MsxNumber, MsxString, MsxValue,
    TypeMismatch, IllegalFunctionCall, MsxOverflow,
)
from .utils import format_number_for_print, to_int16

_DECIMAL_PREFIX = re.compile(r"(\d*\.?\d*)(?:[ED]([+-]?\d+))?")
_RADIX_PREFIX = {"&H": (16, "0123456789ABCDEF"), "&O": (8, "01234567"), "&B": (2, "01")}

def _num(args: List[MsxValue], idx: int) -> float:
    arg = args[idx]
    if not isinstance(arg, MsxNumber):
        raise TypeMismatch()
    return arg.value

def _str(args: List[MsxValue], idx: int) -> str:
    arg = args[idx]
    if not isinstance(arg, MsxString):
        raise TypeMismatch()
    return arg.value

def _count(args: List[MsxValue], idx: int) -> int:
    """Integer length/position argument; negatives are an illegal call."""
    n = int(_num(args, idx))
    if n < 0:
        raise IllegalFunctionCall()
    return n

def parse_val(text: str) -> float:
    """VAL semantics: optional sign, radix prefix or the longest decimal prefix, else 0."""
    s = text.strip().upper()
    sign = 1.0
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:].lstrip()

    prefix = s[:2]
    if prefix in _RADIX_PREFIX:
        base, valid = _RADIX_PREFIX[prefix]
        digits = ""
        for ch in s[2:]:
            if ch not in valid:
                break
            digits += ch
        return sign * to_int16(int(digits, base)) if digits else 0.0

    m = _DECIMAL_PREFIX.match(s)
    mantissa = m.group(1) if m else ""
    if not any(ch.isdigit() for ch in mantissa):
        return 0.0

    exponent = m.group(2) if m else None
    value = float(mantissa + (f"E{exponent}" if exponent else ""))
    return sign * value

def _bit_pattern(value: float, base: int) -> str:
    n = to_int16(int(value)) & 0xFFFF
    if base == 16:
        return format(n, "X")
    if base == 8:
        return format(n, "o")
    return format(n, "b")

# ---------- string functions ----------

@register_builtin("LEFT$", arity=2)
def fn_left(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(_str(args, 0)[:_count(args, 1)])

@register_builtin("RIGHT$", arity=2)
def fn_right(_env: Environment, args: List[MsxValue]) -> MsxString:
    s = _str(args, 0)
    n = _count(args, 1)
    return MsxString(s[len(s) - n:] if n < len(s) else s)

@register_builtin("MID$", arity=2, max_arity=3)
def fn_mid(_env: Environment, args: List[MsxValue]) -> MsxString:
    s = _str(args, 0)
    start = int(_num(args, 1))
    if start < 1:
        raise IllegalFunctionCall()
    length = _count(args, 2) if len(args) == 3 else len(s)

    if start > len(s):
        return MsxString("")
    return MsxString(s[start - 1:start - 1 + length])

@register_builtin("CHR$")
def fn_chr(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(chr(int(_num(args, 0)) % 256))

@register_builtin("STR$")
def fn_str(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(format_number_for_print(_num(args, 0)))

@register_builtin("HEX$")
def fn_hex(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(_bit_pattern(_num(args, 0), 16))

@register_builtin("OCT$")
def fn_oct(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(_bit_pattern(_num(args, 0), 8))

@register_builtin("BIN$")
def fn_bin(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(_bit_pattern(_num(args, 0), 2))

@register_builtin("STRING$", arity=2)
def fn_string(_env: Environment, args: List[MsxValue]) -> MsxString:
    n = _count(args, 0)
    fill = args[1]

    if isinstance(fill, MsxNumber):
        ch = chr(int(fill.value) % 256)
    elif fill.value:
        ch = fill.value[0]
    else:
        raise IllegalFunctionCall()

    return MsxString(ch * n)

@register_builtin("SPACE$")
def fn_space(_env: Environment, args: List[MsxValue]) -> MsxString:
    return MsxString(" " * _count(args, 0))

# ---------- string-domain numerics ----------

@register_builtin("VAL")
def fn_val(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return checked(parse_val(_str(args, 0)))

@register_builtin("LEN")
def fn_len(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(float(len(_str(args, 0))))

@register_builtin("ASC")
def fn_asc(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    s = _str(args, 0)
    return MsxNumber(float(ord(s[0]) % 256) if s else 0.0)

@register_builtin("INSTR", arity=2, max_arity=3)
def fn_instr(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    if len(args) == 3:
        start = max(1, int(_num(args, 0)))
        hay, needle = _str(args, 1), _str(args, 2)
    else:
        start = 1
        hay, needle = _str(args, 0), _str(args, 1)

    if start > len(hay):
        return MsxNumber(0.0)
    if not needle:
        return MsxNumber(float(start))
    return MsxNumber(float(hay.find(needle, start - 1) + 1))

# ---------- math ----------

@register_builtin("ABS")
def fn_abs(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(abs(_num(args, 0)))

@register_builtin("SGN")
def fn_sgn(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    v = _num(args, 0)
    return MsxNumber(1.0 if v > 0 else (-1.0 if v < 0 else 0.0))

@register_builtin("INT")
def fn_int(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(float(math.floor(_num(args, 0))))

@register_builtin("FIX")
def fn_fix(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(float(math.trunc(_num(args, 0))))

@register_builtin("SQR")
def fn_sqr(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    v = _num(args, 0)
    if v < 0:
        raise IllegalFunctionCall()
    return MsxNumber(math.sqrt(v))

@register_builtin("RND")
def fn_rnd(env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(env.rng.rnd(_num(args, 0)))

@register_builtin("SIN")
def fn_sin(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(math.sin(_num(args, 0)))

@register_builtin("COS")
def fn_cos(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(math.cos(_num(args, 0)))

@register_builtin("TAN")
def fn_tan(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(math.tan(_num(args, 0)))

@register_builtin("EXP")
def fn_exp(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    try:
        result = math.exp(_num(args, 0))
    except OverflowError as exc:
        raise MsxOverflow() from exc
    if result > MSX_MAX:
        raise MsxOverflow()
    return MsxNumber(result)

@register_builtin("LOG")
def fn_log(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    v = _num(args, 0)
    if v <= 0:
        raise IllegalFunctionCall()
    return MsxNumber(math.log(v))

@register_builtin("ATN")
def fn_atn(_env: Environment, args: List[MsxValue]) -> MsxNumber:
    return MsxNumber(math.atan(_num(args, 0)))

