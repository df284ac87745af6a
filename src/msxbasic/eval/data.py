from __future__ import annotations

import re

from ..lexer import LexError
from ..parser import ParseError, parse_expression
from ..runtime import Environment
from ..tree import Node, Tree, tree_children
from ..types import (
    MsxNumber, MsxString, MsxValue, Continue, CONTINUE,
    MsxSyntaxError, TypeMismatch, is_string_name,
)
from ..utils import decode_basic_string
from .common import EvalFunc, line_number, require_number
from .let import assign, target_name

_BARE_WORD = re.compile(r"[A-Z][A-Z0-9]*\$?", re.IGNORECASE)

def exec_data(n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    """
    DATA inside a program was harvested when RUN started, so it does
    nothing when reached. Typed at the prompt it feeds the pool directly.
    """
    if env.cursor.line_index is None:
        env.add_data(str(n.children[0].value))
    return CONTINUE

def data_value(raw: str, target: Node, env: Environment, eval_func: EvalFunc) -> MsxValue:
    if is_string_name(target_name(target)):
        decoded = decode_basic_string(raw)
        return MsxString(decoded if decoded is not None else raw)

    if decode_basic_string(raw) is not None or _BARE_WORD.fullmatch(raw):
        raise TypeMismatch()

    try:
        expr = parse_expression(raw)
    except (ParseError, LexError) as exc:
        raise MsxSyntaxError() from exc
    return MsxNumber(require_number(eval_func(expr, env)))

def exec_read(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue:
    for target in tree_children(n):
        value = data_value(env.read_data(), target, env, eval_func)
        assign(target, value, env, eval_func)
    return CONTINUE

def exec_restore(n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    children = tree_children(n)
    env.restore(line_number(children[0]) if children else None)
    return CONTINUE
