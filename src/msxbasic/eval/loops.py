from __future__ import annotations

from typing import Optional

from ..runtime import Environment
from ..tree import Tree, tree_children
from ..types import (
    MsxNumber, ForFrame, Cursor, Continue, Resume, CONTINUE,
    MsxSyntaxError, NextWithoutFor, TypeMismatch, is_string_name,
)
from .common import EvalFunc, expect_ident_token, require_number

def exec_for(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue:
    """
    FOR I = a TO b [STEP s]

    The body always runs once; NEXT decides whether to loop back. Starting
    a loop on a variable that already has an open FOR discards that frame
    and everything nested inside it.
    """
    var_node, start_node, limit_node, step_node = tree_children(n)
    name = expect_ident_token(var_node)
    if is_string_name(name):
        raise TypeMismatch()

    start = require_number(eval_func(start_node, env))
    limit = require_number(eval_func(limit_node, env))
    step = require_number(eval_func(step_node, env))
    if step == 0:
        raise MsxSyntaxError()

    env.set_var(name, MsxNumber(start))

    for idx, frame in enumerate(env.for_stack):
        if frame.var == name:
            del env.for_stack[idx:]
            break

    resume = Cursor(env.cursor.line_index, env.cursor.sidx + 1)
    env.for_stack.append(ForFrame(var=name, limit=limit, step=step, resume=resume))
    return CONTINUE

def _step_frame(env: Environment) -> Optional[Resume]:
    if not env.for_stack:
        raise NextWithoutFor()

    frame = env.for_stack[-1]
    value = require_number(env.get_var(frame.var)) + frame.step
    env.set_var(frame.var, MsxNumber(value))
    env.throttle()

    if (frame.step > 0 and value <= frame.limit) or (frame.step < 0 and value >= frame.limit):
        return Resume(frame.resume)

    env.for_stack.pop()
    return None

def exec_next(n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue | Resume:
    """
    NEXT [I[, J...]] steps the innermost loop. Each listed name closes one
    more level once its loop is exhausted; the names themselves are not
    matched against the frames.
    """
    levels = max(1, len(tree_children(n)))

    for _ in range(levels):
        signal = _step_frame(env)
        if signal is not None:
            return signal

    return CONTINUE
