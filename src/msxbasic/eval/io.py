from __future__ import annotations

import re
from typing import List, Tuple

from ..runtime import Environment, PRINT_ZONE
from ..tree import Node, Tree, is_token, token_kind, tree_children
from ..types import (
    MsxString, MsxValue, InputContext, Cursor,
    Continue, Suspend, CONTINUE, is_string_name,
)
from ..utils import decode_basic_string, format_number_for_print, split_input_fields
from .common import EvalFunc, checked
from .let import assign, target_name

_NUMERIC_INPUT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([ED][+-]?\d+)?", re.IGNORECASE)

REDO_FROM_START = "?Redo from start"
EXTRA_IGNORED = "?Extra ignored"
MORE_INPUT = "??"

def _is_separator(node: Node) -> bool:
    return is_token(node) and token_kind(node) in ('SEMI', 'COMMA')

def render_print(items: List[Node], env: Environment, eval_func: EvalFunc) -> str:
    """
    Render a PRINT list.

    `,` pads to the next 14-column zone, `;` glues items together. A string
    that follows a number on the same line gets one space unless a zone pad
    already separates them. A trailing separator suppresses the newline.
    """
    if not items:
        return "\n"

    line = ""
    prev_numeric = False
    after_comma = False

    for item in items:
        if _is_separator(item):
            if token_kind(item) == 'COMMA':
                col = len(line)
                line += " " * (((col // PRINT_ZONE) + 1) * PRINT_ZONE - col)
                after_comma = True
            continue

        value: MsxValue = eval_func(item, env)

        if isinstance(value, MsxString):
            if prev_numeric and not after_comma and line:
                line += " "
            line += value.value
            prev_numeric = False
        else:
            line += format_number_for_print(value.value)
            prev_numeric = True
        after_comma = False

    if not line:
        return "\n"

    if _is_separator(items[-1]):
        return line
    return line + "\n"

def exec_print(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue:
    env.emit(render_print(tree_children(n), env, eval_func))
    return CONTINUE

def input_prompt(text: str) -> str:
    return text if text.endswith("?") else text + "?"

def exec_input(n: Tree, env: Environment, _eval_func: EvalFunc) -> Suspend:
    """Suspend the program until the user supplies the values."""
    prompt_tok, targets = tree_children(n)
    prompt = input_prompt(str(prompt_tok.value))
    resume = Cursor(env.cursor.line_index, env.cursor.sidx + 1)
    env.input_ctx = InputContext(targets=tree_children(targets), prompt=prompt, resume=resume)
    return Suspend(prompt)

def feed_input(
    env: Environment, ctx: InputContext, line: str, eval_func: EvalFunc
) -> Tuple[str, bool]:
    """
    Apply one line typed in answer to the pending INPUT `ctx`.

    Returns the text to show and whether every target is now filled. Values
    are committed only when the whole line parses; a bad number restarts the
    statement with "?Redo from start".
    """
    fields = split_input_fields(line)
    if not fields:
        return MORE_INPUT, False

    remaining = ctx.targets[ctx.next_index:]
    staged: List[MsxValue] = []

    for target, raw in zip(remaining, fields):
        if is_string_name(target_name(target)):
            decoded = decode_basic_string(raw)
            staged.append(MsxString(decoded if decoded is not None else raw))
            continue

        if not _NUMERIC_INPUT.fullmatch(raw):
            ctx.next_index = 0
            return f"{REDO_FROM_START}\n{ctx.prompt}", False
        staged.append(checked(float(raw.upper().replace("D", "E"))))

    for target, value in zip(remaining, staged):
        assign(target, value, env, eval_func)
    ctx.next_index += len(staged)

    if ctx.next_index < len(ctx.targets):
        return MORE_INPUT, False

    env.input_ctx = None
    if len(fields) > len(remaining):
        return f"{EXTRA_IGNORED}\n", True
    return "", True
