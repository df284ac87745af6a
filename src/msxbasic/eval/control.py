from __future__ import annotations

import math

from ..runtime import Environment, CLS_MARKER
from ..snapshot import load_state_file, save_state_file
from ..tree import Tree, token_kind, tree_children
from ..types import (
    Continue, Skip, Jump, Call, Resume, End, ProgramFile, CONTINUE,
    MsxSyntaxError, ReturnWithoutGosub,
)
from .common import EvalFunc, is_true, line_number, require_number

def exec_goto(n: Tree, _env: Environment, _eval_func: EvalFunc) -> Jump:
    return Jump(line_number(n.children[0]))

def exec_gosub(n: Tree, _env: Environment, _eval_func: EvalFunc) -> Call:
    return Call(line_number(n.children[0]))

def exec_return(n: Tree, env: Environment, _eval_func: EvalFunc) -> Resume | Jump:
    """RETURN [line]: with a line number control goes there instead of back."""
    if not env.gosub_stack:
        raise ReturnWithoutGosub()

    frame = env.gosub_stack.pop()
    if n.children:
        return Jump(line_number(n.children[0]))
    return Resume(frame.resume)

def exec_ongo(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue | Jump | Call:
    """ON n GOTO/GOSUB a, b, c: out-of-range selectors fall through."""
    selector_node, kind, *targets = tree_children(n)
    choice = math.trunc(require_number(eval_func(selector_node, env)))

    if not 1 <= choice <= len(targets):
        return CONTINUE

    target = line_number(targets[choice - 1])
    if token_kind(kind) == 'GOSUB':
        return Call(target)
    return Jump(target)

def exec_ifjump(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue | Skip:
    cond_node, offset = n.children
    if is_true(eval_func(cond_node, env)):
        return CONTINUE
    return Skip(int(offset.value))

def exec_skip(n: Tree, _env: Environment, _eval_func: EvalFunc) -> Continue | Skip:
    count = int(n.children[0].value)
    return Skip(count) if count else CONTINUE

def exec_end(_n: Tree, _env: Environment, _eval_func: EvalFunc) -> End:
    return End()

def exec_clear(_n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    env.clear_all("immediate" if env.cursor.line_index is None else "RUN")
    return CONTINUE

def exec_cls(_n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    env.emit(CLS_MARKER)
    return CONTINUE

def exec_badstmt(_n: Tree, _env: Environment, _eval_func: EvalFunc) -> Continue:
    raise MsxSyntaxError()

def exec_program_file(n: Tree, _env: Environment, _eval_func: EvalFunc) -> ProgramFile:
    return ProgramFile(mode=n.data, name=str(n.children[0].value))

def exec_savef(n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    save_state_file(env, str(n.children[0].value))
    return CONTINUE

def exec_loadf(n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    name_tok, *flags = tree_children(n)
    load_state_file(env, str(name_tok.value), clear_before=bool(flags))
    return CONTINUE
