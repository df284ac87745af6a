"""
Statement dispatch: run one compiled instruction against the environment
and report what control should do next.
"""

from __future__ import annotations

from typing import Callable

from .evaluator import eval_node
from .runtime import Environment
from .tree import Tree
from .types import ExecSignal, MsxSyntaxError

from .eval.arrays import exec_dim
from .eval.control import (
    exec_goto,
    exec_gosub,
    exec_return,
    exec_ongo,
    exec_ifjump,
    exec_skip,
    exec_end,
    exec_clear,
    exec_cls,
    exec_badstmt,
    exec_program_file,
    exec_savef,
    exec_loadf,
)
from .eval.data import exec_data, exec_read, exec_restore
from .eval.fn import exec_deffn
from .eval.io import exec_print, exec_input
from .eval.let import exec_let
from .eval.loops import exec_for, exec_next

def execute_statement(n: Tree, env: Environment) -> ExecSignal:
    handler = _STMT_DISPATCH.get(n.data)
    if handler is None:
        raise MsxSyntaxError()
    return handler(n, env)

_STMT_DISPATCH: dict[str, Callable[[Tree, Environment], ExecSignal]] = {
    'print': lambda n, env: exec_print(n, env, eval_node),
    'input': lambda n, env: exec_input(n, env, eval_node),
    'let': lambda n, env: exec_let(n, env, eval_node),
    'ifjump': lambda n, env: exec_ifjump(n, env, eval_node),
    'skip': lambda n, env: exec_skip(n, env, eval_node),
    'goto': lambda n, env: exec_goto(n, env, eval_node),
    'gosub': lambda n, env: exec_gosub(n, env, eval_node),
    'return': lambda n, env: exec_return(n, env, eval_node),
    'ongo': lambda n, env: exec_ongo(n, env, eval_node),
    'for': lambda n, env: exec_for(n, env, eval_node),
    'next': lambda n, env: exec_next(n, env, eval_node),
    'dim': lambda n, env: exec_dim(n, env, eval_node),
    'data': lambda n, env: exec_data(n, env, eval_node),
    'read': lambda n, env: exec_read(n, env, eval_node),
    'restore': lambda n, env: exec_restore(n, env, eval_node),
    'deffn': lambda n, env: exec_deffn(n, env, eval_node),
    'clear': lambda n, env: exec_clear(n, env, eval_node),
    'cls': lambda n, env: exec_cls(n, env, eval_node),
    'end': lambda n, env: exec_end(n, env, eval_node),
    'stop': lambda n, env: exec_end(n, env, eval_node),
    'savef': lambda n, env: exec_savef(n, env, eval_node),
    'loadf': lambda n, env: exec_loadf(n, env, eval_node),
    'cload': lambda n, env: exec_program_file(n, env, eval_node),
    'save': lambda n, env: exec_program_file(n, env, eval_node),
    'badstmt': lambda n, env: exec_badstmt(n, env, eval_node),
}
