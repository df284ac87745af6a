from __future__ import annotations

from typing import Callable, Optional
from lark import Token

from .runtime import Environment, init_builtins
from .tree import Node, Tree, is_token
from .types import MsxValue, MsxSyntaxError

from .eval.arrays import eval_index
from .eval.common import token_number, token_radix, token_string
from .eval.expr import (
    eval_unary,
    eval_not,
    eval_pow,
    eval_infix,
    eval_idiv,
    eval_mod,
    eval_compare,
    eval_bitwise,
)
from .eval.fn import eval_builtin_call, eval_fn_call

# ---------------- Public API ----------------

def eval_expr(ast: Node, env: Optional[Environment] = None) -> MsxValue:
    init_builtins()

    if env is None:
        env = Environment()

    return eval_node(ast, env)

# ---------------- Core evaluator ----------------

def eval_node(n: Node, env: Environment) -> MsxValue:
    if is_token(n):
        return _eval_token(n, env)

    d = n.data
    handler = _NODE_DISPATCH.get(d)
    if handler is not None:
        return handler(n, env)

    raise MsxSyntaxError()

def _eval_token(t: Token, env: Environment) -> MsxValue:
    handler = _TOKEN_DISPATCH.get(t.type)
    if handler:
        return handler(t, env)

    if t.type == 'IDENT':
        return env.get_var(t.value)

    raise MsxSyntaxError()

_NODE_DISPATCH: dict[str, Callable[[Tree, Environment], MsxValue]] = {
    'unary': lambda n, env: eval_unary(n, env, eval_node),
    'notexpr': lambda n, env: eval_not(n, env, eval_node),
    'powexpr': lambda n, env: eval_pow(n, env, eval_node),
    'mulexpr': lambda n, env: eval_infix(n, env, eval_node),
    'addexpr': lambda n, env: eval_infix(n, env, eval_node),
    'idivexpr': lambda n, env: eval_idiv(n, env, eval_node),
    'modexpr': lambda n, env: eval_mod(n, env, eval_node),
    'compare': lambda n, env: eval_compare(n, env, eval_node),
    'bitexpr': lambda n, env: eval_bitwise(n, env, eval_node),
    'index': lambda n, env: eval_index(n, env, eval_node),
    'call': lambda n, env: eval_builtin_call(n, env, eval_node),
    'fncall': lambda n, env: eval_fn_call(n, env, eval_node),
}

_TOKEN_DISPATCH: dict[str, Callable[[Token, Environment], MsxValue]] = {
    'NUMBER': token_number,
    'RADIX': token_radix,
    'STRING': token_string,
}
