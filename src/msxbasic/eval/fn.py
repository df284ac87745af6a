from __future__ import annotations

from typing import Dict

from ..runtime import Environment
from ..tree import Tree, tree_children
from ..types import (
    Builtins, MsxString, MsxValue, UserFunction, Continue, CONTINUE,
    MsxSyntaxError, ArgumentCountError, TypeMismatch, is_string_name,
)
from .common import EvalFunc, expect_ident_token
from .expr import eval_args

def eval_builtin_call(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    name_node, *arg_nodes = tree_children(n)
    builtin = Builtins.functions.get(str(name_node.value))
    if builtin is None:
        raise MsxSyntaxError()

    if not builtin.min_arity <= len(arg_nodes) <= builtin.max_arity:
        raise MsxSyntaxError()

    return builtin.fn(env, eval_args(arg_nodes, env, eval_func))

def eval_fn_call(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    """
    FNname(args): bind each parameter to its argument for the duration of
    the body. Names that are not parameters read the global variables.
    """
    name_node, *arg_nodes = tree_children(n)
    name = expect_ident_token(name_node)

    fn = env.functions.get(name)
    if fn is None:
        raise MsxSyntaxError()

    if len(arg_nodes) != len(fn.params):
        raise ArgumentCountError()

    scope: Dict[str, MsxValue] = {}
    for param, value in zip(fn.params, eval_args(arg_nodes, env, eval_func)):
        if is_string_name(param) != isinstance(value, MsxString):
            raise TypeMismatch()
        scope[param] = value

    env.push_fn_scope(scope)
    try:
        result = eval_func(fn.body, env)
    finally:
        env.pop_fn_scope()

    if is_string_name(name) != isinstance(result, MsxString):
        raise TypeMismatch()
    return result

def exec_deffn(n: Tree, env: Environment, _eval_func: EvalFunc) -> Continue:
    name_node, params_node, body_text, body = tree_children(n)
    params = [expect_ident_token(p) for p in tree_children(params_node)]
    env.define_function(UserFunction(
        name=expect_ident_token(name_node),
        params=params,
        body_text=str(body_text.value),
        body=body,
    ))
    return CONTINUE
