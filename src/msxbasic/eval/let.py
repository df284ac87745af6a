from __future__ import annotations

from ..runtime import Environment
from ..tree import Node, Tree, is_tree, tree_children
from ..types import MsxValue, Continue, CONTINUE
from .arrays import resolve_indexes
from .common import EvalFunc, expect_ident_token

def assign(target: Node, value: MsxValue, env: Environment, eval_func: EvalFunc) -> None:
    """Store into a scalar or an array element; the type must match the name."""
    if is_tree(target):
        name_node, *index_nodes = tree_children(target)
        indexes = resolve_indexes(index_nodes, env, eval_func)
        env.array_set(expect_ident_token(name_node), indexes, value)
        return

    env.set_var(expect_ident_token(target), value)

def target_name(target: Node) -> str:
    if is_tree(target):
        return expect_ident_token(tree_children(target)[0])
    return expect_ident_token(target)

def exec_let(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue:
    target, expr = n.children
    assign(target, eval_func(expr, env), env, eval_func)
    return CONTINUE
