from __future__ import annotations

from typing import List

from ..runtime import Environment
from ..tree import Node, Tree, tree_children
from ..types import MsxValue, Continue, CONTINUE
from .common import EvalFunc, expect_ident_token, require_number

def resolve_indexes(nodes: List[Node], env: Environment, eval_func: EvalFunc) -> List[int]:
    """Evaluate subscripts; fractional subscripts truncate toward zero."""
    return [int(require_number(eval_func(node, env))) for node in nodes]

def eval_index(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    name_node, *index_nodes = tree_children(n)
    name = expect_ident_token(name_node)
    return env.array_get(name, resolve_indexes(index_nodes, env, eval_func))

def exec_dim(n: Tree, env: Environment, eval_func: EvalFunc) -> Continue:
    """DIM A(3), B$(2,4): each declaration is applied in order."""
    for decl in tree_children(n):
        name_node, *bound_nodes = tree_children(decl)
        bounds = resolve_indexes(bound_nodes, env, eval_func)
        env.dim(expect_ident_token(name_node), bounds)

    return CONTINUE
