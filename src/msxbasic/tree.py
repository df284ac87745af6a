"""Shared helpers for working with the lark Tree/Token nodes the parser builds."""
from __future__ import annotations
from typing import List, Optional

from lark import Token, Tree
from typing_extensions import TypeAlias, TypeGuard


Node: TypeAlias = Tree | Token


def is_tree(node: object) -> TypeGuard[Tree]:
    return isinstance(node, Tree)

def is_token(node: object) -> TypeGuard[Token]:
    return isinstance(node, Token)

def tree_label(node: object) -> Optional[str]:
    return node.data if is_tree(node) else None

def token_kind(node: object) -> Optional[str]:
    return str(node.type) if is_token(node) else None

def tree_children(node: object) -> List[Node]:
    if not is_tree(node):
        return []

    children = getattr(node, "children", None)
    if children is None:
        return []

    return list(children)
