from __future__ import annotations

import math
from typing import List

from ..runtime import Environment
from ..tree import Node, Tree, token_kind, tree_children
from ..types import (
    MsxNumber, MsxString, MsxValue,
    TypeMismatch, IllegalFunctionCall, DivisionByZero, MsxOverflow,
)
from .common import EvalFunc, checked, require_number, to_msx16, truth

def as_op(node: Node) -> str:
    """Operator token kind held by an addop/mulop/cmpop/bitop wrapper."""
    if isinstance(node, Tree):
        return as_op(tree_children(node)[0])
    return str(token_kind(node))

def eval_unary(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    op, operand_node = n.children
    value = require_number(eval_func(operand_node, env))
    return checked(-value if token_kind(op) == 'MINUS' else value)

def eval_not(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    value = require_number(eval_func(n.children[0], env))
    return MsxNumber(float(~to_msx16(value)))

def power(base: float, exponent: float) -> MsxNumber:
    if base < 0 and not float(exponent).is_integer():
        raise IllegalFunctionCall()
    try:
        result = math.pow(base, exponent)
    except OverflowError as exc:
        raise MsxOverflow() from exc
    except ValueError as exc:
        # 0 raised to a negative power
        raise MsxOverflow() from exc
    return checked(result)

def eval_pow(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    lhs, rhs = n.children
    base = require_number(eval_func(lhs, env))
    exponent = require_number(eval_func(rhs, env))
    return power(base, exponent)

def apply_binary_operator(op: str, lhs: MsxValue, rhs: MsxValue) -> MsxValue:
    if op == 'PLUS':
        if isinstance(lhs, MsxString) and isinstance(rhs, MsxString):
            return MsxString(lhs.value + rhs.value)
        return checked(require_number(lhs) + require_number(rhs))

    a = require_number(lhs)
    b = require_number(rhs)

    match op:
        case 'MINUS':
            return checked(a - b)
        case 'STAR':
            return checked(a * b)
        case 'SLASH':
            if b == 0:
                raise DivisionByZero()
            return checked(a / b)

    raise TypeMismatch()

def eval_infix(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    lhs_node, op_node, rhs_node = n.children
    lhs = eval_func(lhs_node, env)
    rhs = eval_func(rhs_node, env)
    return apply_binary_operator(as_op(op_node), lhs, rhs)

def eval_idiv(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    a = to_msx16(require_number(eval_func(n.children[0], env)))
    b = to_msx16(require_number(eval_func(n.children[1], env)))
    if b == 0:
        raise DivisionByZero()
    return MsxNumber(float(math.trunc(a / b)))

def eval_mod(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    a = require_number(eval_func(n.children[0], env))
    b = require_number(eval_func(n.children[1], env))
    if b == 0:
        raise DivisionByZero()
    return checked(math.fmod(a, b))

def compare_values(op: str, lhs: MsxValue, rhs: MsxValue) -> bool:
    if isinstance(lhs, MsxString) != isinstance(rhs, MsxString):
        raise TypeMismatch()

    a = lhs.value
    b = rhs.value

    match op:
        case 'EQ':
            return a == b
        case 'NEQ':
            return a != b
        case 'LT':
            return a < b
        case 'LTE':
            return a <= b
        case 'GT':
            return a > b
        case 'GTE':
            return a >= b

    raise TypeMismatch()

def eval_compare(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    lhs_node, op_node, rhs_node = n.children
    lhs = eval_func(lhs_node, env)
    rhs = eval_func(rhs_node, env)
    return truth(compare_values(as_op(op_node), lhs, rhs))

def bitwise(op: str, a: int, b: int) -> int:
    match op:
        case 'AND':
            return a & b
        case 'OR':
            return a | b
        case 'XOR':
            return a ^ b
        case 'EQV':
            return ~(a ^ b)
        case 'IMP':
            return (~a) | b

    raise TypeMismatch()

def eval_bitwise(n: Tree, env: Environment, eval_func: EvalFunc) -> MsxValue:
    lhs_node, op_node, rhs_node = n.children
    a = to_msx16(require_number(eval_func(lhs_node, env)))
    b = to_msx16(require_number(eval_func(rhs_node, env)))
    return MsxNumber(float(to_msx16(bitwise(as_op(op_node), a, b))))

def eval_args(nodes: List[Node], env: Environment, eval_func: EvalFunc) -> List[MsxValue]:
    return [eval_func(node, env) for node in nodes]
