"""Reduce an expression tree to a float.

Arithmetic follows IEEE-754 doubles throughout: dividing by zero gives an
infinity (or NaN for 0/0), the square root or logarithm of a negative number
gives NaN, and overflow gives an infinity. None of these raise.

>>> evaluate("2 + 3 * 4")
14.0
>>> evaluate("1 / 0")
inf
>>> evaluate("sqrt(-1)")
nan
"""
import logging
import math
from types import MappingProxyType

import numpy as np

from errors import SemanticError
from parser import Binary, Constant, Function, Number, Root, to_ast

logger = logging.getLogger(__name__)

CONSTANTS = MappingProxyType({"PI": math.pi, "E": math.e})
FUNCTIONS = MappingProxyType(
    {
        "SIN": np.sin,
        "COS": np.cos,
        "TAN": np.tan,
        "ATAN": np.arctan,
        "EXP": np.exp,
        "ABS": np.abs,
        "LOG": np.log10,
        "LN": np.log,
        "SQRT": np.sqrt,
    }
)
BINARY_OPS = MappingProxyType(
    {
        "+": np.add,
        "-": np.subtract,
        "*": np.multiply,
        "/": np.true_divide,
        "^": np.power,
    }
)


def _eval(node):
    t = type(node)
    if t is Number:
        return np.float64(node.value)
    if t is Constant:
        if (value := CONSTANTS.get(node.name)) is None:
            raise SemanticError(f'Undefined constant "{node.name}".', node.name)
        return np.float64(value)
    if t is Function:
        arg = _eval(node.argument)
        if (fun := FUNCTIONS.get(node.name)) is None:
            raise SemanticError(f'Undefined function "{node.name}".', node.name)
        return fun(arg)
    if t is Binary:
        # A chain `a - b - c ...` nests to the left without bound; walk that
        # spine in a loop and only recurse into right operands.
        spine = []
        while type(node) is Binary:
            spine.append(node)
            node = node.left
        value = _eval(node)
        for binary in reversed(spine):
            right = _eval(binary.right)
            if (op := BINARY_OPS.get(binary.operator)) is None:
                raise SemanticError(
                    f'Undefined operator "{binary.operator}".', binary.operator
                )
            value = op(value, right)
        return value
    if t is Root:
        return _eval(node.child)
    raise TypeError(f"Not an expression node: {node!r}")


def evaluate_node(node):
    """Evaluate a tree from `parser.parse` (or any of its sub-trees)."""
    with np.errstate(all="ignore"):
        return float(_eval(node))


def evaluate(s):
    """Evaluate the expression text `s`.

    Raises the first `errors.CalcError` met while tokenizing, parsing or
    evaluating.
    """
    result = evaluate_node(to_ast(s))
    logger.debug("%r = %r", s, result)
    return result
