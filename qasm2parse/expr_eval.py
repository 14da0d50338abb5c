"""Safe evaluation utilities for OpenQASM 2 arithmetic expressions.

The parser keeps gate parameters in symbolic form; consumers reduce them to
floating-point values with :func:`evaluate`, supplying bindings for the
formal parameters of a gate definition when needed.
"""

from __future__ import annotations

import math
import operator
from typing import Callable, Iterator, List, Mapping, Optional

from qasm2parse.ast_nodes import BinaryOpAST, CallAST, ExprAST, NumberAST, ParamRefAST, PiAST, UnaryOpAST
from qasm2parse.errors import QasmEvaluationError

__all__ = ["ALLOWED_CONSTANTS", "ALLOWED_FUNCS", "evaluate", "free_parameters"]

ALLOWED_CONSTANTS: dict[str, float] = {"pi": float(math.pi)}

ALLOWED_FUNCS: dict[str, Callable[[float], float]] = {
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "exp": math.exp,
    "ln": math.log,
    "sqrt": math.sqrt,
}

_BINARY_OPERATORS: dict[str, Callable[[float, float], float]] = {
    "add": operator.add,
    "sub": operator.sub,
    "mul": operator.mul,
    "div": operator.truediv,
    "pow": math.pow,
}

_UNARY_OPERATORS: dict[str, Callable[[float], float]] = {"neg": operator.neg}


def _make_error(node: ExprAST, code: str, message: str) -> QasmEvaluationError:
    """Build an evaluation error anchored at the supplied node."""
    return QasmEvaluationError(code, message, node.line, node.col)


def evaluate(expr: ExprAST, bindings: Optional[Mapping[str, float]] = None) -> float:
    """Evaluate a parsed OpenQASM expression.

    Parameters
    ----------
    expr : ExprAST
        Expression node produced by the parser.
    bindings : Mapping[str, float], optional
        Values for gate formal parameters referenced by the expression.

    Returns
    -------
    float
        Evaluated numeric value expressed in radians (float64).

    Raises
    ------
    QasmEvaluationError
        ``E401`` if a parameter is unbound, ``E402`` on division by zero,
        math-domain errors, overflow or an expression nested too deeply to
        evaluate.
    """
    try:
        return _evaluate(expr, bindings)
    except RecursionError as exc:
        raise _make_error(expr, "E402", "Expression nesting too deep to evaluate.") from exc


def _evaluate(expr: ExprAST, bindings: Optional[Mapping[str, float]]) -> float:
    # Unary chains are unwound iteratively.
    unary_ops: List[Callable[[float], float]] = []
    while isinstance(expr, UnaryOpAST):
        unary = _UNARY_OPERATORS.get(expr.op)
        if unary is None:
            raise _make_error(expr, "E402", f"Unsupported unary operator '{expr.op}'.")
        unary_ops.append(unary)
        expr = expr.operand
    value = _evaluate_operand(expr, bindings)
    for unary in reversed(unary_ops):
        value = float(unary(value))
    return value


def _evaluate_operand(expr: ExprAST, bindings: Optional[Mapping[str, float]]) -> float:
    if isinstance(expr, NumberAST):
        return float(expr.value)

    if isinstance(expr, PiAST):
        return ALLOWED_CONSTANTS["pi"]

    if isinstance(expr, ParamRefAST):
        if bindings is None or expr.name not in bindings:
            raise _make_error(expr, "E401", f"Parameter '{expr.name}' has no bound value.")
        return float(bindings[expr.name])

    if isinstance(expr, BinaryOpAST):
        binary = _BINARY_OPERATORS.get(expr.op)
        if binary is None:
            raise _make_error(expr, "E402", f"Unsupported binary operator '{expr.op}'.")
        left = _evaluate(expr.left, bindings)
        right = _evaluate(expr.right, bindings)
        try:
            return float(binary(left, right))
        except ZeroDivisionError as exc:
            raise _make_error(expr.right, "E402", "Division by zero in expression.") from exc
        except (ValueError, OverflowError) as exc:
            raise _make_error(expr, "E402", f"Operator '{expr.op}' failed: {exc}.") from exc

    if isinstance(expr, CallAST):
        func = ALLOWED_FUNCS.get(expr.func)
        if func is None:
            raise _make_error(expr, "E402", f"Function '{expr.func}' is not permitted.")
        argument = _evaluate(expr.arg, bindings)
        try:
            return float(func(argument))
        except (ValueError, OverflowError) as exc:
            raise _make_error(expr, "E402", f"Function '{expr.func}' failed for argument {argument!r}: {exc}.") from exc

    raise TypeError(f"Unsupported expression node: {type(expr)!r}")


def free_parameters(expr: ExprAST) -> Iterator[ParamRefAST]:
    """Yield every parameter reference in ``expr``, left to right."""
    pending: List[ExprAST] = [expr]
    while pending:
        node = pending.pop()
        if isinstance(node, ParamRefAST):
            yield node
        elif isinstance(node, UnaryOpAST):
            pending.append(node.operand)
        elif isinstance(node, BinaryOpAST):
            pending.append(node.right)
            pending.append(node.left)
        elif isinstance(node, CallAST):
            pending.append(node.arg)
