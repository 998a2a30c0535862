"""Evaluator contract for user supplied pricing formulas."""
from __future__ import annotations

import ast
import math
import operator
from typing import Any, Callable, Dict, Mapping, Protocol


class FormulaError(ValueError):
    """Raised when a pricing expression cannot be parsed or evaluated."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"cannot evaluate '{expression}': {reason}")
        self.expression = expression
        self.reason = reason


class FormulaEvaluator(Protocol):
    def evaluate(self, expression: str, bindings: Mapping[str, float]) -> float:
        """Return the numeric value of ``expression`` under ``bindings``."""


def _float_pow(base: Any, exponent: Any) -> float:
    # Integer operands would be raised with unbounded precision.
    return math.pow(float(base), float(exponent))


_BINARY_OPERATORS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _float_pow,
}

_UNARY_OPERATORS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_COMPARATORS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}

DEFAULT_FUNCTIONS: Dict[str, Callable[..., float]] = {
    "min": min,
    "max": max,
    "abs": abs,
    "round": round,
    "sqrt": math.sqrt,
    "log": math.log,
    "log10": math.log10,
    "exp": math.exp,
    "floor": math.floor,
    "ceil": math.ceil,
    "pow": math.pow,
}


class SafeFormulaEvaluator:
    """Arithmetic-only evaluator backed by :mod:`ast`.

    Only numeric literals, bound names, arithmetic operators, conditional
    expressions and a fixed table of math functions are accepted.
    """

    def __init__(self, functions: Mapping[str, Callable[..., float]] | None = None) -> None:
        self._functions = dict(DEFAULT_FUNCTIONS if functions is None else functions)
        self._cache: Dict[str, ast.Expression] = {}

    def evaluate(self, expression: str, bindings: Mapping[str, float]) -> float:
        tree = self._parse(expression)
        try:
            value = self._eval(tree.body, expression, bindings)
        except FormulaError:
            raise
        except (ArithmeticError, ValueError, TypeError) as exc:
            raise FormulaError(expression, str(exc) or exc.__class__.__name__) from exc
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FormulaError(expression, "result is not a number")
        return float(value)

    def _parse(self, expression: str) -> ast.Expression:
        cached = self._cache.get(expression)
        if cached is not None:
            return cached
        if not expression or not expression.strip():
            raise FormulaError(expression, "expression is empty")
        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as exc:
            raise FormulaError(expression, f"syntax error: {exc.msg}") from exc
        self._cache[expression] = tree
        return tree

    def _eval(self, node: ast.AST, expression: str, bindings: Mapping[str, float]) -> Any:
        if isinstance(node, ast.Constant):
            if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
                raise FormulaError(expression, f"unsupported literal {node.value!r}")
            return node.value
        if isinstance(node, ast.Name):
            if node.id in bindings:
                return bindings[node.id]
            raise FormulaError(expression, f"unknown variable '{node.id}'")
        if isinstance(node, ast.BinOp):
            op = _BINARY_OPERATORS.get(type(node.op))
            if op is None:
                raise FormulaError(expression, f"operator {type(node.op).__name__} not allowed")
            return op(self._eval(node.left, expression, bindings), self._eval(node.right, expression, bindings))
        if isinstance(node, ast.UnaryOp):
            op = _UNARY_OPERATORS.get(type(node.op))
            if op is None:
                raise FormulaError(expression, f"operator {type(node.op).__name__} not allowed")
            return op(self._eval(node.operand, expression, bindings))
        if isinstance(node, ast.IfExp):
            condition = self._eval(node.test, expression, bindings)
            branch = node.body if condition else node.orelse
            return self._eval(branch, expression, bindings)
        if isinstance(node, ast.Compare):
            left = self._eval(node.left, expression, bindings)
            for op_node, comparator in zip(node.ops, node.comparators):
                op = _COMPARATORS.get(type(op_node))
                if op is None:
                    raise FormulaError(expression, f"comparison {type(op_node).__name__} not allowed")
                right = self._eval(comparator, expression, bindings)
                if not op(left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.keywords:
                raise FormulaError(expression, "only plain function calls are allowed")
            func = self._functions.get(node.func.id)
            if func is None:
                raise FormulaError(expression, f"unknown function '{node.func.id}'")
            args = [self._eval(arg, expression, bindings) for arg in node.args]
            return func(*args)
        raise FormulaError(expression, f"unsupported syntax {type(node).__name__}")


__all__ = ["DEFAULT_FUNCTIONS", "FormulaError", "FormulaEvaluator", "SafeFormulaEvaluator"]
