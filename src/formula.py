"""
FormulaEngine: sample the H0/H1 curves of a SimulationConfig.

Formulas come from the extraction collaborator, so they are untrusted. They
are parsed with `ast` in eval mode and walked by an evaluator that only
knows numeric literals, names from the supplied scope, arithmetic
operators and a fixed set of math functions. Nothing is ever compiled or
executed.

Usage:
    points = sample({"sleepHours": 4}, config)
    value = evaluate("20 + 3 * sleepHours", {"sleepHours": 6})
"""

import ast
import functools
import math
import operator
from typing import Mapping

from errors import FormulaEvaluationError, NoPrimaryVariableError
from logging_utils import get_logger
from models import SamplePoint, SimulationConfig

logger = get_logger(__name__)

SAMPLE_COUNT = 10
MAX_EXPRESSION_LENGTH = 500

BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

FUNCTIONS = {
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "log10": math.log10,
    "log2": math.log2,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "abs": abs,
    "pow": math.pow,
    "min": min,
    "max": max,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": round,
}

CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
    "PI": math.pi,
    "E": math.e,
}

# Formulas are often written JavaScript style (Math.pow(x, 2), Math.PI).
NAMESPACE = "Math"


@functools.lru_cache(maxsize=256)
def parse(expression: str) -> ast.expr:
    """Parse an expression into its AST body. Raises FormulaEvaluationError."""
    if not isinstance(expression, str):
        raise FormulaEvaluationError(f"Expression must be a string, got {type(expression).__name__}")
    source = expression.strip()
    if not source:
        raise FormulaEvaluationError("Empty expression")
    if len(source) > MAX_EXPRESSION_LENGTH:
        raise FormulaEvaluationError(f"Expression longer than {MAX_EXPRESSION_LENGTH} characters")

    source = source.replace("^", "**")
    try:
        tree = ast.parse(source, mode="eval")
    except (SyntaxError, ValueError, RecursionError) as e:
        raise FormulaEvaluationError(f"Invalid expression: {e}") from e
    return tree.body


class Evaluator:
    """Walks a parsed expression against a scope of named numbers."""

    def __init__(self, scope: Mapping[str, float]):
        self.scope = scope

    def eval(self, node: ast.AST) -> float:
        if isinstance(node, ast.Constant):
            value = node.value
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise FormulaEvaluationError(f"Only numeric literals are allowed, got {value!r}")
            return float(value)

        if isinstance(node, ast.Name):
            return self._lookup(node.id)

        if isinstance(node, ast.BinOp):
            op = BINARY_OPERATORS.get(type(node.op))
            if op is None:
                raise FormulaEvaluationError(f"Operator {type(node.op).__name__} is not allowed")
            result = op(self.eval(node.left), self.eval(node.right))
            if isinstance(result, complex):
                raise FormulaEvaluationError("Complex result")
            return result

        if isinstance(node, ast.UnaryOp):
            op = UNARY_OPERATORS.get(type(node.op))
            if op is None:
                raise FormulaEvaluationError(f"Operator {type(node.op).__name__} is not allowed")
            return op(self.eval(node.operand))

        if isinstance(node, ast.Attribute):
            return self._namespaced_constant(node)

        if isinstance(node, ast.Call):
            return self._call(node)

        raise FormulaEvaluationError(f"{type(node).__name__} is not allowed in formulas")

    def _lookup(self, name: str) -> float:
        if name in self.scope:
            return float(self.scope[name])
        if name in CONSTANTS:
            return CONSTANTS[name]
        raise FormulaEvaluationError(f"Unknown name '{name}'")

    def _namespaced_constant(self, node: ast.Attribute) -> float:
        if isinstance(node.value, ast.Name) and node.value.id == NAMESPACE and node.attr in CONSTANTS:
            return CONSTANTS[node.attr]
        raise FormulaEvaluationError("Attribute access is not allowed in formulas")

    def _call(self, node: ast.Call) -> float:
        if node.keywords:
            raise FormulaEvaluationError("Keyword arguments are not allowed")

        func = node.func
        if isinstance(func, ast.Name):
            name = func.id
        elif isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name) and func.value.id == NAMESPACE:
            name = func.attr
        else:
            raise FormulaEvaluationError("Only plain function calls are allowed")

        if name not in FUNCTIONS:
            raise FormulaEvaluationError(f"Function '{name}' is not allowed")

        args = [self.eval(arg) for arg in node.args]
        return float(FUNCTIONS[name](*args))


def evaluate(expression: str, scope: Mapping[str, float]) -> float:
    """
    Evaluate a formula against a scope.

    Raises:
        FormulaEvaluationError: for malformed or disallowed expressions and
            non-finite results.
        ArithmeticError / ValueError / TypeError: from the math itself
            (division by zero, log of a negative, wrong arity).
    """
    value = Evaluator(scope).eval(parse(expression))
    if not math.isfinite(value):
        raise FormulaEvaluationError(f"Non-finite result {value}")
    return value


def _safe_evaluate(expression: str, scope: Mapping[str, float], slot: str) -> float:
    try:
        return evaluate(expression, scope)
    except Exception as e:
        logger.warning(f"{slot} formula failed ({e.__class__.__name__}: {e}); using 0")
        return 0.0


def sample_positions(values: Mapping[str, float], config: SimulationConfig) -> list[float]:
    """
    X positions of the curve around the primary variable's current value.

    The window is half the variable's range. Its lower end is clamped to
    `min`; its upper end is not clamped to `max`.
    """
    primary = config.primary
    if primary is None:
        raise NoPrimaryVariableError("Simulation config has no independent variables")

    current = values.get(primary.name, primary.default_value)
    window = (primary.max - primary.min) / 2
    start = max(primary.min, current - window / 2)
    step = window / SAMPLE_COUNT
    return [start + step * i for i in range(SAMPLE_COUNT)]


def sample(values: Mapping[str, float], config: SimulationConfig) -> list[SamplePoint]:
    """
    Sample H0 and H1 at SAMPLE_COUNT positions of the primary variable.

    Other variables are held at their current values. A formula that fails
    at a point contributes 0 there; the full sequence is always returned.

    Raises:
        NoPrimaryVariableError: if the config has no variables.
    """
    points = []
    for x in sample_positions(values, config):
        scope = dict(values)
        scope[config.primary.name] = x
        points.append(SamplePoint(
            x=x,
            null_y=_safe_evaluate(config.null_formula, scope, "H0"),
            alt_y=_safe_evaluate(config.alt_formula, scope, "H1"),
        ))
    return points
