"""
Tests for formula.py module.

Tests:
- The restricted evaluator (allowed and rejected constructs)
- Sample positions
- Curve sampling, including failing formulas
"""

import math
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import FormulaEvaluationError, NoPrimaryVariableError
from formula import MAX_EXPRESSION_LENGTH, SAMPLE_COUNT, evaluate, sample, sample_positions
from models import SimulationConfig, SimulationVariable


def make_config(null_formula="35", alt_formula="20 + 3 * sleepHours", variables=None):
    if variables is None:
        variables = [SimulationVariable(name="sleepHours", label="Sueño", min=0, max=10, default_value=4)]
    return SimulationConfig(
        variables=variables,
        dependent_label="Raven",
        null_formula=null_formula,
        alt_formula=alt_formula,
        explanation="",
    )


# =============================================================================
# Test evaluate
# =============================================================================

class TestEvaluate:
    """Tests for the restricted evaluator."""

    @pytest.mark.parametrize("expression,expected", [
        ("35", 35.0),
        ("20 + 3 * x", 26.0),
        ("(x - 1) / 4", 0.25),
        ("-x + +x", 0.0),
        ("x ** 2", 4.0),
        ("x ^ 3", 8.0),
        ("7 % x", 1.0),
        ("sqrt(16) + abs(-1)", 5.0),
        ("Math.pow(x, 2)", 4.0),
        ("max(x, 10, 3)", 10.0),
        ("2 * PI", 2 * math.pi),
        ("Math.E", math.e),
    ])
    def test_allowed(self, expression, expected):
        assert evaluate(expression, {"x": 2}) == pytest.approx(expected)

    @pytest.mark.parametrize("expression", [
        "__import__('os').system('echo hi')",
        "x.__class__",
        "open('f')",
        "[x for x in range(3)]",
        "lambda: 1",
        "x if x else 1",
        "x < 3",
        "'text'",
        "True + 1",
        "sqrt(x=4)",
        "Math.floor.__name__",
        "(1).real",
        "y + 1",
    ])
    def test_rejected(self, expression):
        with pytest.raises(FormulaEvaluationError):
            evaluate(expression, {"x": 2})

    def test_syntax_error(self):
        with pytest.raises(FormulaEvaluationError):
            evaluate("20 +", {"x": 1})

    def test_empty_expression(self):
        with pytest.raises(FormulaEvaluationError):
            evaluate("   ", {})

    def test_length_limit(self):
        expression = "1+" * (MAX_EXPRESSION_LENGTH // 2) + "1"
        with pytest.raises(FormulaEvaluationError):
            evaluate(expression, {})

    def test_statements_rejected(self):
        with pytest.raises(FormulaEvaluationError):
            evaluate("x = 1", {})

    def test_non_finite_rejected(self):
        with pytest.raises(FormulaEvaluationError):
            evaluate("1e308 * 10", {})

    def test_division_by_zero_propagates(self):
        with pytest.raises(ZeroDivisionError):
            evaluate("1 / x", {"x": 0})

    def test_scope_shadows_constants(self):
        assert evaluate("e", {"e": 3}) == 3.0


# =============================================================================
# Test sample positions
# =============================================================================

class TestSamplePositions:
    """Tests for sample_positions."""

    def test_window_around_default(self):
        """range 0..10 at 4: window 5, start 1.5, step 0.5."""
        positions = sample_positions({"sleepHours": 4}, make_config())

        assert len(positions) == SAMPLE_COUNT
        assert positions[0] == pytest.approx(1.5)
        assert positions[-1] == pytest.approx(6.0)
        assert positions[1] - positions[0] == pytest.approx(0.5)

    def test_lower_end_clamped_to_min(self):
        positions = sample_positions({"sleepHours": 0}, make_config())

        assert positions[0] == pytest.approx(0.0)
        assert positions[-1] == pytest.approx(4.5)

    def test_upper_end_not_clamped(self):
        positions = sample_positions({"sleepHours": 10}, make_config())

        assert positions[0] == pytest.approx(7.5)
        assert positions[-1] == pytest.approx(12.0)

    def test_missing_value_uses_default(self):
        positions = sample_positions({}, make_config())

        assert positions[0] == pytest.approx(1.5)

    def test_no_variables(self):
        with pytest.raises(NoPrimaryVariableError):
            sample_positions({}, make_config(variables=[]))


# =============================================================================
# Test sample
# =============================================================================

class TestSample:
    """Tests for sample."""

    def test_demo_curves(self):
        points = sample({"sleepHours": 4}, make_config())

        assert len(points) == SAMPLE_COUNT
        assert points[0].x == pytest.approx(1.5)
        assert points[0].null_y == pytest.approx(35.0)
        assert points[0].alt_y == pytest.approx(24.5)
        assert points[-1].x == pytest.approx(6.0)
        assert points[-1].alt_y == pytest.approx(38.0)

    def test_other_variables_held_fixed(self):
        variables = [
            SimulationVariable(name="x", label="x", min=0, max=10, default_value=4),
            SimulationVariable(name="k", label="k", min=0, max=100, default_value=50),
        ]
        config = make_config(null_formula="k", alt_formula="x + k", variables=variables)

        points = sample({"x": 4, "k": 7}, config)

        assert all(p.null_y == pytest.approx(7.0) for p in points)
        assert points[0].alt_y == pytest.approx(8.5)

    def test_failing_formula_yields_zeros(self):
        config = make_config(alt_formula="__import__('os')")

        points = sample({"sleepHours": 4}, config)

        assert len(points) == SAMPLE_COUNT
        assert all(p.alt_y == 0.0 for p in points)
        assert all(p.null_y == pytest.approx(35.0) for p in points)

    def test_point_failure_is_local(self):
        """A division by zero at one x contributes 0 there only."""
        variables = [SimulationVariable(name="x", label="x", min=0, max=20, default_value=5)]
        config = make_config(alt_formula="10 / (x - 3)", variables=variables)

        points = sample({"x": 5}, config)

        assert points[0].x == pytest.approx(0.0)
        zero_point = [p for p in points if p.x == pytest.approx(3.0)][0]
        assert zero_point.alt_y == 0.0
        assert points[-1].alt_y == pytest.approx(10 / (9.0 - 3))

    def test_failure_is_logged(self, caplog):
        config = make_config(null_formula="unknown_name")

        with caplog.at_level("WARNING", logger="arch"):
            sample({"sleepHours": 4}, config)

        assert any("H0 formula failed" in r.message for r in caplog.records)
