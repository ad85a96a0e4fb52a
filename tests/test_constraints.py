"""Tests for the recursive dimensional-consistency evaluator."""

import math
import random

import numpy as np
import pytest
import sympy as sp

from dimcheck_pkg.dimensional_analysis.capabilities import CapabilityCache
from dimcheck_pkg.dimensional_analysis.constraints import (
    deg1_eval,
    deg2_eval,
    evaluate_tree,
    violates_dimensional_constraints,
)
from dimcheck_pkg.dimensional_analysis.units import DIMENSIONLESS, LENGTH, TIME
from dimcheck_pkg.dimensional_analysis.wildcard import WildcardQuantity
from dimcheck_pkg.symbolic_regression.expression_tree import (
    BINARY_OPERATORS,
    UNARY_OPERATORS,
    ExpressionNode,
    ExpressionTree,
    OperatorTable,
)
from dimcheck_pkg.types import InvalidTreeError, OperatorResultError, UnknownOperatorError

VARIABLES = ["x", "y"]
DIMS = [LENGTH, TIME]
ROW = [3.0, 2.0]

c = ExpressionNode.constant


def x():
    return ExpressionNode.variable("x")


def y():
    return ExpressionNode.variable("y")


def check(root, dims=DIMS, row=ROW, operators=None, cache=None):
    tree = ExpressionTree(root, list(VARIABLES))
    return violates_dimensional_constraints(tree, dims, row, operators, cache)


def check_expr(text, dims=DIMS, row=ROW):
    tree = ExpressionTree.from_sympy(sp.sympify(text), list(VARIABLES))
    return violates_dimensional_constraints(tree, dims, row)


def custom_table(unary=None, binary=None):
    return OperatorTable(
        unary={**UNARY_OPERATORS, **(unary or {})},
        binary={**BINARY_OPERATORS, **(binary or {})},
    )


@pytest.mark.parametrize(
    "root, expected",
    [
        (ExpressionNode.binary("add", x(), y()), True),
        (ExpressionNode.binary("add", x(), x()), False),
        (ExpressionNode.binary("mul", x(), y()), False),
        (ExpressionNode.binary("add", c(2.5), x()), False),
        (ExpressionNode.binary("pow", x(), y()), True),
    ],
    ids=["length_plus_time", "length_plus_length", "length_times_time",
         "constant_plus_length", "length_to_time_power"],
)
def test_length_and_time_features(root, expected):
    assert check(root) is expected


class TestAdditiveRules:
    def test_subtraction_follows_addition(self):
        assert check(ExpressionNode.binary("sub", x(), x())) is False
        assert check(ExpressionNode.binary("sub", y(), x())) is True

    def test_products_and_quotients_never_violate(self):
        for op in ("mul", "div"):
            assert check(ExpressionNode.binary(op, x(), y())) is False
            assert check(ExpressionNode.binary(op, y(), x())) is False

    def test_constant_crystallizes_on_either_side(self):
        assert check(ExpressionNode.binary("add", x(), c(1.0))) is False
        assert check(ExpressionNode.binary("sub", c(1.0), y())) is False

    def test_crystallized_constant_is_no_longer_free(self):
        # (c*x + y) fixes the scaled constant to time; adding x then violates
        scaled = ExpressionNode.binary("mul", c(2.0), x())
        inner = ExpressionNode.binary("add", scaled, y())
        assert check(inner) is False
        assert check(ExpressionNode.binary("add", inner, x())) is True

    def test_scaled_constants_of_different_dimensions_combine(self):
        left = ExpressionNode.binary("mul", c(2.0), x())
        right = ExpressionNode.binary("mul", c(0.5), y())
        assert check(ExpressionNode.binary("add", left, right)) is False

    def test_velocity_times_time_matches_length(self):
        velocity = ExpressionNode.binary("div", x(), y())
        distance = ExpressionNode.binary("mul", velocity, y())
        assert check(ExpressionNode.binary("add", distance, x())) is False

    def test_sympy_expressions(self):
        assert check_expr("x - y") is True
        assert check_expr("x/y*y - 2*x") is False
        assert check_expr("x + 3*y") is False


class TestPower:
    def test_constant_exponent_scales_dimension(self):
        root = ExpressionNode.binary("pow", x(), c(2.0))
        result = evaluate_tree(ExpressionTree(root, VARIABLES), DIMS, ROW)
        assert not result.violates
        assert result.dimension == LENGTH**2

    def test_squared_length_does_not_add_to_length(self):
        squared = ExpressionNode.binary("pow", x(), c(2.0))
        assert check(ExpressionNode.binary("add", squared, x())) is True

    def test_dimensionless_feature_exponent(self):
        assert check(ExpressionNode.binary("pow", x(), y()), dims=[LENGTH, DIMENSIONLESS]) is False

    def test_large_exponent_is_applied_exactly(self):
        twelfth = ExpressionNode.binary("pow", x(), c(12.0))
        result = evaluate_tree(ExpressionTree(twelfth, VARIABLES), DIMS, ROW)
        assert not result.violates
        assert result.dimension == LENGTH**12
        assert result.magnitude == pytest.approx(3.0**12)

    def test_equal_powers_combine(self):
        eleventh = ExpressionNode.binary("pow", x(), c(11.0))
        twelfth = ExpressionNode.binary("pow", x(), c(12.0))
        product = ExpressionNode.binary("mul", x(), eleventh)
        assert check(ExpressionNode.binary("sub", twelfth, product)) is False


class TestUnaryFunctions:
    def test_sqrt_of_area_is_length(self):
        area = ExpressionNode.binary("mul", x(), x())
        root = ExpressionNode.binary("add", ExpressionNode.unary("sqrt", area), x())
        assert check(root) is False

    def test_sqrt_of_dimensionless_and_wildcard(self):
        assert check(ExpressionNode.unary("sqrt", y()), dims=[LENGTH, DIMENSIONLESS]) is False
        assert check(ExpressionNode.unary("sqrt", c(4.0))) is False

    def test_transcendental_of_fixed_dimension_violates(self):
        for name in ("sin", "cos", "exp", "log", "tanh"):
            assert check(ExpressionNode.unary(name, x())) is True, name

    def test_transcendental_of_ratio_is_fine(self):
        ratio = ExpressionNode.binary("div", x(), x())
        assert check(ExpressionNode.unary("sin", ratio)) is False

    def test_wildcard_operand_falls_back_to_free_constant(self):
        scaled = ExpressionNode.binary("mul", c(0.1), x())
        root = ExpressionNode.binary("add", ExpressionNode.unary("exp", scaled), y())
        assert check(root) is False

    def test_dimension_transforms(self):
        cases = {"inv": LENGTH**-1, "square": LENGTH**2, "cube": LENGTH**3,
                 "cbrt": LENGTH ** (1 / 3), "abs": LENGTH, "neg": LENGTH}
        for name, expected in cases.items():
            tree = ExpressionTree(ExpressionNode.unary(name, x()), VARIABLES)
            result = evaluate_tree(tree, DIMS, ROW)
            assert not result.violates, name
            assert result.dimension == expected, name


class TestNonFinite:
    def test_infinite_intermediate_violates_upward(self):
        blowup = ExpressionNode.binary("div", x(), c(0.0))
        assert check(ExpressionNode.binary("add", blowup, x())) is True

    def test_nan_feature_violates(self):
        root = ExpressionNode.binary("mul", x(), y())
        assert check(root, row=[np.nan, 2.0]) is True

    def test_deg_evals_guard_operands(self):
        cache = CapabilityCache()
        inf = WildcardQuantity.feature(np.inf, LENGTH)
        assert deg1_eval(np.negative, inf, cache).violates
        assert deg2_eval(np.multiply, inf, WildcardQuantity.one(), cache).violates

    def test_violating_operand_is_returned_unchanged(self):
        cache = CapabilityCache()
        bad = WildcardQuantity.violation()
        assert deg1_eval(np.sin, bad, cache) is bad
        assert deg2_eval(np.add, WildcardQuantity.one(), bad, cache) is bad


class TestCustomOperators:
    def test_operator_undefined_on_quantities(self):
        table = custom_table(unary={"floor": math.floor})
        cache = CapabilityCache()
        assert check(ExpressionNode.unary("floor", x()), operators=table, cache=cache) is True
        floored = ExpressionNode.unary("floor", c(2.5))
        root = ExpressionNode.binary("mul", floored, x())
        assert check(root, operators=table, cache=cache) is False

    def test_scalar_only_sqrt_is_not_dimension_capable(self):
        table = custom_table(unary={"sqrt": math.sqrt})
        cache = CapabilityCache()
        assert check(ExpressionNode.unary("sqrt", x()), operators=table, cache=cache) is True
        assert check(ExpressionNode.unary("sqrt", c(4.0)), operators=table, cache=cache) is False

    def test_binary_retry_strips_wildcard_side(self):
        table = custom_table(binary={"mulcos": lambda a, b: a * math.cos(b)})
        cache = CapabilityCache()
        root = ExpressionNode.binary("mulcos", x(), c(0.5))
        result = evaluate_tree(ExpressionTree(root, VARIABLES), DIMS, ROW, table, cache)
        assert not result.violates
        assert result.dimension == LENGTH
        assert result.magnitude == pytest.approx(3.0 * math.cos(0.5))
        assert check(ExpressionNode.binary("mulcos", x(), y()), operators=table, cache=cache) is True

    def test_binary_fallback_with_two_wildcards(self):
        table = custom_table(binary={"hypot": math.hypot})
        cache = CapabilityCache()
        root = ExpressionNode.binary("hypot", c(3.0), c(4.0))
        result = evaluate_tree(ExpressionTree(root, VARIABLES), DIMS, ROW, table, cache)
        assert result.wildcard and not result.violates
        assert result.magnitude == pytest.approx(5.0)
        assert check(ExpressionNode.binary("hypot", x(), c(1.0)), operators=table, cache=cache) is True

    def test_operator_returning_plain_number_is_an_error(self):
        table = custom_table(unary={"bad": lambda v: 1.0})
        with pytest.raises(OperatorResultError):
            check(ExpressionNode.unary("bad", x()), operators=table, cache=CapabilityCache())

    def test_genuine_operator_errors_propagate(self):
        def broken(v):
            raise ZeroDivisionError("broken operator")

        table = custom_table(unary={"broken": broken})
        with pytest.raises(ZeroDivisionError):
            check(ExpressionNode.unary("broken", x()), operators=table, cache=CapabilityCache())


class TestInvalidInput:
    def test_unknown_variable(self):
        with pytest.raises(InvalidTreeError):
            check(ExpressionNode.variable("z"))

    def test_dims_and_row_mismatch(self):
        with pytest.raises(InvalidTreeError):
            check(ExpressionNode.binary("add", x(), y()), row=[1.0])

    def test_more_tree_variables_than_dimensions(self):
        tree = ExpressionTree(x(), ["x", "y", "z"])
        with pytest.raises(InvalidTreeError):
            violates_dimensional_constraints(tree, DIMS, ROW)

    def test_errors_after_a_violating_subtree_still_raise(self):
        mixed = ExpressionNode.binary("add", x(), y())
        with pytest.raises(InvalidTreeError):
            check(ExpressionNode.binary("add", mixed, ExpressionNode.variable("zzz")))
        with pytest.raises(UnknownOperatorError):
            check(ExpressionNode.binary("add", mixed, ExpressionNode.unary("nope", x())))

    def test_unknown_operator(self):
        with pytest.raises(UnknownOperatorError):
            check(ExpressionNode.unary("nope", x()))
        with pytest.raises(UnknownOperatorError):
            check(ExpressionNode.binary("nope", x(), y()))


def test_evaluation_is_pure():
    root = ExpressionNode.binary(
        "add", ExpressionNode.unary("sin", ExpressionNode.binary("mul", c(1.5), x())), y()
    )
    tree = ExpressionTree(root, VARIABLES)
    before = tree.to_string()
    verdicts = {violates_dimensional_constraints(tree, DIMS, ROW) for _ in range(5)}
    assert verdicts == {False}
    assert tree.to_string() == before


def test_clearing_the_cache_never_changes_a_verdict():
    rng = random.Random(1234)
    operators = ["add", "sub", "mul", "div", "pow", "sin", "exp", "sqrt", "log", "square"]
    shared = CapabilityCache()
    for _ in range(200):
        tree = ExpressionTree.random_tree(VARIABLES, max_depth=5, operators=operators, rng=rng)
        warm = violates_dimensional_constraints(tree, DIMS, ROW, cache=shared)
        cold = violates_dimensional_constraints(tree, DIMS, ROW, cache=CapabilityCache())
        assert warm == cold, tree.to_string()
