"""Dimensional consistency check for expression trees.

Walks a candidate tree bottom-up, carrying a WildcardQuantity per node:
feature leaves are fixed quantities, constant leaves are dimensionless
wildcards. At each operator the quantity is tried first; if the operator is
undefined for it (or yields a violation), wildcard operands are retried as
bare magnitudes. A fixed operand that cannot be handled is a violation.

Only the root's ``violates`` flag is reported.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Callable

import numpy as np

from ..config import CAPABILITY_CACHE_ENABLED
from ..symbolic_regression.expression_tree import ExpressionNode
from ..symbolic_regression.expression_tree import ExpressionTree
from ..symbolic_regression.expression_tree import NodeType
from ..symbolic_regression.expression_tree import OperatorTable
from ..types import InvalidTreeError
from ..types import OperatorResultError
from .capabilities import CapabilityCache
from .capabilities import get_capability_cache
from .units import Dimension
from .wildcard import WildcardQuantity

_DEFAULT_OPERATORS = OperatorTable.default()


def _resolve_cache(cache: CapabilityCache | None) -> CapabilityCache:
    if cache is not None:
        return cache
    return get_capability_cache() if CAPABILITY_CACHE_ENABLED else CapabilityCache()


def _return_if_good(
    cache: CapabilityCache, op: Callable, args: tuple
) -> WildcardQuantity | None:
    result, succeeded = cache.invoke_if_good(op, args, WildcardQuantity.one())
    if not succeeded:
        return None
    if not isinstance(result, WildcardQuantity):
        raise OperatorResultError(
            f"{getattr(op, '__name__', op)} returned {type(result).__name__} "
            "instead of WildcardQuantity"
        )
    return result if result.valid else None


def deg0_eval(
    node: ExpressionNode,
    index: dict[str, int],
    dims: Sequence[Dimension],
    row: Sequence[float],
) -> WildcardQuantity:
    if node.node_type == NodeType.CONSTANT:
        return WildcardQuantity.constant(node.value)
    i = index.get(node.value)
    if i is None:
        raise InvalidTreeError(f"Unknown variable: {node.value}")
    return WildcardQuantity.feature(row[i], dims[i])


def deg1_eval(op: Callable, l: WildcardQuantity, cache: CapabilityCache) -> WildcardQuantity:
    if l.violates:
        return l
    if not l.isfinite():
        return WildcardQuantity.violation()

    result = _return_if_good(cache, op, (l,))
    if result is not None:
        return result
    if l.wildcard:
        return WildcardQuantity.constant(op(l.magnitude))
    return WildcardQuantity.violation()


def deg2_eval(
    op: Callable, l: WildcardQuantity, r: WildcardQuantity, cache: CapabilityCache
) -> WildcardQuantity:
    if l.violates:
        return l
    if r.violates:
        return r
    if not (l.isfinite() and r.isfinite()):
        return WildcardQuantity.violation()

    result = _return_if_good(cache, op, (l, r))
    if result is None and l.wildcard:
        result = _return_if_good(cache, op, (l.magnitude, r))
    if result is None and r.wildcard:
        result = _return_if_good(cache, op, (l, r.magnitude))
    if result is not None:
        return result
    if l.wildcard and r.wildcard:
        return WildcardQuantity.constant(op(l.magnitude, r.magnitude))
    return WildcardQuantity.violation()


def evaluate_node(
    node: ExpressionNode,
    dims: Sequence[Dimension],
    row: Sequence[float],
    operators: OperatorTable,
    index: dict[str, int],
    cache: CapabilityCache,
) -> WildcardQuantity:
    """Recursively evaluate a subtree to a WildcardQuantity."""
    if node.degree == 0:
        return deg0_eval(node, index, dims, row)
    elif node.degree == 1:
        l = evaluate_node(node.children[0], dims, row, operators, index, cache)
        return deg1_eval(operators.resolve_unary(node.value), l, cache)
    else:
        l = evaluate_node(node.children[0], dims, row, operators, index, cache)
        r = evaluate_node(node.children[1], dims, row, operators, index, cache)
        return deg2_eval(operators.resolve_binary(node.value), l, r, cache)


def evaluate_tree(
    tree: ExpressionTree,
    dims: Sequence[Dimension],
    row: Sequence[float],
    operators: OperatorTable | None = None,
    cache: CapabilityCache | None = None,
) -> WildcardQuantity:
    """Evaluate a whole tree against one data row.

    Args:
        tree: Candidate expression
        dims: One Dimension per feature (see resolve_dimensions)
        row: One value per feature
        operators: Operator table (built-in operators if None)
        cache: Capability cache (the process-wide cache if None)

    Returns:
        The root WildcardQuantity

    Raises:
        InvalidTreeError: If dims, row and tree variables do not line up
    """
    if len(dims) != len(row):
        raise InvalidTreeError(
            f"Got {len(dims)} dimensions for a row of {len(row)} features"
        )
    if len(tree.variables) > len(dims):
        raise InvalidTreeError(
            f"Tree uses {len(tree.variables)} variables but only {len(dims)} "
            "dimensions were given"
        )
    index = {name: i for i, name in enumerate(tree.variables)}
    with np.errstate(all="ignore"):
        return evaluate_node(
            tree.root,
            dims,
            row,
            operators or _DEFAULT_OPERATORS,
            index,
            _resolve_cache(cache),
        )


def violates_dimensional_constraints(
    tree: ExpressionTree,
    dims: Sequence[Dimension],
    row: Sequence[float],
    operators: OperatorTable | None = None,
    cache: CapabilityCache | None = None,
) -> bool:
    """Whether the tree mixes incompatible physical dimensions.

    Free constants are wildcards and adopt whatever dimension makes the
    expression consistent.

    Example:
        >>> import sympy as sp
        >>> from dimcheck_pkg.dimensional_analysis.units import LENGTH, TIME
        >>> tree = ExpressionTree.from_sympy(sp.sympify("x + y"), ["x", "y"])
        >>> violates_dimensional_constraints(tree, [LENGTH, TIME], [3.0, 2.0])
        True
    """
    return evaluate_tree(tree, dims, row, operators, cache).violates
