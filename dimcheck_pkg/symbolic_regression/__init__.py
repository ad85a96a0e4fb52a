"""Symbolic Regression Module.

Expression trees for the candidate formulas produced by a
genetic-programming search, and the operator table they are evaluated with.

Main Components:
    - ExpressionTree: Tree-based representation of mathematical expressions
    - OperatorTable: Operator name -> callable lookup

Example:
    >>> import sympy as sp
    >>> from dimcheck_pkg.symbolic_regression import ExpressionTree
    >>> tree = ExpressionTree.from_sympy(sp.sympify("x*y + 2.5"), ["x", "y"])
    >>> tree.complexity()
    5
"""

from .expression_tree import BINARY_OPERATORS
from .expression_tree import UNARY_OPERATORS
from .expression_tree import ExpressionNode
from .expression_tree import ExpressionTree
from .expression_tree import NodeType
from .expression_tree import OperatorTable

__all__ = [
    "ExpressionTree",
    "ExpressionNode",
    "NodeType",
    "OperatorTable",
    "UNARY_OPERATORS",
    "BINARY_OPERATORS",
]
