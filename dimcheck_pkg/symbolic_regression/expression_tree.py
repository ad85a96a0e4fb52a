"""Expression Tree data structure for candidate formulas.

This module implements the read-only tree representation of the candidate
expressions produced by a genetic-programming search, plus the operator
table that maps operator names to callables.

Key Classes:
    - NodeType: Enum for terminal/operator node types
    - ExpressionNode: Single node in the expression tree
    - ExpressionTree: Complete tree with evaluation and conversion methods
    - OperatorTable: Operator name -> callable, split by arity
"""

from __future__ import annotations

import math
import random
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import auto
from typing import Any
from typing import Callable

import numpy as np
import sympy as sp

from ..types import UnknownOperatorError


class NodeType(Enum):
    """Types of nodes in an expression tree."""

    CONSTANT = auto()  # Numeric constant (e.g., 3.14)
    VARIABLE = auto()  # Input variable (e.g., x, y, z)
    UNARY_OP = auto()  # Unary operator (e.g., sin, cos, exp)
    BINARY_OP = auto()  # Binary operator (e.g., +, -, *, /)


# Operator definitions. Every operator is composed of NumPy ufuncs, np.clip
# and arithmetic only, so it applies equally to floats, arrays and
# WildcardQuantity values.
def safe_tan(x):
    return np.tan(np.clip(x, -1e6, 1e6))


def safe_exp(x):
    return np.exp(np.clip(x, -700, 700))


def safe_log(x):
    return np.log(np.clip(np.abs(x), 1e-10, None))


def safe_sqrt(x):
    return np.sqrt(np.abs(x))


def safe_sinh(x):
    return np.sinh(np.clip(x, -700, 700))


def safe_cosh(x):
    return np.cosh(np.clip(x, -700, 700))


def cube(x):
    return x * x * x


UNARY_OPERATORS: dict[str, Callable] = {
    "sin": np.sin,
    "cos": np.cos,
    "tan": safe_tan,
    "exp": safe_exp,
    "log": safe_log,
    "sqrt": safe_sqrt,
    "cbrt": np.cbrt,
    "abs": np.abs,
    "neg": np.negative,
    "inv": np.reciprocal,
    "square": np.square,
    "cube": cube,
    "sinh": safe_sinh,
    "cosh": safe_cosh,
    "tanh": np.tanh,
}

BINARY_OPERATORS: dict[str, Callable] = {
    "add": np.add,
    "sub": np.subtract,
    "mul": np.multiply,
    "div": np.divide,
    "pow": np.power,
    "max": np.maximum,
    "min": np.minimum,
}

# SymPy equivalents for symbolic conversion
SYMPY_UNARY: dict[str, Callable] = {
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "exp": sp.exp,
    "log": sp.log,
    "sqrt": sp.sqrt,
    "cbrt": sp.cbrt,
    "abs": sp.Abs,
    "neg": lambda x: -x,
    "inv": lambda x: 1 / x,
    "square": lambda x: x**2,
    "cube": lambda x: x**3,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
}

SYMPY_BINARY: dict[str, Callable] = {
    "add": lambda x, y: x + y,
    "sub": lambda x, y: x - y,
    "mul": lambda x, y: x * y,
    "div": lambda x, y: x / y,
    "pow": lambda x, y: x**y,
    "max": sp.Max,
    "min": sp.Min,
}

_INFIX = {"add": "+", "sub": "-", "mul": "*", "div": "/", "pow": "^"}


@dataclass(frozen=True)
class OperatorTable:
    """Operator name -> callable, indexed by the name stored in each node.

    Attributes:
        unary: Operators applied to one child
        binary: Operators applied to two children
    """

    unary: Mapping[str, Callable] = field(default_factory=lambda: dict(UNARY_OPERATORS))
    binary: Mapping[str, Callable] = field(default_factory=lambda: dict(BINARY_OPERATORS))

    @classmethod
    def default(cls) -> OperatorTable:
        return cls()

    @classmethod
    def from_names(cls, names: list[str]) -> OperatorTable:
        """Restrict the built-in operators to the given names."""
        unknown = [n for n in names if n not in UNARY_OPERATORS and n not in BINARY_OPERATORS]
        if unknown:
            raise UnknownOperatorError(f"Unknown operators: {', '.join(unknown)}")
        return cls(
            unary={n: UNARY_OPERATORS[n] for n in names if n in UNARY_OPERATORS},
            binary={n: BINARY_OPERATORS[n] for n in names if n in BINARY_OPERATORS},
        )

    def resolve_unary(self, name: str) -> Callable:
        op = self.unary.get(name)
        if op is None:
            raise UnknownOperatorError(f"Unknown unary operator: {name}")
        return op

    def resolve_binary(self, name: str) -> Callable:
        op = self.binary.get(name)
        if op is None:
            raise UnknownOperatorError(f"Unknown binary operator: {name}")
        return op


@dataclass(eq=False)
class ExpressionNode:
    """A node in an expression tree.

    Attributes:
        node_type: Type of this node (CONSTANT, VARIABLE, UNARY_OP, BINARY_OP)
        value: For CONSTANT: the numeric value; for VARIABLE: the variable name;
               for operators: the operator name (e.g., 'add', 'sin')
        children: List of child nodes (empty for terminals, 1 for unary, 2 for binary)
        parent: Reference to parent node (None for root)
    """

    node_type: NodeType
    value: Any
    children: list[ExpressionNode] = field(default_factory=list)
    parent: ExpressionNode | None = field(default=None, repr=False)

    def __post_init__(self):
        """Set parent references for children."""
        for child in self.children:
            child.parent = self

    @classmethod
    def constant(cls, value: float) -> ExpressionNode:
        return cls(NodeType.CONSTANT, float(value))

    @classmethod
    def variable(cls, name: str) -> ExpressionNode:
        return cls(NodeType.VARIABLE, name)

    @classmethod
    def unary(cls, op: str, child: ExpressionNode) -> ExpressionNode:
        return cls(NodeType.UNARY_OP, op, [child])

    @classmethod
    def binary(cls, op: str, left: ExpressionNode, right: ExpressionNode) -> ExpressionNode:
        return cls(NodeType.BINARY_OP, op, [left, right])

    @property
    def degree(self) -> int:
        """Number of children this node should have."""
        if self.node_type in (NodeType.CONSTANT, NodeType.VARIABLE):
            return 0
        elif self.node_type == NodeType.UNARY_OP:
            return 1
        else:  # BINARY_OP
            return 2

    @property
    def is_terminal(self) -> bool:
        """Whether this is a terminal (leaf) node."""
        return self.node_type in (NodeType.CONSTANT, NodeType.VARIABLE)

    def evaluate(
        self,
        variables: dict[str, float | np.ndarray],
        operators: OperatorTable | None = None,
    ) -> float | np.ndarray:
        """Evaluate this subtree with given variable values.

        Args:
            variables: Dict mapping variable names to their values
            operators: Operator table (built-in operators if None)

        Returns:
            Computed value (scalar or array); NaN/Inf replaced with finite values
        """
        operators = operators or _DEFAULT_TABLE
        if self.node_type == NodeType.CONSTANT:
            # Return constant, broadcast if needed
            if isinstance(next(iter(variables.values()), 0), np.ndarray):
                return np.full_like(next(iter(variables.values())), self.value, dtype=float)
            return self.value

        elif self.node_type == NodeType.VARIABLE:
            return variables.get(self.value, 0.0)

        elif self.node_type == NodeType.UNARY_OP:
            op_func = operators.resolve_unary(self.value)
            result = op_func(self.children[0].evaluate(variables, operators))
        else:  # BINARY_OP
            op_func = operators.resolve_binary(self.value)
            result = op_func(
                self.children[0].evaluate(variables, operators),
                self.children[1].evaluate(variables, operators),
            )
        return np.nan_to_num(result, nan=0.0, posinf=1e10, neginf=-1e10)

    def to_sympy(self, symbols: dict[str, sp.Symbol]) -> sp.Expr:
        """Convert this subtree to a SymPy expression.

        Args:
            symbols: Dict mapping variable names to SymPy symbols

        Returns:
            SymPy expression
        """
        if self.node_type == NodeType.CONSTANT:
            return sp.Float(self.value)

        elif self.node_type == NodeType.VARIABLE:
            return symbols.get(self.value, sp.Symbol(self.value))

        elif self.node_type == NodeType.UNARY_OP:
            child_expr = self.children[0].to_sympy(symbols)
            op_func = SYMPY_UNARY.get(self.value)
            if op_func is None:
                raise UnknownOperatorError(f"No SymPy equivalent for: {self.value}")
            return op_func(child_expr)

        else:  # BINARY_OP
            left_expr = self.children[0].to_sympy(symbols)
            right_expr = self.children[1].to_sympy(symbols)
            op_func = SYMPY_BINARY.get(self.value)
            if op_func is None:
                raise UnknownOperatorError(f"No SymPy equivalent for: {self.value}")
            return op_func(left_expr, right_expr)

    def copy_subtree(self) -> ExpressionNode:
        """Create a deep copy of this subtree."""
        return ExpressionNode(
            node_type=self.node_type,
            value=self.value,
            children=[child.copy_subtree() for child in self.children],
            parent=None,
        )

    def count_nodes(self) -> int:
        """Count total nodes in this subtree."""
        return 1 + sum(child.count_nodes() for child in self.children)

    def depth(self) -> int:
        """Calculate depth of this subtree."""
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)

    def __str__(self) -> str:
        """String representation of this subtree."""
        if self.node_type == NodeType.CONSTANT:
            return f"{self.value:.6g}"
        elif self.node_type == NodeType.VARIABLE:
            return str(self.value)
        elif self.node_type == NodeType.UNARY_OP:
            return f"{self.value}({self.children[0]})"
        elif self.value in _INFIX:
            return f"({self.children[0]} {_INFIX[self.value]} {self.children[1]})"
        else:
            return f"{self.value}({self.children[0]}, {self.children[1]})"


_DEFAULT_TABLE = OperatorTable()


@dataclass
class ExpressionTree:
    """A complete expression tree representing a candidate formula.

    Attributes:
        root: Root node of the expression tree
        variables: Variable names; position i is the feature index of name i
    """

    root: ExpressionNode
    variables: list[str] = field(default_factory=lambda: ["x"])

    def evaluate(self, X: np.ndarray, operators: OperatorTable | None = None) -> np.ndarray:
        """Evaluate the expression tree on input data.

        Args:
            X: Input data of shape (n_samples,) for single variable
               or (n_samples, n_variables) for multiple variables
            operators: Operator table (built-in operators if None)

        Returns:
            Array of computed values, shape (n_samples,)
        """
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)

        # Build variables dict
        var_dict = {}
        for i, var_name in enumerate(self.variables):
            if i < X.shape[1]:
                var_dict[var_name] = X[:, i]
            else:
                var_dict[var_name] = np.zeros(X.shape[0])

        with np.errstate(all="ignore"):
            result = self.root.evaluate(var_dict, operators)

        # Ensure result is array of correct shape
        if np.ndim(result) == 0:
            result = np.full(X.shape[0], result, dtype=float)

        return result

    def to_sympy(self) -> sp.Expr:
        """Convert to a SymPy expression (no simplification)."""
        symbols = {var: sp.Symbol(var) for var in self.variables}
        return self.root.to_sympy(symbols)

    def to_string(self) -> str:
        """Get string representation of the expression."""
        return str(self.root)

    def copy(self) -> ExpressionTree:
        """Create a deep copy of this tree."""
        return ExpressionTree(root=self.root.copy_subtree(), variables=self.variables.copy())

    def complexity(self) -> int:
        """Return the complexity (number of nodes) of this tree."""
        return self.root.count_nodes()

    def depth(self) -> int:
        """Return the depth of this tree."""
        return self.root.depth()

    @staticmethod
    def random_tree(
        variables: list[str],
        max_depth: int = 4,
        operators: list[str] | None = None,
        method: str = "grow",
        rng: random.Random | None = None,
    ) -> ExpressionTree:
        """Generate a random expression tree.

        Args:
            variables: List of variable names
            max_depth: Maximum tree depth
            operators: List of operator names to use (default: common set)
            method: 'grow' (variable depth) or 'full' (max depth for all branches)
            rng: Random source (module-level random if None)

        Returns:
            New random ExpressionTree
        """
        if operators is None:
            operators = ["add", "sub", "mul", "div", "sin", "cos", "exp", "square"]
        rng = rng or random

        unary_ops = [op for op in operators if op in UNARY_OPERATORS]
        binary_ops = [op for op in operators if op in BINARY_OPERATORS]

        def build_node(depth: int) -> ExpressionNode:
            # Terminal probability increases with depth
            if depth >= max_depth or (
                method == "grow" and depth > 1 and rng.random() < 0.3
            ):
                if rng.random() < 0.5 and variables:
                    return ExpressionNode.variable(rng.choice(variables))
                const = rng.choice(
                    [rng.uniform(-10, 10), rng.randint(-5, 5), math.pi, math.e, 0.5, 2.0]
                )
                return ExpressionNode.constant(const)
            if unary_ops and (not binary_ops or rng.random() < 0.3):
                return ExpressionNode.unary(rng.choice(unary_ops), build_node(depth + 1))
            op = rng.choice(binary_ops) if binary_ops else "add"
            return ExpressionNode.binary(op, build_node(depth + 1), build_node(depth + 1))

        return ExpressionTree(root=build_node(1), variables=variables)

    @staticmethod
    def from_sympy(expr: sp.Expr, variables: list[str]) -> ExpressionTree:
        """Create an ExpressionTree from a SymPy expression.

        Negated terms of a sum become ``sub`` and a -1 coefficient becomes
        ``neg``, so ``x - y`` keeps both operands as fixed features instead
        of multiplying ``y`` by a free constant.

        Args:
            expr: SymPy expression
            variables: List of allowed variable names

        Returns:
            ExpressionTree representing the expression
        """

        def _chain(op: str, operands) -> ExpressionNode:
            current = _convert_node(operands[0])
            for operand in operands[1:]:
                current = ExpressionNode.binary(op, current, _convert_node(operand))
            return current

        def _convert_node(node) -> ExpressionNode:
            if node.is_number:
                return ExpressionNode.constant(float(node))

            if node.is_Symbol:
                return ExpressionNode.variable(str(node))

            if node.is_Add:
                # SymPy Add is n-ary. We must chain binary nodes.
                positive = [a for a in node.args if not a.could_extract_minus_sign()]
                negative = [-a for a in node.args if a.could_extract_minus_sign()]
                if positive:
                    current = _chain("add", positive)
                else:
                    current = ExpressionNode.unary("neg", _convert_node(negative.pop(0)))
                for term in negative:
                    current = ExpressionNode.binary("sub", current, _convert_node(term))
                return current

            if node.is_Mul:
                if node.could_extract_minus_sign():
                    return ExpressionNode.unary("neg", _convert_node(-node))
                return _chain("mul", node.args)

            if node.is_Pow:
                return ExpressionNode.binary(
                    "pow", _convert_node(node.base), _convert_node(node.exp)
                )

            fname = node.func.__name__.lower()
            if fname in ("max", "min"):
                return _chain(fname, node.args)
            if fname in UNARY_OPERATORS and len(node.args) == 1:
                return ExpressionNode.unary(fname, _convert_node(node.args[0]))

            raise UnknownOperatorError(f"Cannot convert SymPy node: {node}")

        root = _convert_node(expr)
        root.parent = None
        return ExpressionTree(root, variables)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"ExpressionTree({self.to_string()})"
