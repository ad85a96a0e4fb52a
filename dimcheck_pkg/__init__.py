"""dimcheck package: dimensional consistency checks for symbolic regression candidates."""

__version__ = "0.1.0"

from . import config, dimensional_analysis, logging_config, symbolic_regression, types
from .dimensional_analysis import (
    Dataset,
    Dimension,
    WildcardQuantity,
    resolve_dimensions,
    violates_dimensional_constraints,
)
from .symbolic_regression import ExpressionNode, ExpressionTree, OperatorTable

__all__ = [
    "config",
    "dimensional_analysis",
    "symbolic_regression",
    "logging_config",
    "types",
    "Dataset",
    "Dimension",
    "WildcardQuantity",
    "ExpressionNode",
    "ExpressionTree",
    "OperatorTable",
    "resolve_dimensions",
    "violates_dimensional_constraints",
]
