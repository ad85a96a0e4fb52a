"""Dataset-level dimensional checks.

Wraps a feature matrix with its unit annotations, resolves dimensions once,
and decides which rows a candidate is checked against.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from ..config import DIMENSIONAL_ROW_POLICY
from ..symbolic_regression.expression_tree import ExpressionTree
from ..symbolic_regression.expression_tree import OperatorTable
from ..types import InvalidTreeError
from .capabilities import CapabilityCache
from .constraints import violates_dimensional_constraints
from .units import Dimension
from .units import parse_dimension
from .units import resolve_dimensions

ROW_POLICIES = ("first", "any", "all")


class Dataset:
    """Feature matrix plus one unit annotation per feature.

    Attributes:
        X: Data of shape (n_samples, n_features)
        variable_names: Feature names, matching VARIABLE node values
        dimensions: Resolved Dimension per feature
        y_dimension: Resolved target dimension, if target units were given
    """

    def __init__(
        self,
        X: np.ndarray,
        variable_names: Sequence[str] | None = None,
        units: Sequence[Any] | None = None,
        y_units: Any = None,
    ):
        X = np.asarray(X, dtype=float)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        self.X = X
        self.n_samples, self.n_features = X.shape

        if variable_names is None:
            variable_names = [f"x{i}" for i in range(self.n_features)]
        if len(variable_names) != self.n_features:
            raise ValueError(
                f"Got {len(variable_names)} variable names for {self.n_features} features"
            )
        self.variable_names = list(variable_names)

        if units is not None and len(units) != self.n_features:
            raise ValueError(f"Got {len(units)} units for {self.n_features} features")
        self.units = list(units) if units is not None else None
        self.y_units = y_units

        # Resolved once per dataset
        self.dimensions: list[Dimension] = resolve_dimensions(
            self.units if self.units is not None else [None] * self.n_features
        )
        self.y_dimension: Dimension | None = (
            parse_dimension(y_units) if y_units is not None else None
        )

    @property
    def has_units(self) -> bool:
        return self.units is not None or self.y_units is not None

    def _rows(self, policy: str) -> np.ndarray:
        if policy not in ROW_POLICIES:
            raise ValueError(f"Unknown row policy {policy!r}; expected one of {ROW_POLICIES}")
        if self.n_samples == 0:
            raise InvalidTreeError("Dataset has no rows to check against")
        return self.X[:1] if policy == "first" else self.X

    def violates_dimensional_constraints(
        self,
        tree: ExpressionTree,
        operators: OperatorTable | None = None,
        policy: str | None = None,
        cache: CapabilityCache | None = None,
    ) -> bool:
        """Check a candidate against this dataset's units.

        Args:
            tree: Candidate expression; variables are looked up by name
            operators: Operator table (built-in operators if None)
            policy: "first" checks row 0 only, "any" flags the tree if any
                row violates, "all" only if every row does
            cache: Capability cache (the process-wide cache if None)

        Returns:
            True if the tree is dimensionally inconsistent. Always False for
            datasets without unit annotations.
        """
        if not self.has_units:
            return False
        policy = policy or DIMENSIONAL_ROW_POLICY
        aligned = ExpressionTree(tree.root, self.variable_names)
        verdicts = (
            violates_dimensional_constraints(aligned, self.dimensions, row, operators, cache)
            for row in self._rows(policy)
        )
        if policy == "all":
            return all(verdicts)
        return any(verdicts)
