"""Operator capability cache.

Records, per (operator, argument types), whether the operator is defined on
WildcardQuantity arguments of that shape, so repeated evaluations skip
attempts that are known to fail.

NumPy ufuncs are classified statically from the set of ufuncs
WildcardQuantity implements. Any other callable (lambdas, safe wrappers)
is classified on first use: the real call is attempted, and only
UndefinedOperatorError counts as "not defined". Everything else propagates.

The cache only saves work. A wrong entry can cause a redundant fallback,
never a different dimensional verdict.
"""

from __future__ import annotations

import threading
from enum import Enum
from enum import auto
from typing import Any
from typing import Callable

import numpy as np

from ..logging_config import get_logger
from ..types import UndefinedOperatorError
from .wildcard import WildcardQuantity

logger = get_logger("capabilities")


class Capability(Enum):
    """Whether an operator accepts a given argument shape."""

    GOOD = auto()
    BAD = auto()
    UNDEFINED = auto()  # Not attempted yet


Shape = tuple[type, ...]


def argument_shape(args: tuple) -> Shape:
    return tuple(type(a) for a in args)


def static_capability(operator: Callable, shape: Shape) -> Capability:
    """Classify without calling, where the answer is known up front.

    A ufunc receiving at least one WildcardQuantity is dispatched to
    WildcardQuantity.__array_ufunc__, so its capability is fixed by the
    handled-ufunc table.
    """
    if isinstance(operator, np.ufunc) and WildcardQuantity in shape:
        return Capability.GOOD if WildcardQuantity.supports(operator) else Capability.BAD
    return Capability.UNDEFINED


def _describe(operator: Callable) -> str:
    return getattr(operator, "__name__", repr(operator))


class CapabilityCache:
    """Thread-safe memo of operator capabilities.

    The lock covers lookup and insert only; operator calls run outside it.
    Two threads racing on the same new key both attempt the call and record
    the same classification.

    Example:
        >>> cache = CapabilityCache()
        >>> q = WildcardQuantity.constant(2.0)
        >>> cache.invoke_if_good(np.sin, (q,), WildcardQuantity.one())[1]
        True
        >>> cache.invoke_if_good(np.floor, (q,), WildcardQuantity.one())[1]
        False
    """

    def __init__(self):
        self._table: dict[tuple[Callable, Shape], Capability] = {}
        self._lock = threading.Lock()

    def lookup(self, operator: Callable, shape: Shape) -> Capability:
        status = static_capability(operator, shape)
        if status is not Capability.UNDEFINED:
            return status
        with self._lock:
            return self._table.get((operator, shape), Capability.UNDEFINED)

    def _record(self, operator: Callable, shape: Shape, status: Capability):
        with self._lock:
            self._table[(operator, shape)] = status
        logger.debug(
            f"Classified {_describe(operator)}{tuple(t.__name__ for t in shape)} "
            f"as {status.name}"
        )

    def invoke_if_good(
        self, operator: Callable, args: tuple, default: Any
    ) -> tuple[Any, bool]:
        """Call operator(*args) unless it is known to be undefined for them.

        Args:
            operator: Callable to apply
            args: Positional arguments
            default: Returned when the operator is undefined for args

        Returns:
            (result, True) on success, (default, False) otherwise
        """
        shape = argument_shape(args)
        status = self.lookup(operator, shape)
        if status is Capability.BAD:
            return default, False
        try:
            result = operator(*args)
        except UndefinedOperatorError:
            if status is Capability.UNDEFINED:
                self._record(operator, shape, Capability.BAD)
            return default, False
        if status is Capability.UNDEFINED:
            self._record(operator, shape, Capability.GOOD)
        return result, True

    def classify(self, operator: Callable, args: tuple) -> Capability:
        """Return GOOD or BAD for operator on args, attempting it if unknown."""
        status = self.lookup(operator, argument_shape(args))
        if status is Capability.UNDEFINED:
            _, succeeded = self.invoke_if_good(operator, args, None)
            status = Capability.GOOD if succeeded else Capability.BAD
        return status

    def clear(self):
        with self._lock:
            self._table.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)


_default_cache = CapabilityCache()


def get_capability_cache() -> CapabilityCache:
    """Return the process-wide cache shared by all evaluations."""
    return _default_cache


def clear_capability_cache():
    _default_cache.clear()
