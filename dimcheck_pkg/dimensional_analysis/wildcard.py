"""Quantities whose dimension may still be undetermined.

A WildcardQuantity wraps a magnitude and a Dimension, plus two flags:
- wildcard: the value comes from a free constant, so its dimension is
  still free to adopt whatever the surrounding expression requires
- violates: a dimensional inconsistency was detected somewhere below;
  once set, magnitude and dimension are meaningless

The arithmetic dunders and the NumPy ufunc protocol are overloaded so the
same operator callables used for numeric evaluation can be applied to
WildcardQuantity values. Every operation is total: inconsistencies are
returned as violating values, never raised. Operations outside the algebra
raise UndefinedOperatorError.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from dataclasses import replace
from fractions import Fraction
from typing import Callable

import numpy as np

from ..types import UndefinedOperatorError
from .units import DIMENSIONLESS
from .units import Dimension


@dataclass(frozen=True, eq=False)
class WildcardQuantity:
    """A dimensioned value with wildcard and violation flags.

    Attributes:
        magnitude: Bare numeric value
        dimension: Physical dimension (meaningless if violates)
        wildcard: Dimension is still free to crystallize
        violates: Sticky dimensional-violation flag
    """

    magnitude: np.float64
    dimension: Dimension = DIMENSIONLESS
    wildcard: bool = False
    violates: bool = False

    def __post_init__(self):
        object.__setattr__(self, "magnitude", np.float64(self.magnitude))

    @classmethod
    def one(cls) -> WildcardQuantity:
        return cls(1.0)

    @classmethod
    def violation(cls) -> WildcardQuantity:
        """The dimensionless unit value flagged as violating."""
        return cls(1.0, DIMENSIONLESS, wildcard=False, violates=True)

    @classmethod
    def constant(cls, value) -> WildcardQuantity:
        """A free constant: dimensionless for now, free to crystallize."""
        return cls(value, DIMENSIONLESS, wildcard=True)

    @classmethod
    def feature(cls, value, dimension: Dimension) -> WildcardQuantity:
        return cls(value, dimension, wildcard=False)

    @property
    def valid(self) -> bool:
        return not self.violates

    def isfinite(self) -> bool:
        return bool(np.isfinite(self.magnitude))

    @staticmethod
    def supports(ufunc) -> bool:
        """Whether the ufunc is part of the WildcardQuantity algebra."""
        return ufunc in HANDLED_UFUNCS

    # Arithmetic

    def __add__(self, other):
        return add(self, _coerce(other))

    def __radd__(self, other):
        return add(_coerce(other), self)

    def __sub__(self, other):
        return subtract(self, _coerce(other))

    def __rsub__(self, other):
        return subtract(_coerce(other), self)

    def __mul__(self, other):
        return multiply(self, _coerce(other))

    def __rmul__(self, other):
        return multiply(_coerce(other), self)

    def __truediv__(self, other):
        return divide(self, _coerce(other))

    def __rtruediv__(self, other):
        return divide(_coerce(other), self)

    def __pow__(self, other):
        return power(self, _coerce(other))

    def __rpow__(self, other):
        return power(_coerce(other), self)

    def __neg__(self):
        return _apply_unary(np.negative, self)

    def __pos__(self):
        return self

    def __abs__(self):
        return _apply_unary(np.absolute, self)

    def clip(self, a_min=None, a_max=None, out=None, **kwargs):
        """Clamp the magnitude only; np.clip delegates here.

        Bounds are numeric guards, not quantities, so dimension and flags
        pass through unchanged.
        """
        if out is not None or kwargs:
            raise UndefinedOperatorError("clip with out/kwargs is not defined for WildcardQuantity")
        if self.violates:
            return self
        return replace(self, magnitude=np.clip(self.magnitude, a_min, a_max))

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if method != "__call__" or kwargs:
            raise UndefinedOperatorError(
                f"{ufunc.__name__}.{method} with {sorted(kwargs)} is not defined "
                "for WildcardQuantity"
            )
        handler = _UFUNC_HANDLERS.get(ufunc)
        if handler is None:
            raise UndefinedOperatorError(
                f"{ufunc.__name__} is not defined for WildcardQuantity"
            )
        return handler(*(_coerce(x) for x in inputs))

    def __str__(self) -> str:
        if self.violates:
            return "<violates>"
        suffix = " (wildcard)" if self.wildcard else ""
        return f"{self.magnitude:.6g} [{self.dimension}]{suffix}"


def _undefined(name: str):
    def method(self, *args, **kwargs):
        raise UndefinedOperatorError(f"{name} is not defined for WildcardQuantity")

    method.__name__ = name
    return method


# Conversions and orderings would silently drop the dimension
for _name in (
    "__float__",
    "__int__",
    "__complex__",
    "__index__",
    "__round__",
    "__array__",
    "__lt__",
    "__le__",
    "__gt__",
    "__ge__",
    "__mod__",
    "__rmod__",
    "__floordiv__",
    "__rfloordiv__",
    "__divmod__",
    "__rdivmod__",
):
    setattr(WildcardQuantity, _name, _undefined(_name))
del _name


def _coerce(value) -> WildcardQuantity:
    """Treat bare real numbers as fixed dimensionless quantities."""
    if isinstance(value, WildcardQuantity):
        return value
    if isinstance(value, numbers.Real):
        return WildcardQuantity(value)
    raise UndefinedOperatorError(
        f"Cannot combine WildcardQuantity with {type(value).__name__}"
    )


def _screen(*operands: WildcardQuantity) -> WildcardQuantity | None:
    """Violations pass through unchanged; non-finite operands violate."""
    for q in operands:
        if q.violates:
            return q
    for q in operands:
        if not q.isfinite():
            return WildcardQuantity.violation()
    return None


def _scaling(op: Callable, combine: Callable[[Dimension, Dimension], Dimension]):
    def apply(l: WildcardQuantity, r: WildcardQuantity) -> WildcardQuantity:
        early = _screen(l, r)
        if early is not None:
            return early
        return WildcardQuantity(
            op(l.magnitude, r.magnitude),
            combine(l.dimension, r.dimension),
            wildcard=l.wildcard or r.wildcard,
        )

    return apply


def _additive(op: Callable):
    def apply(l: WildcardQuantity, r: WildcardQuantity) -> WildcardQuantity:
        early = _screen(l, r)
        if early is not None:
            return early
        value = op(l.magnitude, r.magnitude)
        if l.dimension == r.dimension:
            return WildcardQuantity(value, l.dimension, wildcard=l.wildcard and r.wildcard)
        if l.wildcard and r.wildcard:
            return WildcardQuantity(value, DIMENSIONLESS, wildcard=True)
        if l.wildcard:
            return WildcardQuantity(value, r.dimension)
        if r.wildcard:
            return WildcardQuantity(value, l.dimension)
        return WildcardQuantity.violation()

    return apply


multiply = _scaling(np.multiply, Dimension.__mul__)
divide = _scaling(np.divide, Dimension.__truediv__)
add = _additive(np.add)
subtract = _additive(np.subtract)


def power(base: WildcardQuantity, exponent: WildcardQuantity) -> WildcardQuantity:
    """Exponents must be dimensionless, or a wildcard that can become so."""
    early = _screen(base, exponent)
    if early is not None:
        return early
    if exponent.dimension.is_dimensionless() or exponent.wildcard:
        return WildcardQuantity(
            np.power(base.magnitude, exponent.magnitude),
            base.dimension**exponent.magnitude,
            wildcard=base.wildcard,
        )
    return WildcardQuantity.violation()


def _arctan2(l: WildcardQuantity, r: WildcardQuantity) -> WildcardQuantity:
    checked = add(l, r)
    if checked.violates:
        return checked
    return WildcardQuantity(
        np.arctan2(l.magnitude, r.magnitude), DIMENSIONLESS, wildcard=checked.wildcard
    )


# Defined on any dimension; maps the operand dimension to the result's
_DIMENSION_MAPS: dict[np.ufunc, Callable[[Dimension], Dimension]] = {
    np.negative: lambda d: d,
    np.positive: lambda d: d,
    np.absolute: lambda d: d,
    np.fabs: lambda d: d,
    np.sqrt: lambda d: d ** Fraction(1, 2),
    np.cbrt: lambda d: d ** Fraction(1, 3),
    np.square: lambda d: d**2,
    np.reciprocal: lambda d: d**-1,
}

# Defined only on dimensionless operands
_TRANSCENDENTAL = frozenset(
    {
        np.sin,
        np.cos,
        np.tan,
        np.arcsin,
        np.arccos,
        np.arctan,
        np.sinh,
        np.cosh,
        np.tanh,
        np.arcsinh,
        np.arccosh,
        np.arctanh,
        np.exp,
        np.exp2,
        np.expm1,
        np.log,
        np.log2,
        np.log10,
        np.log1p,
    }
)


def _apply_unary(ufunc: np.ufunc, x: WildcardQuantity) -> WildcardQuantity:
    early = _screen(x)
    if early is not None:
        return early
    if ufunc in _TRANSCENDENTAL:
        if not x.dimension.is_dimensionless():
            return WildcardQuantity.violation()
        return WildcardQuantity(ufunc(x.magnitude), DIMENSIONLESS, wildcard=x.wildcard)
    return WildcardQuantity(
        ufunc(x.magnitude), _DIMENSION_MAPS[ufunc](x.dimension), wildcard=x.wildcard
    )


def _unary_handler(ufunc: np.ufunc):
    return lambda x: _apply_unary(ufunc, x)


_UFUNC_HANDLERS: dict[np.ufunc, Callable[..., WildcardQuantity]] = {
    np.add: add,
    np.subtract: subtract,
    np.multiply: multiply,
    np.divide: divide,
    np.power: power,
    np.float_power: power,
    np.maximum: _additive(np.maximum),
    np.minimum: _additive(np.minimum),
    np.fmax: _additive(np.fmax),
    np.fmin: _additive(np.fmin),
    np.arctan2: _arctan2,
}
_UFUNC_HANDLERS.update({u: _unary_handler(u) for u in _DIMENSION_MAPS})
_UFUNC_HANDLERS.update({u: _unary_handler(u) for u in _TRANSCENDENTAL})

HANDLED_UFUNCS = frozenset(_UFUNC_HANDLERS)
