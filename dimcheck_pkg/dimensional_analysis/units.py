"""Physical dimensions and unit annotation parsing.

Provides:
- Dimension class for representing SI base dimensions with rational exponents
- Named base and derived dimensions
- Dimension resolution from per-feature unit annotations (via pint)
"""

from __future__ import annotations

import numbers
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from dataclasses import fields
from fractions import Fraction
from tokenize import TokenError
from typing import Any

import numpy as np
import pint
from pint.errors import PintError

from ..config import DIMENSION_MAX_DENOMINATOR
from ..logging_config import get_logger
from ..types import UnitAnnotationError

logger = get_logger("units")

# Initialize unit registry
ureg = pint.UnitRegistry()

# pint base dimensionality -> Dimension field
PINT_BASE_DIMENSIONS = {
    "[mass]": "M",
    "[length]": "L",
    "[time]": "T",
    "[current]": "I",
    "[temperature]": "Theta",
    "[substance]": "N",
    "[luminosity]": "J",
}


def as_exponent(value: Any) -> Fraction:
    """Convert a power to an exact exponent.

    Integers and fractions are kept exact; floats are rationalized with
    a bounded denominator so that 0.5 -> 1/2 and 0.3333333 -> 1/3.
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, numbers.Integral):
        return Fraction(int(value))
    return Fraction(float(value)).limit_denominator(DIMENSION_MAX_DENOMINATOR)


@dataclass(frozen=True)
class Dimension:
    """SI base dimensions: [M, L, T, I, Θ, N, J].

    Represents the dimensional formula of a physical quantity.
    Exponents are stored as Fractions so roots stay exact.

    Examples:
        - Force: Dimension(M=1, L=1, T=-2)  # kg·m/s²
        - Velocity: Dimension(L=1, T=-1)  # m/s
        - sqrt(Area): Dimension(L=2) ** Fraction(1, 2) == Dimension(L=1)
    """

    M: Fraction = Fraction(0)  # Mass (kg)
    L: Fraction = Fraction(0)  # Length (m)
    T: Fraction = Fraction(0)  # Time (s)
    I: Fraction = Fraction(0)  # Current (A)
    Theta: Fraction = Fraction(0)  # Temperature (K)
    N: Fraction = Fraction(0)  # Amount (mol)
    J: Fraction = Fraction(0)  # Luminosity (cd)

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, as_exponent(getattr(self, f.name)))

    def _exponents(self) -> tuple[Fraction, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))

    def __mul__(self, other: Dimension) -> Dimension:
        """Multiply dimensions (add exponents)."""
        return Dimension(*(a + b for a, b in zip(self._exponents(), other._exponents())))

    def __truediv__(self, other: Dimension) -> Dimension:
        """Divide dimensions (subtract exponents)."""
        return Dimension(*(a - b for a, b in zip(self._exponents(), other._exponents())))

    def __pow__(self, n) -> Dimension:
        """Raise dimension to a power (multiply exponents)."""
        p = as_exponent(n)
        return Dimension(*(a * p for a in self._exponents()))

    def is_dimensionless(self) -> bool:
        """Check if this is a dimensionless quantity."""
        return all(e == 0 for e in self._exponents())

    def to_vector(self) -> np.ndarray:
        """Convert to numpy array of exponents."""
        return np.array([float(e) for e in self._exponents()])

    @staticmethod
    def from_vector(v: np.ndarray) -> Dimension:
        """Create Dimension from exponent vector."""
        return Dimension(*(as_exponent(x) for x in np.asarray(v).tolist()))

    def __str__(self) -> str:
        parts = []
        names = ["M", "L", "T", "I", "Θ", "N", "J"]
        for name, exp in zip(names, self._exponents()):
            if exp != 0:
                if exp == 1:
                    parts.append(name)
                else:
                    parts.append(f"{name}^{exp}")
        return " ".join(parts) if parts else "1 (dimensionless)"


# Common dimensions
DIMENSIONLESS = Dimension()
MASS = Dimension(M=1)
LENGTH = Dimension(L=1)
TIME = Dimension(T=1)
CURRENT = Dimension(I=1)
TEMPERATURE = Dimension(Theta=1)
AMOUNT = Dimension(N=1)
LUMINOSITY = Dimension(J=1)

# Derived dimensions
VELOCITY = LENGTH / TIME
ACCELERATION = LENGTH / TIME**2
FORCE = MASS * ACCELERATION
ENERGY = FORCE * LENGTH
POWER = ENERGY / TIME
FREQUENCY = DIMENSIONLESS / TIME
PRESSURE = FORCE / LENGTH**2
DENSITY = MASS / LENGTH**3
CHARGE = CURRENT * TIME
VOLTAGE = ENERGY / CHARGE


def _from_pint_dimensionality(dimensionality, source: Any) -> Dimension:
    exponents = {}
    for name, exp in dimensionality.items():
        field_name = PINT_BASE_DIMENSIONS.get(name)
        if field_name is None:
            logger.warning(
                f"Unit {source!r} has non-SI dimension {name}; treating as dimensionless"
            )
            return DIMENSIONLESS
        exponents[field_name] = as_exponent(exp)
    return Dimension(**exponents)


def _parse_unit_string(text: str) -> Dimension:
    if not text.strip():
        return DIMENSIONLESS
    try:
        parsed = ureg.parse_expression(text)
    except (PintError, TokenError, SyntaxError, ValueError):
        logger.warning(f"Could not parse unit {text!r}; treating as dimensionless")
        return DIMENSIONLESS
    if not isinstance(parsed, pint.Quantity):
        # e.g. "2" parses to a bare number
        return DIMENSIONLESS
    return _from_pint_dimensionality(parsed.dimensionality, text)


def parse_dimension(annotation: Any) -> Dimension:
    """Turn a single unit annotation into a Dimension.

    Args:
        annotation: A unit string ("m/s^2"), a pint Unit or Quantity, a
            Dimension, a mapping of exponents ({"L": 1, "T": -1}), a bare
            number or None.

    Returns:
        The Dimension. Numbers, None and unparseable strings are dimensionless.

    Raises:
        UnitAnnotationError: For annotation types that carry no unit meaning.
    """
    if annotation is None:
        return DIMENSIONLESS
    if isinstance(annotation, Dimension):
        return annotation
    if isinstance(annotation, str):
        return _parse_unit_string(annotation)
    if isinstance(annotation, (pint.Unit, pint.Quantity)):
        return _from_pint_dimensionality(annotation.dimensionality, annotation)
    if isinstance(annotation, numbers.Number):
        return DIMENSIONLESS
    if isinstance(annotation, Mapping):
        try:
            return Dimension(**annotation)
        except TypeError as e:
            raise UnitAnnotationError(
                f"Invalid dimension exponents {dict(annotation)!r}: {e}"
            ) from e
    raise UnitAnnotationError(
        f"Cannot interpret {type(annotation).__name__} as a unit annotation"
    )


def resolve_dimensions(annotations: Sequence[Any]) -> list[Dimension]:
    """Resolve one Dimension per feature, preserving order.

    Called once per dataset. Unit metadata is optional and never blocks
    execution: anything unparseable is treated as dimensionless.

    Example:
        >>> resolve_dimensions(["m", "s", 2.0]) == [LENGTH, TIME, DIMENSIONLESS]
        True
    """
    return [parse_dimension(a) for a in annotations]
