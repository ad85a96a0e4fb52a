"""Dimensional Analysis Module.

Checks candidate formulas for dimensional consistency, treating free
constants as wildcards that may adopt any dimension.

Components:
    - units: SI dimensions and unit annotation resolution
    - wildcard: WildcardQuantity algebra
    - capabilities: operator capability cache
    - constraints: recursive tree evaluator
    - dataset: dataset-level checks with row policies
"""

from .capabilities import Capability
from .capabilities import CapabilityCache
from .capabilities import clear_capability_cache
from .capabilities import get_capability_cache
from .constraints import evaluate_tree
from .constraints import violates_dimensional_constraints
from .dataset import Dataset
from .units import ACCELERATION
from .units import AMOUNT
from .units import CHARGE
from .units import CURRENT
from .units import DENSITY
from .units import DIMENSIONLESS
from .units import ENERGY
from .units import FORCE
from .units import FREQUENCY
from .units import LENGTH
from .units import LUMINOSITY
from .units import MASS
from .units import POWER
from .units import PRESSURE
from .units import TEMPERATURE
from .units import TIME
from .units import VELOCITY
from .units import VOLTAGE
from .units import Dimension
from .units import parse_dimension
from .units import resolve_dimensions
from .wildcard import WildcardQuantity

__all__ = [
    # Classes
    "Dimension",
    "WildcardQuantity",
    "Capability",
    "CapabilityCache",
    "Dataset",
    # Base dimensions
    "DIMENSIONLESS",
    "MASS",
    "LENGTH",
    "TIME",
    "CURRENT",
    "TEMPERATURE",
    "AMOUNT",
    "LUMINOSITY",
    # Derived dimensions
    "VELOCITY",
    "ACCELERATION",
    "FORCE",
    "ENERGY",
    "POWER",
    "FREQUENCY",
    "PRESSURE",
    "DENSITY",
    "CHARGE",
    "VOLTAGE",
    # Functions
    "parse_dimension",
    "resolve_dimensions",
    "evaluate_tree",
    "violates_dimensional_constraints",
    "get_capability_cache",
    "clear_capability_cache",
]
