"""Centralized configuration for dimcheck.

This module defines:
- Exponent precision for rational dimensions
- Default row policy for dataset-level dimensional checks
- Capability cache switch
- Logging level

Configuration can be overridden via environment variables (prefixed with
DIMCHECK_).
"""

import os

VERSION = "0.1.0"

# Dimension exponents are exact fractions; float powers are rationalized
# with this denominator bound (x^0.333... -> L^(1/3)).
DIMENSION_MAX_DENOMINATOR = int(
    os.getenv("DIMCHECK_DIMENSION_MAX_DENOMINATOR", "25200")
)

# Which rows of a dataset a candidate is checked against: "first", "any", "all"
DIMENSIONAL_ROW_POLICY = os.getenv("DIMCHECK_DIMENSIONAL_ROW_POLICY", "first")

# When disabled, every evaluation gets a throwaway capability cache
CAPABILITY_CACHE_ENABLED = (
    os.getenv("DIMCHECK_CAPABILITY_CACHE_ENABLED", "true").lower() == "true"
)

LOG_LEVEL = os.getenv("DIMCHECK_LOG_LEVEL", "WARNING")
