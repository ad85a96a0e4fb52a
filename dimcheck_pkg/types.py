"""Exception types raised by dimcheck.

Dimensional violations are never raised; they are reported as a boolean.
These exceptions signal misuse or operations a quantity does not define.
"""


class DimcheckError(Exception):
    """Base class for all dimcheck errors."""


class UndefinedOperatorError(DimcheckError, TypeError):
    """An operation is not defined for the given argument types.

    Raised by WildcardQuantity for anything outside its algebra. The
    capability cache absorbs exactly this class and nothing else.
    """


class UnknownOperatorError(DimcheckError, ValueError):
    """An expression node names an operator missing from the operator table."""


class InvalidTreeError(DimcheckError, ValueError):
    """An expression tree does not fit the dimensions/row it is checked against."""


class UnitAnnotationError(DimcheckError, TypeError):
    """A unit annotation has a type the resolver cannot interpret."""


class OperatorResultError(DimcheckError, TypeError):
    """An operator applied to WildcardQuantity values returned something else."""
