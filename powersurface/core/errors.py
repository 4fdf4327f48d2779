"""Error taxonomy shared by the atmosphere, IEC and surface modules.

Every error derives from :class:`PowerSurfaceError` and also from the
built-in exception a caller would naturally catch (``ValueError`` for bad
data, ``ArithmeticError`` for degenerate arithmetic), so existing
``except ValueError`` handlers keep working.
"""

from __future__ import annotations


class PowerSurfaceError(Exception):
    """Base class for all powersurface errors."""


class InvalidInput(PowerSurfaceError, ValueError):
    """Missing, non-finite or physically impossible input values."""


class NumericDegeneracy(PowerSurfaceError, ArithmeticError):
    """A formula is undefined for the given input (e.g. zero wind speed)."""


class FormatMismatch(PowerSurfaceError, ValueError):
    """A table does not have the expected columns or header encoding."""


class FitFailure(PowerSurfaceError, RuntimeError):
    """The surface cannot be fitted from the supplied grid."""


__all__ = [
    "FitFailure",
    "FormatMismatch",
    "InvalidInput",
    "NumericDegeneracy",
    "PowerSurfaceError",
]
