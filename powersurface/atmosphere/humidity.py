"""Relative humidity from dew point (August-Roche-Magnus approximation)."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

# Alduchov & Eskridge (1996) coefficients
_MAGNUS_A: float = 17.625
_MAGNUS_B_C: float = 243.04


def relative_humidity_from_dew_point(
    temperature: ArrayLike,
    dew_point: ArrayLike,
) -> NDArray[np.floating] | float:
    """Relative humidity (%) from air temperature and dew point (both degC).

    .. math::

        RH = 100 \\, \\frac{\\exp\\left(\\frac{a T_d}{b + T_d}\\right)}
                           {\\exp\\left(\\frac{a T}{b + T}\\right)}

    The result is only physical when ``dew_point <= temperature``.  That
    condition is not enforced: a dew point above the air temperature yields
    a humidity above 100 %, and validating it is up to the caller.
    """
    t = np.asarray(temperature, dtype=np.float64)
    td = np.asarray(dew_point, dtype=np.float64)

    rh = 100.0 * np.exp(_MAGNUS_A * td / (_MAGNUS_B_C + td)) / np.exp(_MAGNUS_A * t / (_MAGNUS_B_C + t))

    if rh.ndim == 0:
        return float(rh)
    return rh
