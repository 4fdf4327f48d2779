"""IEC 61400-12 style wind-speed normalisation.

Measured nacelle or mast wind speeds are brought to reference conditions
before they are compared with a certified power curve:

* **Density normalisation** rescales the speed so the kinetic energy flux
  (``P ~ rho * v**3``) at site density equals the flux at the reference
  density.
* **Turbulence normalisation** removes the bias that turbulence adds to the
  mean of ``v**3`` over the averaging interval.

All functions are vectorised and return a plain ``float`` for scalar input.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from powersurface.config import settings
from powersurface.core.errors import InvalidInput, NumericDegeneracy

REFERENCE_AIR_DENSITY: float = 1.225  # kg/m^3 at 15 degC, 1013.25 hPa


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _as_array(name: str, values: ArrayLike) -> NDArray[np.floating]:
    if values is None:
        raise InvalidInput(f"{name} is required")
    arr = np.asarray(values, dtype=np.float64)
    if not np.all(np.isfinite(arr)):
        raise InvalidInput(f"{name} contains missing or non-finite values")
    return arr


def _out(arr: NDArray[np.floating]) -> NDArray[np.floating] | float:
    return float(arr) if arr.ndim == 0 else arr


def _turbulence_factor(
    wind_speed: NDArray[np.floating],
    wind_speed_std: NDArray[np.floating],
) -> NDArray[np.floating]:
    """Cube-root bias correction ``(1 + 3 * TI**2) ** (1/3)``.

    The turbulence intensity is taken against the *raw* wind speed.
    """
    if np.any(wind_speed_std < 0):
        raise InvalidInput("wind_speed_std must be >= 0")
    zero = wind_speed == 0
    if np.any(zero):
        raise NumericDegeneracy(
            f"Turbulence intensity is undefined for zero wind speed "
            f"({int(np.count_nonzero(zero))} record(s))"
        )
    intensity = wind_speed_std / wind_speed
    return np.cbrt(1.0 + 3.0 * intensity**2)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def iec_ad(
    wind_speed: ArrayLike,
    air_density: ArrayLike,
    reference_density: float | None = None,
) -> NDArray[np.floating] | float:
    """Normalise wind speed to the reference air density.

    .. math::

        v_{n} = v \\left(\\frac{\\rho}{\\rho_0}\\right)^{1/3}

    Parameters
    ----------
    wind_speed : array-like
        Measured wind speed (m/s).
    air_density : array-like
        Air density at the time of measurement (kg/m^3).
    reference_density : float, optional
        Reference density; defaults to ``settings.reference_air_density``
        (1.225 kg/m^3).

    Raises
    ------
    InvalidInput
        On non-finite inputs or a negative density.
    """
    rho0 = settings.reference_air_density if reference_density is None else reference_density
    if not rho0 > 0:
        raise InvalidInput(f"reference_density must be > 0, got {rho0}")

    ws = _as_array("wind_speed", wind_speed)
    rho = _as_array("air_density", air_density)
    if np.any(rho < 0):
        raise InvalidInput("air_density must be >= 0")

    return _out(ws * np.cbrt(rho / rho0))


def iec_turb(
    wind_speed: ArrayLike,
    wind_speed_std: ArrayLike,
) -> NDArray[np.floating] | float:
    """Turbulence-normalise wind speed.

    .. math::

        v_{c} = v \\left(1 + 3 \\left(\\frac{\\sigma_v}{v}\\right)^2\\right)^{1/3}

    Raises
    ------
    NumericDegeneracy
        If any wind speed is exactly zero.
    InvalidInput
        On non-finite inputs or a negative standard deviation.
    """
    ws = _as_array("wind_speed", wind_speed)
    std = _as_array("wind_speed_std", wind_speed_std)
    return _out(ws * _turbulence_factor(ws, std))


def iec_corr(
    wind_speed: ArrayLike,
    wind_speed_std: ArrayLike,
    air_density: ArrayLike,
    reference_density: float | None = None,
) -> NDArray[np.floating] | float:
    """Density- then turbulence-normalise wind speed.

    The density-normalised speed is multiplied by the turbulence factor
    computed from the **raw** wind speed, i.e.

    .. math::

        v_{c} = v \\left(\\frac{\\rho}{\\rho_0}\\right)^{1/3}
                \\left(1 + 3 \\left(\\frac{\\sigma_v}{v}\\right)^2\\right)^{1/3}

    which is not the same as ``iec_turb(iec_ad(v, rho), sigma)``.
    """
    ws = _as_array("wind_speed", wind_speed)
    std = _as_array("wind_speed_std", wind_speed_std)
    normalised = np.asarray(iec_ad(ws, air_density, reference_density=reference_density))
    return _out(normalised * _turbulence_factor(ws, std))
