"""Air density from temperature, pressure and (optionally) relative humidity.

Two formulas are supported:

* **Dry air** -- ideal gas law with the specific gas constant of dry air.
* **Moist air** -- the air is split into dry-air and water-vapour partial
  pressures, each contributing through its own gas constant.  The saturation
  vapour pressure uses the Magnus-Tetens form.

Which formula was applied to each record is returned alongside the density
as an :class:`AirDensityResult`, so callers can assert on the path taken
without intercepting any output stream.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import ArrayLike, NDArray

from powersurface.core.errors import InvalidInput

logger = logging.getLogger(__name__)


# Physical constants
GAS_CONSTANT_DRY_AIR: float = 287.058  # J/(kg*K)
GAS_CONSTANT_WATER_VAPOUR: float = 461.495  # J/(kg*K)
ZERO_CELSIUS_K: float = 273.15

# Magnus-Tetens coefficients for saturation vapour pressure over water (hPa).
_MAGNUS_E0_HPA: float = 6.1078
_MAGNUS_A: float = 7.5
_MAGNUS_B_C: float = 237.3


class DensityMethod(str, enum.Enum):
    """Formula applied by :func:`air_density`."""

    DRY = "dry"
    MOIST = "moist"
    MIXED = "mixed"  # some records moist, others fell back to dry


class Diagnostic(str, enum.Enum):
    """Non-fatal conditions reported by :func:`air_density`."""

    DRY_AIR_FALLBACK = "dry_air_fallback"
    NEGATIVE_PARTIAL_PRESSURE_CLAMPED = "negative_partial_pressure_clamped"
    HUMIDITY_LOOKS_FRACTIONAL = "humidity_looks_fractional"


@dataclass(frozen=True)
class AirDensityResult:
    """Air density per record plus the diagnostics of how it was computed.

    Attributes
    ----------
    density : ndarray
        Air density (kg/m^3), never negative.
    moist : ndarray of bool
        ``True`` where the moist-air formula was applied.
    clamped : ndarray of bool
        ``True`` where a negative dry-air partial pressure was clamped to 0.
    diagnostics : tuple of Diagnostic
        Conditions worth surfacing to the caller, in a stable order.
    """

    density: NDArray[np.floating] = field(repr=False)
    moist: NDArray[np.bool_] = field(repr=False)
    clamped: NDArray[np.bool_] = field(repr=False)
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def method(self) -> DensityMethod:
        if self.moist.size and bool(np.all(self.moist)):
            return DensityMethod.MOIST
        if bool(np.any(self.moist)):
            return DensityMethod.MIXED
        return DensityMethod.DRY

    @property
    def used_dry_fallback(self) -> bool:
        return Diagnostic.DRY_AIR_FALLBACK in self.diagnostics

    def scalar(self) -> float:
        """Density as a plain float; only valid for single-record results."""
        if self.density.size != 1:
            raise ValueError(f"Result holds {self.density.size} records, not one")
        return float(self.density.reshape(-1)[0])


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def dry_air_density(
    temperature: ArrayLike,
    pressure: ArrayLike,
) -> NDArray[np.floating]:
    """Dry-air density (kg/m^3) from temperature (degC) and pressure (hPa).

    .. math::

        \\rho = \\frac{100 \\, p}{R_d \\, (T + 273.15)}
    """
    temperature_c, pressure_hpa = _validated_state(temperature, pressure)
    return (pressure_hpa * 100.0) / (GAS_CONSTANT_DRY_AIR * (temperature_c + ZERO_CELSIUS_K))


def saturation_vapour_pressure(temperature: ArrayLike) -> NDArray[np.floating]:
    """Saturation vapour pressure (hPa) over water at *temperature* (degC)."""
    t = np.asarray(temperature, dtype=np.float64)
    return _MAGNUS_E0_HPA * 10.0 ** (_MAGNUS_A * t / (t + _MAGNUS_B_C))


def air_density(
    temperature: ArrayLike,
    pressure: ArrayLike,
    relative_humidity: ArrayLike | None = None,
) -> AirDensityResult:
    """Estimate air density for one or many atmospheric samples.

    Parameters
    ----------
    temperature : array-like
        Ambient temperature (degC).
    pressure : array-like
        Station pressure (hPa).
    relative_humidity : array-like or None, optional
        Relative humidity in **percent** (0-100).  ``None`` applies the dry
        air formula to every record; NaN entries fall back to dry air for
        those records only.

    Returns
    -------
    AirDensityResult
        Density per record, shaped like the broadcast inputs, with the
        formula path and any anomalies reported as diagnostics.

    Raises
    ------
    InvalidInput
        If temperature or pressure is missing / non-finite, the temperature
        is at or below absolute zero, or humidity is negative or infinite.

    Notes
    -----
    The vapour partial pressure is ``p_sat[hPa] * rh[%]``.  Because
    ``1 hPa * 1 % = 100 Pa * 0.01``, this product is already the vapour
    pressure in Pa, consistent with the dry partial pressure
    ``100 * p - p_v``.
    """
    temperature_c, pressure_hpa = _validated_state(temperature, pressure)
    temperature_k = temperature_c + ZERO_CELSIUS_K
    pressure_pa = pressure_hpa * 100.0

    rho_dry = pressure_pa / (GAS_CONSTANT_DRY_AIR * temperature_k)
    diagnostics: list[Diagnostic] = []

    if relative_humidity is None:
        logger.debug("No humidity supplied, using dry-air density", extra={"method": "dry"})
        moist = np.zeros(rho_dry.shape, dtype=bool)
        return AirDensityResult(
            density=rho_dry,
            moist=moist,
            clamped=np.zeros(rho_dry.shape, dtype=bool),
            diagnostics=(Diagnostic.DRY_AIR_FALLBACK,),
        )

    rh = np.asarray(relative_humidity, dtype=np.float64)
    try:
        temperature_k, pressure_pa, rh = np.broadcast_arrays(temperature_k, pressure_pa, rh)
        temperature_c = np.broadcast_to(temperature_c, rh.shape)
    except ValueError as exc:
        raise InvalidInput(f"Humidity shape {rh.shape} does not match the samples: {exc}") from exc

    if np.any(np.isinf(rh)):
        raise InvalidInput("relative_humidity contains infinite values")
    if np.any(rh < 0):
        raise InvalidInput("relative_humidity must be >= 0 percent")

    moist = ~np.isnan(rh)
    if not np.all(moist):
        diagnostics.append(Diagnostic.DRY_AIR_FALLBACK)
    supplied = rh[moist]
    if np.any(supplied > 0) and np.all(supplied <= 1.0):
        diagnostics.append(Diagnostic.HUMIDITY_LOOKS_FRACTIONAL)

    p_sat = saturation_vapour_pressure(temperature_c)
    p_vapour = np.where(moist, p_sat * np.nan_to_num(rh), 0.0)
    p_dry = pressure_pa - p_vapour

    clamped = p_dry < 0
    if np.any(clamped):
        diagnostics.append(Diagnostic.NEGATIVE_PARTIAL_PRESSURE_CLAMPED)
        logger.warning(
            "Vapour pressure exceeds station pressure for %d record(s); clamped to zero",
            int(np.count_nonzero(clamped)),
        )
        p_dry = np.maximum(p_dry, 0.0)

    rho_moist = p_dry / (GAS_CONSTANT_DRY_AIR * temperature_k) + p_vapour / (
        GAS_CONSTANT_WATER_VAPOUR * temperature_k
    )
    density = np.where(moist, rho_moist, np.broadcast_to(rho_dry, moist.shape))

    result = AirDensityResult(
        density=density,
        moist=moist,
        clamped=clamped,
        diagnostics=tuple(diagnostics),
    )
    logger.debug("Air density computed", extra={"method": result.method.value, "rows": int(density.size)})
    return result


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _validated_state(
    temperature: ArrayLike,
    pressure: ArrayLike,
) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
    if temperature is None:
        raise InvalidInput("temperature is required")
    if pressure is None:
        raise InvalidInput("pressure is required")

    try:
        t = np.asarray(temperature, dtype=np.float64)
        p = np.asarray(pressure, dtype=np.float64)
        t, p = np.broadcast_arrays(t, p)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"temperature/pressure are not numeric arrays: {exc}") from exc

    bad_t = ~np.isfinite(t)
    if np.any(bad_t):
        raise InvalidInput(f"temperature is missing or non-finite in {int(np.count_nonzero(bad_t))} record(s)")
    bad_p = ~np.isfinite(p)
    if np.any(bad_p):
        raise InvalidInput(f"pressure is missing or non-finite in {int(np.count_nonzero(bad_p))} record(s)")
    if np.any(t <= -ZERO_CELSIUS_K):
        raise InvalidInput("temperature must be above absolute zero (-273.15 degC)")
    if np.any(p < 0):
        raise InvalidInput("pressure must be >= 0 hPa")

    return t, p
