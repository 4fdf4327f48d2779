"""Atmospheric state estimation.

Submodules
----------
air_density
    Dry and moist air density with per-record formula diagnostics.
humidity
    Relative humidity derived from dew point.
"""

from powersurface.atmosphere.air_density import (
    AirDensityResult,
    DensityMethod,
    Diagnostic,
    air_density,
    dry_air_density,
    saturation_vapour_pressure,
)
from powersurface.atmosphere.humidity import relative_humidity_from_dew_point

__all__ = [
    "AirDensityResult",
    "DensityMethod",
    "Diagnostic",
    "air_density",
    "dry_air_density",
    "relative_humidity_from_dew_point",
    "saturation_vapour_pressure",
]
