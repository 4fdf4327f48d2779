"""Evaluating a fitted power surface on query points and regular grids."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from powersurface.config import settings
from powersurface.wind.power_curve_table import AIR_DENSITY, POWER, WIND_SPEED, PowerCurveTable

if TYPE_CHECKING:
    from powersurface.wind.surface import PowerSurfaceModel

# Axes are rounded so stepped values and the reference density compare equal.
_AXIS_DECIMALS = 9


@dataclass(frozen=True, eq=False)
class PredictionResult:
    """Predicted power for a set of query points (arrays share one shape)."""

    wind_speed: NDArray[np.floating] = field(repr=False)
    air_density: NDArray[np.floating] = field(repr=False)
    power: NDArray[np.floating] = field(repr=False)
    se: NDArray[np.floating] | None = field(default=None, repr=False)

    def to_frame(self) -> pd.DataFrame:
        """Long table of query point -> predicted power (and standard error)."""
        data = {
            WIND_SPEED: self.wind_speed.ravel(),
            AIR_DENSITY: self.air_density.ravel(),
            POWER: self.power.ravel(),
        }
        if self.se is not None:
            data["se"] = self.se.ravel()
        return pd.DataFrame(data)


@dataclass(frozen=True, eq=False)
class PredictionGrid:
    """Cartesian product of wind-speed and air-density axes."""

    wind_speeds: NDArray[np.floating]
    air_densities: NDArray[np.floating]

    @property
    def shape(self) -> tuple[int, int]:
        return (len(self.air_densities), len(self.wind_speeds))

    def mesh(self) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """``(wind_speed, air_density)`` meshes of shape (n_density, n_speed)."""
        ws, rho = np.meshgrid(self.wind_speeds, self.air_densities)
        return ws, rho

    def to_frame(self) -> pd.DataFrame:
        ws, rho = self.mesh()
        return pd.DataFrame({WIND_SPEED: ws.ravel(), AIR_DENSITY: rho.ravel()})


def _stepped_axis(lo: float, hi: float, step: float) -> NDArray[np.floating]:
    if step <= 0:
        raise ValueError(f"step must be > 0, got {step}")
    n = int(np.floor((hi - lo) / step + 1e-9)) + 1
    return np.round(lo + step * np.arange(n), _AXIS_DECIMALS)


def make_prediction_grid(
    source: PowerCurveTable | PowerSurfaceModel,
    wind_speed_step: float | None = None,
    air_density_step: float | None = None,
    reference_density: float | None = None,
) -> PredictionGrid:
    """Build a validation grid spanning the training range.

    Wind speed runs from the smallest to the largest training wind speed in
    steps of *wind_speed_step* (default 1.0 m/s); air density likewise in
    steps of *air_density_step* (default 0.03 kg/m^3).  The reference density
    (default 1.225 kg/m^3) is always added to the density axis, even when it
    lies outside the training range.

    Parameters
    ----------
    source : PowerCurveTable or PowerSurfaceModel
        Supplies the training ranges.
    """
    ws_step = settings.grid_wind_speed_step if wind_speed_step is None else wind_speed_step
    rho_step = settings.grid_air_density_step if air_density_step is None else air_density_step
    rho_ref = settings.reference_air_density if reference_density is None else reference_density

    if isinstance(source, PowerCurveTable):
        ws_all, rho_all = source.wind_speeds, source.densities
        ws_range = (float(ws_all.min()), float(ws_all.max()))
        rho_range = (float(rho_all.min()), float(rho_all.max()))
    else:
        ws_range, rho_range = source.wind_speed_range, source.air_density_range

    wind_speeds = _stepped_axis(*ws_range, ws_step)
    densities = _stepped_axis(*rho_range, rho_step)
    densities = np.unique(np.append(densities, np.round(rho_ref, _AXIS_DECIMALS)))

    return PredictionGrid(wind_speeds=wind_speeds, air_densities=densities)


def predict_grid(
    model: PowerSurfaceModel,
    grid: PredictionGrid,
    se: bool = False,
) -> pd.DataFrame:
    """Evaluate *model* over every point of *grid*.

    Returns a long DataFrame with ``wind_speed``, ``air_density``, ``power``
    and, when requested, ``se`` columns, ordered by density then wind speed.
    """
    ws, rho = grid.mesh()
    return model.predict(ws, rho, se=se).to_frame()
