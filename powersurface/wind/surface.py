"""Continuous power surface ``P = f(wind speed, air density)``.

The manufacturer publishes power at a handful of air densities.  A loess
surface over the predictors *air density* and *wind speed cubed* turns that
sparse grid into a function that can be queried at any measured density.
Using ``v**3`` instead of ``v`` makes the partial-load region, where
``P ~ rho * v**3``, an exact quadratic-in-the-predictors interaction that a
degree-2 local fit reproduces without bias.

The default configuration interpolates: the span is so small that each
local fit only sees the two grid points nearest the query, fewer than the
local polynomial has terms, and the minimum-norm local solution passes
through both of them.  The table is trusted data, so the goal is faithful
interpolation rather than smoothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray

from powersurface.config import Settings, settings
from powersurface.core.errors import FitFailure, InvalidInput
from powersurface.regression.loess import LoessFit, loess_fit, n_local_terms
from powersurface.wind.power_curve_table import PowerCurveTable
from powersurface.wind.prediction import PredictionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SurfaceConfig:
    """Smoothing configuration for :func:`fit_surface`.

    Parameters
    ----------
    degree : {1, 2}
        Local polynomial degree.  Default 2.
    span : float
        Fraction of grid points in each local neighbourhood.  Default 0.01,
        which for a manufacturer sheet leaves two neighbours per query and
        makes the surface interpolate the published values.
    surface : {"direct"}
        Evaluate the local fit at every query point.  Interpolation-table
        shortcuts are not supported.
    statistics : {"exact"}
        Compute the full operator matrix for degrees of freedom and
        standard errors.
    normalize : bool
        Scale predictors by their trimmed standard deviation.  Default True.
    min_neighbors : int or None
        Lower bound for the neighbourhood size; ``None`` lets the span
        decide.  Set it above the number of local terms to smooth instead.
    """

    degree: int = 2
    span: float = 0.01
    surface: Literal["direct"] = "direct"
    statistics: Literal["exact"] = "exact"
    normalize: bool = True
    min_neighbors: int | None = None

    def __post_init__(self) -> None:
        if self.degree not in (1, 2):
            raise ValueError(f"degree must be 1 or 2, got {self.degree}")
        if not self.span > 0:
            raise ValueError(f"span must be > 0, got {self.span}")
        if self.surface != "direct":
            raise ValueError(f"Unsupported surface evaluation '{self.surface}'. Use 'direct'.")
        if self.statistics != "exact":
            raise ValueError(f"Unsupported statistics '{self.statistics}'. Use 'exact'.")
        if self.min_neighbors is not None and self.min_neighbors < 1:
            raise ValueError(f"min_neighbors must be >= 1, got {self.min_neighbors}")

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> SurfaceConfig:
        source = source or settings
        return cls(degree=source.surface_degree, span=source.surface_span)


@dataclass(frozen=True, eq=False)
class PowerSurfaceModel:
    """Fitted power surface.  Immutable and safe to share between callers.

    Use :func:`fit_surface` to build one.
    """

    config: SurfaceConfig
    wind_speed_range: tuple[float, float]
    air_density_range: tuple[float, float]
    _fit: LoessFit = field(repr=False)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def n_points(self) -> int:
        return self._fit.n_points

    @property
    def n_neighbors(self) -> int:
        return self._fit.n_neighbors

    @property
    def enp(self) -> float:
        """Equivalent number of parameters of the fit."""
        return self._fit.enp

    @property
    def residual_se(self) -> float:
        return self._fit.residual_se

    @property
    def fitted(self) -> NDArray[np.floating]:
        """Surface values at the training grid, in table order."""
        return self._fit.fitted

    def residuals(self) -> NDArray[np.floating]:
        """Published minus fitted power at the training grid."""
        return self._fit.residuals

    def in_training_range(self, wind_speed: ArrayLike, air_density: ArrayLike) -> NDArray[np.bool_]:
        """``True`` where a query lies inside the training bounding box."""
        ws, rho = np.broadcast_arrays(
            np.asarray(wind_speed, dtype=np.float64),
            np.asarray(air_density, dtype=np.float64),
        )
        (ws_lo, ws_hi), (rho_lo, rho_hi) = self.wind_speed_range, self.air_density_range
        return (ws >= ws_lo) & (ws <= ws_hi) & (rho >= rho_lo) & (rho <= rho_hi)

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(
        self,
        wind_speed: ArrayLike,
        air_density: ArrayLike,
        se: bool = False,
    ) -> PredictionResult:
        """Evaluate the surface at (wind speed, air density) query points.

        Inputs are broadcast against each other.  Queries outside the
        training range are evaluated anyway (local extrapolation can be
        unstable) and logged at WARNING.

        Raises
        ------
        InvalidInput
            If any query value is non-finite.
        """
        ws, rho = np.broadcast_arrays(
            np.asarray(wind_speed, dtype=np.float64),
            np.asarray(air_density, dtype=np.float64),
        )
        if not (np.all(np.isfinite(ws)) and np.all(np.isfinite(rho))):
            raise InvalidInput("Prediction inputs contain missing or non-finite values")

        outside = ~self.in_training_range(ws, rho)
        if np.any(outside):
            logger.warning(
                "%d of %d query point(s) lie outside the fitted range; results are extrapolated",
                int(np.count_nonzero(outside)),
                outside.size,
            )

        x_new = np.column_stack([rho.ravel(), ws.ravel() ** 3])
        power, stderr = self._fit.evaluate(x_new, se=se)
        return PredictionResult(
            wind_speed=ws.copy(),
            air_density=rho.copy(),
            power=power.reshape(ws.shape),
            se=None if stderr is None else stderr.reshape(ws.shape),
        )


def fit_surface(
    table: PowerCurveTable,
    config: SurfaceConfig | None = None,
) -> PowerSurfaceModel:
    """Fit the power surface to a manufacturer table.

    Parameters
    ----------
    table : PowerCurveTable
        Long-form (wind speed, air density, power) entries.
    config : SurfaceConfig, optional
        Smoothing configuration; defaults to :meth:`SurfaceConfig.from_settings`.

    Returns
    -------
    PowerSurfaceModel

    Raises
    ------
    FitFailure
        If the grid is too small, contains non-finite values, has a single
        wind speed or density, or its predictors are colinear.
    """
    config = config or SurfaceConfig.from_settings()
    ws, rho, power = table.arrays()

    terms = n_local_terms(2, config.degree)
    if len(power) < terms + 1:
        raise FitFailure(f"Power curve has {len(power)} entries; at least {terms + 1} are required")
    if np.unique(rho).size < 2:
        raise FitFailure("Power curve must be published at two or more air densities")
    if np.unique(ws).size < 3:
        raise FitFailure("Power curve must contain three or more wind speeds")

    fit = loess_fit(
        np.column_stack([rho, ws**3]),
        power,
        degree=config.degree,
        span=config.span,
        normalize=config.normalize,
        min_neighbors=config.min_neighbors,
    )

    logger.info(
        "Fitted power surface on %d points (q=%d, enp=%.1f, residual se=%.3g)",
        fit.n_points,
        fit.n_neighbors,
        fit.enp,
        fit.residual_se,
        extra={
            "n_points": fit.n_points,
            "span": config.span,
            "enp": round(fit.enp, 3),
            "residual_se": fit.residual_se,
        },
    )

    return PowerSurfaceModel(
        config=config,
        wind_speed_range=(float(ws.min()), float(ws.max())),
        air_density_range=(float(rho.min()), float(rho.max())),
        _fit=fit,
    )
