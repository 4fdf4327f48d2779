"""Wind-speed normalisation and power-surface modules.

Submodules
----------
iec
    Air-density and turbulence normalisation of measured wind speed.
power_curve_table
    Parsing and reshaping of manufacturer power-curve sheets.
surface
    Loess power surface over (air density, wind speed cubed).
prediction
    Query results, prediction grids and batch grid evaluation.
scada
    SCADA time-series augmentation with density and corrected wind speed.
"""

from powersurface.wind.iec import REFERENCE_AIR_DENSITY, iec_ad, iec_corr, iec_turb
from powersurface.wind.power_curve_table import PowerCurveTable, decode_density_code, density_from_header
from powersurface.wind.prediction import (
    PredictionGrid,
    PredictionResult,
    make_prediction_grid,
    predict_grid,
)
from powersurface.wind.surface import PowerSurfaceModel, SurfaceConfig, fit_surface
from powersurface.wind.scada import ScadaAugmentation, ScadaColumns, augment_scada

__all__ = [
    "augment_scada",
    "decode_density_code",
    "density_from_header",
    "fit_surface",
    "iec_ad",
    "iec_corr",
    "iec_turb",
    "make_prediction_grid",
    "predict_grid",
    "PowerCurveTable",
    "PowerSurfaceModel",
    "PredictionGrid",
    "PredictionResult",
    "REFERENCE_AIR_DENSITY",
    "ScadaAugmentation",
    "ScadaColumns",
    "SurfaceConfig",
]
