"""Augment a SCADA time series with air density and IEC-corrected wind speed.

Input is one row per averaging interval and turbine, with at least wind
speed, wind-speed standard deviation, temperature and pressure.  Humidity is
taken from a relative-humidity column when present, otherwise derived from a
dew-point column, otherwise the dry-air formula is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

import numpy as np
import pandas as pd

from powersurface.atmosphere.air_density import AirDensityResult, air_density
from powersurface.atmosphere.humidity import relative_humidity_from_dew_point
from powersurface.core.errors import FormatMismatch
from powersurface.wind.iec import iec_corr
from powersurface.wind.surface import PowerSurfaceModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScadaColumns:
    """Column names of the SCADA frame (inputs) and of the derived outputs."""

    device_id: str = "device_id"
    timestamp: str = "timestamp"
    wind_speed: str = "wind_speed"
    wind_speed_std: str = "wind_speed_std"
    power: str = "power"
    temperature: str = "temperature"
    pressure: str = "pressure"
    relative_humidity: str = "relative_humidity"
    dew_point: str = "dew_point"

    # Derived
    air_density: str = "air_density"
    wind_speed_iec: str = "wind_speed_iec"
    expected_power: str = "expected_power"

    def required(self) -> list[str]:
        return [self.wind_speed, self.wind_speed_std, self.temperature, self.pressure]


@dataclass(frozen=True, eq=False)
class ScadaAugmentation:
    """Augmented frame plus what happened while deriving it.

    Attributes
    ----------
    frame : DataFrame
        Copy of the input with the derived columns appended.
    density : AirDensityResult
        Per-row air density and its formula diagnostics.
    humidity_source : {"measured", "dew_point", "mixed", "none"}
        Where the relative humidity used for density came from.
    zero_wind_rows : int
        Rows left uncorrected (NaN) because their wind speed was zero.
    """

    frame: pd.DataFrame = field(repr=False)
    density: AirDensityResult = field(repr=False)
    humidity_source: str
    zero_wind_rows: int = 0


def _humidity(frame: pd.DataFrame, columns: ScadaColumns) -> tuple[np.ndarray | None, str]:
    has_rh = columns.relative_humidity in frame.columns
    has_dew = columns.dew_point in frame.columns

    if not has_rh and not has_dew:
        return None, "none"

    rh = frame[columns.relative_humidity].to_numpy(dtype=np.float64) if has_rh else None
    if not has_dew:
        return rh, "measured"

    derived = np.asarray(
        relative_humidity_from_dew_point(
            frame[columns.temperature].to_numpy(dtype=np.float64),
            frame[columns.dew_point].to_numpy(dtype=np.float64),
        ),
        dtype=np.float64,
    )
    if rh is None:
        return derived, "dew_point"

    missing = np.isnan(rh)
    if not missing.any():
        return rh, "measured"
    return np.where(missing, derived, rh), "mixed"


def augment_scada(
    frame: pd.DataFrame,
    columns: ScadaColumns | None = None,
    model: PowerSurfaceModel | None = None,
    use_corrected_wind_speed: bool = True,
    zero_wind: Literal["raise", "nan"] = "raise",
) -> ScadaAugmentation:
    """Derive air density, corrected wind speed and (optionally) expected power.

    Parameters
    ----------
    frame : DataFrame
        SCADA records.  Temperature in degC, pressure in hPa, humidity in %.
    columns : ScadaColumns, optional
        Column mapping; defaults to :class:`ScadaColumns`.
    model : PowerSurfaceModel, optional
        When given, an ``expected_power`` column is added.
    use_corrected_wind_speed : bool
        Query the surface with the IEC-corrected (True) or raw (False) wind
        speed.  Air density is always the derived per-row density.
    zero_wind : {"raise", "nan"}
        ``"raise"`` propagates :class:`~powersurface.core.errors.NumericDegeneracy`
        for rows with zero wind speed; ``"nan"`` leaves those rows NaN and
        counts them in :attr:`ScadaAugmentation.zero_wind_rows`.

    Raises
    ------
    FormatMismatch
        If a required column is missing.
    InvalidInput
        If temperature, pressure, wind speed or its standard deviation are
        missing or non-finite.
    NumericDegeneracy
        If ``zero_wind="raise"`` and a wind speed is zero.
    """
    columns = columns or ScadaColumns()
    if zero_wind not in ("raise", "nan"):
        raise ValueError(f"zero_wind must be 'raise' or 'nan', got {zero_wind!r}")

    missing = [c for c in columns.required() if c not in frame.columns]
    if missing:
        raise FormatMismatch(f"SCADA frame is missing required columns: {missing}")

    out = frame.copy()
    rh, humidity_source = _humidity(out, columns)
    if humidity_source in ("dew_point", "mixed"):
        out[columns.relative_humidity] = rh

    density = air_density(
        out[columns.temperature].to_numpy(dtype=np.float64),
        out[columns.pressure].to_numpy(dtype=np.float64),
        rh,
    )
    rho = np.broadcast_to(density.density, (len(out),))
    out[columns.air_density] = rho

    ws = out[columns.wind_speed].to_numpy(dtype=np.float64)
    std = out[columns.wind_speed_std].to_numpy(dtype=np.float64)

    corrected = np.full(len(out), np.nan)
    zero = ws == 0 if zero_wind == "nan" else np.zeros(len(out), dtype=bool)
    keep = ~zero
    if keep.any():
        corrected[keep] = iec_corr(ws[keep], std[keep], rho[keep])
    out[columns.wind_speed_iec] = corrected

    if model is not None:
        query_ws = corrected if use_corrected_wind_speed else ws
        expected = np.full(len(out), np.nan)
        ok = np.isfinite(query_ws)
        if ok.any():
            expected[ok] = model.predict(query_ws[ok], rho[ok]).power
        out[columns.expected_power] = expected

    zero_rows = int(np.count_nonzero(zero))
    if zero_rows:
        logger.warning("%d row(s) with zero wind speed left uncorrected", zero_rows)
    logger.info(
        "Augmented %d SCADA rows (density method: %s, humidity: %s)",
        len(out),
        density.method.value,
        humidity_source,
        extra={"rows": len(out), "method": density.method.value},
    )

    return ScadaAugmentation(
        frame=out,
        density=density,
        humidity_source=humidity_source,
        zero_wind_rows=zero_rows,
    )
