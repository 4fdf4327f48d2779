"""Shared test fixtures for powersurface tests."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from powersurface.wind.power_curve_table import PowerCurveTable

# Published densities and their sheet headers.  Two-decimal headers decode
# as hundredths, "1.225" as thousandths.
DENSITY_HEADERS = {
    "0.95": 0.95,
    "0.98": 0.98,
    "1.01": 1.01,
    "1.04": 1.04,
    "1.07": 1.07,
    "1.10": 1.10,
    "1.13": 1.13,
    "1.16": 1.16,
    "1.19": 1.19,
    "1.225": 1.225,
    "1.25": 1.25,
    "1.28": 1.28,
}

# kW per (kg/m^3 * (m/s)^3): 0.5 * swept area * Cp / 1000 for a ~90 m rotor
POWER_COEFF = 1.4
RATED_POWER_KW = 2000.0


def _sheet(wind_speeds: np.ndarray, power_fn) -> pd.DataFrame:
    data = {"WindSpeed": wind_speeds}
    for header, rho in DENSITY_HEADERS.items():
        data[header] = power_fn(wind_speeds, rho)
    return pd.DataFrame(data)


# ======================================================================
# Manufacturer sheets
# ======================================================================

@pytest.fixture
def density_headers() -> dict[str, float]:
    return dict(DENSITY_HEADERS)


@pytest.fixture
def power_coeff() -> float:
    return POWER_COEFF


@pytest.fixture
def rated_power() -> float:
    return RATED_POWER_KW


@pytest.fixture
def cubic_sheet() -> pd.DataFrame:
    """Partial-load sheet where P = k * rho * v**3 exactly (3-11 m/s)."""
    ws = np.arange(3.0, 11.01, 0.5)
    return _sheet(ws, lambda v, rho: POWER_COEFF * rho * v**3)


@pytest.fixture
def realistic_sheet() -> pd.DataFrame:
    """Full sheet 3-25 m/s: cubic below rated, flat at 2000 kW above."""
    ws = np.arange(3.0, 25.01, 1.0)
    return _sheet(ws, lambda v, rho: np.minimum(POWER_COEFF * rho * v**3, RATED_POWER_KW))


@pytest.fixture
def cubic_table(cubic_sheet) -> PowerCurveTable:
    return PowerCurveTable.from_wide(cubic_sheet)


@pytest.fixture
def realistic_table(realistic_sheet) -> PowerCurveTable:
    return PowerCurveTable.from_wide(realistic_sheet)


# ======================================================================
# SCADA fixtures
# ======================================================================

@pytest.fixture
def scada_frame() -> pd.DataFrame:
    """Six 10-minute records from one turbine at standard-ish conditions."""
    rng = np.random.default_rng(42)
    n = 6
    return pd.DataFrame(
        {
            "device_id": ["WTG01"] * n,
            "timestamp": pd.date_range("2024-01-01", periods=n, freq="10min", tz="UTC"),
            "wind_speed": [4.0, 5.5, 7.0, 8.0, 9.5, 10.0],
            "wind_speed_std": [0.4, 0.6, 0.7, 0.9, 1.0, 1.1],
            "power": rng.uniform(100.0, 1500.0, n),
            "temperature": [15.0, 14.0, 12.0, 10.0, 8.0, 5.0],
            "pressure": [1013.25, 1012.0, 1011.0, 1010.0, 1009.5, 1009.0],
            "relative_humidity": [60.0, 65.0, 70.0, 75.0, 80.0, 85.0],
        }
    )
