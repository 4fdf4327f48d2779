"""Tests for atmosphere modules: air_density, humidity."""
import numpy as np
import pytest

from powersurface.atmosphere.air_density import (
    DensityMethod,
    Diagnostic,
    air_density,
    dry_air_density,
    saturation_vapour_pressure,
)
from powersurface.atmosphere.humidity import relative_humidity_from_dew_point
from powersurface.core.errors import InvalidInput


class TestDryAirDensity:
    def test_standard_atmosphere(self):
        rho = air_density(15.0, 1013.25).scalar()
        assert rho == pytest.approx(1.225, rel=0.005)

    def test_decreasing_in_temperature(self):
        temps = np.linspace(-30.0, 40.0, 71)
        rho = dry_air_density(temps, 1000.0)
        assert np.all(rho > 0)
        assert np.all(np.diff(rho) < 0)

    def test_matches_ideal_gas_law(self):
        rho = dry_air_density(np.array([0.0, 20.0]), np.array([1000.0, 950.0]))
        expected = np.array([100000.0 / (287.058 * 273.15), 95000.0 / (287.058 * 293.15)])
        np.testing.assert_allclose(rho, expected)

    def test_no_humidity_reports_dry_path(self):
        result = air_density(np.array([10.0, 20.0]), np.array([1000.0, 1000.0]))
        assert result.method is DensityMethod.DRY
        assert result.used_dry_fallback
        assert result.diagnostics == (Diagnostic.DRY_AIR_FALLBACK,)
        assert not result.moist.any()


class TestMoistAirDensity:
    def test_humid_air_is_lighter(self):
        dry = air_density(15.0, 1013.25).scalar()
        moist = air_density(15.0, 1013.25, relative_humidity=50.0)
        assert moist.method is DensityMethod.MOIST
        assert moist.diagnostics == ()
        assert moist.scalar() < dry
        assert moist.scalar() == pytest.approx(1.2211, abs=5e-4)

    def test_zero_humidity_equals_dry(self):
        temps = np.array([-5.0, 10.0, 25.0])
        pressure = np.array([1020.0, 1000.0, 980.0])
        moist = air_density(temps, pressure, relative_humidity=np.zeros(3))
        np.testing.assert_allclose(moist.density, dry_air_density(temps, pressure))
        assert Diagnostic.HUMIDITY_LOOKS_FRACTIONAL not in moist.diagnostics

    def test_missing_humidity_falls_back_per_record(self):
        result = air_density(
            np.array([15.0, 15.0]),
            np.array([1013.25, 1013.25]),
            relative_humidity=np.array([80.0, np.nan]),
        )
        assert result.method is DensityMethod.MIXED
        assert Diagnostic.DRY_AIR_FALLBACK in result.diagnostics
        np.testing.assert_array_equal(result.moist, [True, False])
        assert result.density[1] == pytest.approx(float(dry_air_density(15.0, 1013.25)))
        assert result.density[0] < result.density[1]

    def test_fractional_humidity_flagged(self):
        result = air_density(np.array([15.0, 16.0]), np.array([1013.0, 1013.0]), np.array([0.5, 0.6]))
        assert Diagnostic.HUMIDITY_LOOKS_FRACTIONAL in result.diagnostics

    def test_negative_partial_pressure_clamped(self):
        # Saturated 40 degC air at 50 hPa: vapour pressure > station pressure
        result = air_density(40.0, 50.0, relative_humidity=100.0)
        assert Diagnostic.NEGATIVE_PARTIAL_PRESSURE_CLAMPED in result.diagnostics
        assert bool(result.clamped)
        assert result.scalar() >= 0.0

    def test_saturation_vapour_pressure_at_zero(self):
        assert float(saturation_vapour_pressure(0.0)) == pytest.approx(6.1078)


class TestAirDensityValidation:
    def test_missing_temperature(self):
        with pytest.raises(InvalidInput, match="temperature"):
            air_density(np.array([15.0, np.nan]), np.array([1000.0, 1000.0]))

    def test_missing_pressure(self):
        with pytest.raises(InvalidInput, match="pressure"):
            air_density(15.0, None)

    def test_infinite_pressure(self):
        with pytest.raises(InvalidInput, match="pressure"):
            air_density(15.0, np.inf)

    def test_below_absolute_zero(self):
        with pytest.raises(InvalidInput, match="absolute zero"):
            air_density(-300.0, 1000.0)

    def test_negative_humidity(self):
        with pytest.raises(InvalidInput, match="relative_humidity"):
            air_density(15.0, 1000.0, relative_humidity=-5.0)

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            air_density(np.nan, 1000.0)


class TestDewPointHumidity:
    def test_saturation(self):
        assert relative_humidity_from_dew_point(12.0, 12.0) == pytest.approx(100.0)

    def test_dew_point_below_temperature(self):
        rh = relative_humidity_from_dew_point(20.0, 10.0)
        assert 50.0 < rh < 55.0

    def test_vectorised(self):
        rh = relative_humidity_from_dew_point(np.array([10.0, 20.0, 30.0]), np.array([10.0, 10.0, 10.0]))
        assert rh.shape == (3,)
        assert np.all(np.diff(rh) < 0)

    def test_not_clamped_above_saturation(self):
        assert relative_humidity_from_dew_point(10.0, 15.0) > 100.0
