"""Tests for prediction grids and batch evaluation."""
import numpy as np
import pandas as pd
import pytest

from powersurface.wind.power_curve_table import AIR_DENSITY, POWER, WIND_SPEED, PowerCurveTable
from powersurface.wind.prediction import PredictionResult, make_prediction_grid, predict_grid
from powersurface.wind.surface import fit_surface


@pytest.fixture
def cubic_model(cubic_table):
    return fit_surface(cubic_table)


class TestPredictionGrid:
    def test_axes_span_training_range(self, cubic_table):
        grid = make_prediction_grid(cubic_table)
        np.testing.assert_allclose(grid.wind_speeds, np.arange(3.0, 12.0))
        expected = np.append(np.round(0.95 + 0.03 * np.arange(12), 9), 1.225)
        np.testing.assert_allclose(grid.air_densities, np.sort(expected))
        assert grid.shape == (13, 9)

    def test_reference_density_added_outside_range(self):
        ws = np.arange(3.0, 9.0)
        sheet = pd.DataFrame({"WindSpeed": ws, "1.00": 1.4 * ws**3, "1.10": 1.54 * ws**3})
        grid = make_prediction_grid(PowerCurveTable.from_wide(sheet))
        np.testing.assert_allclose(grid.air_densities, [1.0, 1.03, 1.06, 1.09, 1.225])

    def test_reference_density_not_duplicated(self, cubic_table):
        grid = make_prediction_grid(cubic_table, air_density_step=0.005)
        assert np.count_nonzero(np.isclose(grid.air_densities, 1.225)) == 1

    def test_custom_steps(self, cubic_table):
        grid = make_prediction_grid(cubic_table, wind_speed_step=0.5, air_density_step=0.11)
        np.testing.assert_allclose(grid.wind_speeds, np.arange(3.0, 11.01, 0.5))
        np.testing.assert_allclose(grid.air_densities, [0.95, 1.06, 1.17, 1.225, 1.28])

    def test_from_model_matches_table(self, cubic_table, cubic_model):
        from_table = make_prediction_grid(cubic_table)
        from_model = make_prediction_grid(cubic_model)
        np.testing.assert_array_equal(from_table.wind_speeds, from_model.wind_speeds)
        np.testing.assert_array_equal(from_table.air_densities, from_model.air_densities)

    def test_non_positive_step(self, cubic_table):
        with pytest.raises(ValueError, match="step"):
            make_prediction_grid(cubic_table, wind_speed_step=0.0)

    def test_mesh(self, cubic_table):
        grid = make_prediction_grid(cubic_table)
        ws, rho = grid.mesh()
        assert ws.shape == rho.shape == grid.shape
        np.testing.assert_array_equal(ws[0], grid.wind_speeds)
        np.testing.assert_array_equal(rho[:, 0], grid.air_densities)
        assert len(grid.to_frame()) == ws.size


class TestPredictGrid:
    def test_long_frame(self, cubic_table, cubic_model, power_coeff):
        grid = make_prediction_grid(cubic_table)
        frame = predict_grid(cubic_model, grid)
        assert list(frame.columns) == [WIND_SPEED, AIR_DENSITY, POWER]
        assert len(frame) == 13 * 9
        # Density-major order
        np.testing.assert_array_equal(frame[WIND_SPEED].to_numpy()[:9], grid.wind_speeds)
        assert (frame[AIR_DENSITY].to_numpy()[:9] == grid.air_densities[0]).all()

        reference = frame[np.isclose(frame[AIR_DENSITY], 1.225)]
        np.testing.assert_allclose(
            reference[POWER].to_numpy(),
            power_coeff * 1.225 * reference[WIND_SPEED].to_numpy() ** 3,
            rtol=1e-6,
        )

    def test_with_standard_errors(self, cubic_table, cubic_model):
        frame = predict_grid(cubic_model, make_prediction_grid(cubic_table), se=True)
        assert "se" in frame.columns
        assert frame["se"].notna().all()


class TestPredictionResult:
    def test_to_frame(self):
        result = PredictionResult(
            wind_speed=np.array([[5.0, 6.0]]),
            air_density=np.array([[1.1, 1.2]]),
            power=np.array([[100.0, 200.0]]),
        )
        frame = result.to_frame()
        assert list(frame.columns) == [WIND_SPEED, AIR_DENSITY, POWER]
        assert frame[POWER].tolist() == [100.0, 200.0]
