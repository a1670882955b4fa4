"""Tests for the CSS, USS and ML building blocks and the objective."""

import numpy as np
import pytest

from arimakit.timeseries import (
    POOR_OBJECTIVE,
    ArimaCoefficients,
    ArimaObjective,
    ArimaOrder,
    FittingStrategy,
    ModelInformation,
    ParameterScales,
    arima_state_space,
    fit_css,
    fit_ml,
    fit_uss,
    kalman_filter,
    pack_parameters,
    unpack_parameters,
)
from arimakit.timeseries.estimation import (
    forecast_regression_matrix,
    regression_effects,
    regression_matrix,
)


class TestFittingStrategy:
    """Tests for strategy properties."""

    def test_uses_likelihood(self):
        assert not FittingStrategy.CSS.uses_likelihood
        assert not FittingStrategy.USS.uses_likelihood
        assert FittingStrategy.ML.uses_likelihood
        assert FittingStrategy.CSSML.uses_likelihood
        assert FittingStrategy.USSML.uses_likelihood

    def test_warm_start(self):
        assert FittingStrategy.CSSML.warm_start is FittingStrategy.CSS
        assert FittingStrategy.USSML.warm_start is FittingStrategy.USS
        assert FittingStrategy.ML.warm_start is None


class TestConditionalSumOfSquares:
    """Tests for the CSS recursion."""

    def test_white_noise(self, rng):
        y = rng.standard_normal(40)
        y = y - y.mean()
        info = fit_css(y, [], [], npar=0)
        assert np.allclose(info.residuals, y)
        assert info.sigma2 == pytest.approx(np.var(y))

    def test_ar1_by_hand(self):
        info = fit_css(np.array([1.0, 2.0, 3.0]), [0.5], [], npar=1)
        assert np.allclose(info.fitted, [0.0, 0.5, 1.0])
        assert np.allclose(info.residuals, [0.0, 1.5, 2.0])
        assert info.sigma2 == pytest.approx((1.5**2 + 2.0**2) / 2)

    def test_ma1_by_hand(self):
        info = fit_css(np.ones(3), [], [0.5], npar=1)
        assert np.allclose(info.fitted, [0.0, 0.5, 0.25])
        assert np.allclose(info.residuals, [1.0, 0.5, 0.75])

    def test_log_likelihood_and_aic(self):
        info = fit_css(np.array([1.0, -1.0, 1.0, -1.0]), [], [], npar=2)
        assert info.sigma2 == pytest.approx(1.0)
        expected = -0.5 * 4 * (np.log(2 * np.pi) + 1)
        assert info.log_likelihood == pytest.approx(expected)
        assert info.aic == pytest.approx(2 * 2 - 2 * expected)

    def test_rejects_2d(self):
        with pytest.raises(ValueError, match="1D"):
            fit_css(np.ones((3, 1)), [], [], npar=0)


class TestUnconditionalSumOfSquares:
    """Tests for the back-forecasting USS fit."""

    def test_matches_css_without_ar(self, rng):
        y = rng.standard_normal(30)
        css = fit_css(y, [], [0.3], npar=1)
        uss = fit_uss(y, [], [0.3], npar=1)
        assert np.allclose(css.residuals, uss.residuals)
        assert css.sigma2 == pytest.approx(uss.sigma2)

    def test_ar1_by_hand(self):
        # Backcasts: 0.5 * 1 = 0.5, then 0.5 * 0.5 = 0.25.
        info = fit_uss(np.array([1.0, 2.0]), [0.5], [], npar=1)
        assert np.allclose(info.residuals, [0.75, 1.5])
        assert np.allclose(info.fitted, [0.25, 0.5])
        assert info.sigma2 == pytest.approx((0.375**2 + 0.75**2 + 1.5**2) / 3)

    def test_residuals_cover_every_observation(self, ar1_series):
        info = fit_uss(ar1_series, [0.5, 0.1], [0.2], npar=3)
        assert info.residuals.size == ar1_series.size
        assert info.fitted.size == ar1_series.size
        assert np.allclose(info.fitted + info.residuals, ar1_series)


class TestMaximumLikelihood:
    """Tests for the exact likelihood fit."""

    def test_agrees_with_kalman_filter(self, ar1_series):
        info = fit_ml(ar1_series, [0.5], [], [], npar=1)
        out = kalman_filter(arima_state_space([0.5], []), ar1_series)
        assert info.npar == 2
        assert info.sigma2 == pytest.approx(out.sigma2)
        assert info.log_likelihood == pytest.approx(out.log_likelihood)
        assert np.allclose(info.fitted, ar1_series - out.residuals)


class TestRegression:
    """Tests for the mean and drift design matrices."""

    def test_regression_matrix(self):
        order = ArimaOrder.create(constant=True, drift=True)
        assert np.allclose(regression_matrix(3, order), [[1, 1], [1, 2], [1, 3]])
        assert np.allclose(forecast_regression_matrix(3, 2, order), [[1, 4], [1, 5]])

    def test_no_regressors(self):
        assert regression_matrix(4, ArimaOrder.create(constant=False)).shape == (4, 0)

    def test_regression_effects(self):
        order = ArimaOrder.create(0, 1, 0, drift=True)
        coeffs = ArimaCoefficients.create(d=1, drift=0.5)
        assert np.allclose(regression_effects(coeffs, order, 3), [0.5, 1.0, 1.5])


class TestParameterPacking:
    """Tests for the optimizer parameter vector."""

    def test_round_trip_with_scales(self):
        order = ArimaOrder.create(1, 0, 1, 1, 0, 0, constant=True, drift=True)
        coeffs = ArimaCoefficients.create(
            ar=[0.4], ma=[-0.2], sar=[0.3], seasonal_frequency=4, mean=3.0, drift=0.2
        )
        scales = ParameterScales(mean=2.0, drift=4.0)
        packed = pack_parameters(coeffs, order, scales)
        assert np.allclose(packed, [0.4, -0.2, 0.3, 1.5, 0.05])
        restored = unpack_parameters(packed, order, 4, scales)
        assert np.allclose(restored.arma_coefficients(), coeffs.arma_coefficients())
        assert restored.mean == pytest.approx(3.0)
        assert restored.drift == pytest.approx(0.2)
        assert restored.seasonal_frequency == 4

    def test_unpack_wrong_shape(self):
        order = ArimaOrder.create(1, 0, 0)
        with pytest.raises(ValueError, match="params must have shape"):
            unpack_parameters(np.zeros(3), order, 1, ParameterScales())

    def test_scales_from_standard_errors(self):
        order = ArimaOrder.create(constant=True, drift=True)
        scales = ParameterScales.from_standard_errors(order, [0.1, 0.01])
        assert scales.mean == pytest.approx(1.0)
        assert scales.drift == pytest.approx(0.1)

    def test_scales_fall_back_to_one(self):
        order = ArimaOrder.create(constant=True, drift=True)
        scales = ParameterScales.from_standard_errors(order, [np.nan, 0.0])
        assert scales.mean == 1.0
        assert scales.drift == 1.0

    def test_scales_for_drift_only(self):
        order = ArimaOrder.create(0, 1, 0, drift=True)
        scales = ParameterScales.from_standard_errors(order, [0.3])
        assert scales.mean == 1.0
        assert scales.drift == pytest.approx(3.0)
        assert np.allclose(scales.for_order(order), [3.0])


class TestArimaObjective:
    """Tests for the scalar objective."""

    def test_css_objective_at_zero(self, ar1_series):
        order = ArimaOrder.create(1, 0, 0, constant=False)
        objective = ArimaObjective(
            ar1_series, order, FittingStrategy.CSS, 1, ParameterScales()
        )
        expected = 0.5 * np.log(np.sum(ar1_series[1:] ** 2) / (ar1_series.size - 1))
        assert objective(np.array([0.0])) == pytest.approx(expected)
        assert objective.evaluations == 1

    def test_css_objective_prefers_true_coefficient(self, ar1_series):
        order = ArimaOrder.create(1, 0, 0, constant=False)
        objective = ArimaObjective(
            ar1_series, order, FittingStrategy.CSS, 1, ParameterScales()
        )
        assert objective(np.array([0.5])) < objective(np.array([0.0]))

    def test_ml_objective_matches_kalman(self, ar1_series):
        order = ArimaOrder.create(1, 0, 0, constant=False)
        objective = ArimaObjective(
            ar1_series, order, FittingStrategy.CSSML, 1, ParameterScales()
        )
        out = kalman_filter(arima_state_space([0.5], []), ar1_series)
        expected = 0.5 * (np.log(out.sigma2) + out.sumlog / out.n)
        assert objective(np.array([0.5])) == pytest.approx(expected)

    def test_non_finite_parameters_are_poor(self, ar1_series):
        order = ArimaOrder.create(1, 0, 0)
        objective = ArimaObjective(
            ar1_series, order, FittingStrategy.ML, 1, ParameterScales()
        )
        assert objective(np.array([np.nan, 0.0])) == POOR_OBJECTIVE
        assert objective(np.array([0.5, np.inf])) == POOR_OBJECTIVE
        assert objective.evaluations == 2

    def test_degenerate_variance_is_poor(self):
        order = ArimaOrder.create(constant=False)
        objective = ArimaObjective(
            np.zeros(10), order, FittingStrategy.CSS, 1, ParameterScales()
        )
        assert objective(np.zeros(0)) == POOR_OBJECTIVE


def test_model_information_aic():
    info = ModelInformation(
        npar=3, sigma2=1.0, log_likelihood=-10.0, residuals=np.zeros(2), fitted=np.zeros(2)
    )
    assert info.aic == pytest.approx(26.0)
