"""Tests for fitting ARIMA models."""

from __future__ import annotations

import dataclasses
import warnings

import numpy as np
import pytest

from arimakit.optimize import bfgs
from arimakit.timeseries import (
    ArimaCoefficients,
    ArimaConfigurationError,
    ArimaOrder,
    FitConfig,
    FittingStrategy,
    TimePeriod,
    TimeSeries,
    arima_from_coefficients,
    arima_state_space,
    fit_arima,
    kalman_filter,
    simulate_arima,
)


class TestFitArima:
    """Tests for coefficient estimation."""

    def test_ar1_cssml(self, ar1_series):
        """Test AR(1) with a constant fitted by CSS then ML."""
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0))

        assert model.strategy is FittingStrategy.CSSML
        assert abs(model.coefficients.ar[0] - 0.5) < 0.15
        assert abs(model.coefficients.mean) < 0.45
        assert 0.7 < model.sigma2 < 1.3
        assert model.npar == 3
        assert model.aic == pytest.approx(2 * 3 - 2 * model.log_likelihood)
        assert model.optimizer_result is not None

    def test_ar1_outputs_are_aligned(self, ar1_series):
        """Test that residuals and fitted values cover every observation."""
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0))

        assert model.residuals.size == ar1_series.size
        assert np.allclose(model.fitted + model.residuals, ar1_series)
        assert model.std_errors.shape == (2,)
        assert np.all(np.isfinite(model.std_errors))
        assert np.all(model.std_errors > 0)

    @pytest.mark.parametrize("strategy", ["css", "cssml"])
    def test_ar1_standard_error_matches_asymptotic_value(self, ar1_series, strategy):
        """Test the AR standard error against sqrt((1 - phi^2) / n)."""
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy=strategy)
        phi = model.coefficients.ar[0]
        expected = np.sqrt((1 - phi**2) / ar1_series.size)

        assert model.std_errors[0] == pytest.approx(expected, rel=0.3)
        assert not np.allclose(np.diag(model.optimizer_result.inv_hessian), 1.0)

    def test_cssml_seeds_ml_stage_from_css_fit(self, ar1_series, monkeypatch):
        """Test that the ML stage starts from the CSS curvature, not the identity."""
        seeds = []

        def recording_bfgs(*args, **kwargs):
            seeds.append(kwargs.get("inv_hessian0"))
            return bfgs(*args, **kwargs)

        monkeypatch.setattr("arimakit.timeseries.models.bfgs", recording_bfgs)
        fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="cssml")

        assert len(seeds) == 2
        assert seeds[0] is None
        assert seeds[1].shape == (2, 2)
        assert not np.allclose(seeds[1], np.eye(2))
        assert np.all(np.diag(seeds[1]) > 0)

    @pytest.mark.parametrize("strategy", ["css", "ml"])
    def test_information_is_on_observation_scale(self, strategy):
        """Test that the fit summary shares the model's residuals and fitted values."""
        truth = ArimaCoefficients.create(ar=[0.3], d=1)
        y = simulate_arima(truth, 150, seed=8)
        model = fit_arima(y, ArimaOrder.create(1, 1, 0), strategy=strategy)
        info = model.information

        assert info.residuals.size == 150
        assert np.allclose(info.residuals, model.residuals)
        assert np.allclose(info.fitted, model.fitted)
        assert np.allclose(info.fitted + info.residuals, y.values)
        assert info.aic == pytest.approx(2 * info.npar - 2 * info.log_likelihood)

    def test_ar1_css(self, ar1_series):
        """Test AR(1) by conditional sum of squares."""
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="css")

        assert model.strategy is FittingStrategy.CSS
        assert abs(model.coefficients.ar[0] - 0.5) < 0.15
        # The first AR lag has no history, so its residual is zero.
        assert model.residuals[0] == 0.0
        assert model.npar == 2

    def test_ar1_uss(self, ar1_series):
        """Test AR(1) by unconditional sum of squares."""
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="USS")

        assert model.strategy is FittingStrategy.USS
        assert abs(model.coefficients.ar[0] - 0.5) < 0.15

    def test_ml_and_cssml_agree(self, ar1_series):
        """Test that ML with and without a warm start reach the same optimum."""
        order = ArimaOrder.create(1, 0, 0)
        ml = fit_arima(ar1_series, order, strategy=FittingStrategy.ML)
        cssml = fit_arima(ar1_series, order, strategy=FittingStrategy.CSSML)

        assert abs(ml.coefficients.ar[0] - cssml.coefficients.ar[0]) < 0.05
        assert ml.log_likelihood == pytest.approx(cssml.log_likelihood, abs=0.1)

    def test_cssml_not_worse_than_css_start(self, ar1_series):
        """Test that the ML stage never lowers the likelihood of its start."""
        order = ArimaOrder.create(1, 0, 0)
        css = fit_arima(ar1_series, order, strategy="css")
        cssml = fit_arima(ar1_series, order, strategy="cssml")
        at_css = arima_from_coefficients(ar1_series, css.coefficients, strategy="ml")

        assert cssml.log_likelihood >= at_css.log_likelihood - 1e-6

    def test_ussml_not_worse_than_uss_start(self, ar1_series):
        """Test the USS warm start in the same way."""
        order = ArimaOrder.create(1, 0, 0)
        uss = fit_arima(ar1_series, order, strategy="uss")
        ussml = fit_arima(ar1_series, order, strategy="ussml")
        at_uss = arima_from_coefficients(ar1_series, uss.coefficients, strategy="ml")

        assert ussml.log_likelihood >= at_uss.log_likelihood - 1e-6

    def test_integrated_ma1_ml(self):
        """Test ARIMA(0, 1, 1) by exact maximum likelihood."""
        truth = ArimaCoefficients.create(ma=[0.4], d=1)
        y = simulate_arima(truth, 300, seed=3)
        model = fit_arima(y, ArimaOrder.create(0, 1, 1), strategy="ml")

        assert not model.order.constant
        assert abs(model.coefficients.ma[0] - 0.4) < 0.2
        assert model.residuals.size == 300
        assert model.differenced.size == 299
        assert 0.7 < model.sigma2 < 1.3

    def test_integrated_css_residuals_are_padded(self):
        """Test that CSS residuals start with one zero per differencing lag."""
        truth = ArimaCoefficients.create(ma=[0.4], d=1)
        y = simulate_arima(truth, 120, seed=5)
        model = fit_arima(y, ArimaOrder.create(0, 1, 1), strategy="css")

        assert model.residuals.size == 120
        assert model.residuals[0] == 0.0
        assert model.fitted[0] == y.at(0)

    def test_seasonal_ar(self):
        """Test a quarterly seasonal AR(1)."""
        truth = ArimaCoefficients.create(sar=[0.6], seasonal_frequency=4)
        y = simulate_arima(truth, 300, seed=11, period=TimePeriod.one_quarter())
        order = ArimaOrder.create(0, 0, 0, 1, 0, 0, constant=False)
        model = fit_arima(y, order, strategy="cssml")

        assert model.seasonal_frequency == 4
        assert model.coefficients.seasonal_frequency == 4
        assert abs(model.coefficients.sar[0] - 0.6) < 0.2
        assert model.coefficients.expanded_ar.size == 4

    def test_seasonal_cycle_sets_frequency(self):
        """Test that the seasonal cycle and the series period set s."""
        y = TimeSeries(np.sin(np.arange(30.0)), TimePeriod.one_day())
        order = ArimaOrder.create(0, 0, 0, 0, 1, 0)
        model = fit_arima(y, order, strategy="css", seasonal_cycle=TimePeriod.one_week())

        assert model.seasonal_frequency == 7
        assert model.differenced.size == 23
        assert model.residuals.size == 30

    def test_drift_without_arma_terms(self, rng):
        """Test ARIMA(0, 1, 0) with drift, estimated by regression alone."""
        t = np.arange(1.0, 101.0)
        y = 0.5 * t + rng.normal(scale=0.1, size=100)
        model = fit_arima(y, ArimaOrder.create(0, 1, 0, drift=True))

        assert model.coefficients.drift == pytest.approx(0.5, abs=0.05)
        assert model.optimizer_result is None
        assert model.std_errors.shape == (1,)

    def test_constant_series(self):
        """Test that a constant series yields its level and zero variance."""
        model = fit_arima(np.full(20, 5.0), ArimaOrder.create())

        assert model.coefficients.mean == pytest.approx(5.0)
        assert model.sigma2 < 1e-20
        assert np.allclose(model.fitted, 5.0)
        assert np.allclose(model.residuals, 0.0, atol=1e-10)
        assert np.allclose(model.forecast(3).point, 5.0)

    def test_iteration_budget_zero_keeps_start(self, ar1_series):
        """Test that an exhausted iteration budget is accepted."""
        config = FitConfig(max_iterations=0)
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="css", config=config)

        assert model.coefficients.ar[0] == 0.0
        assert model.coefficients.mean == pytest.approx(np.mean(ar1_series))
        assert not model.optimizer_result.success
        assert model.optimizer_result.nit == 0

    def test_model_is_immutable(self, ar1_series):
        """Test that models and their arrays cannot be modified."""
        model = fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="css")

        with pytest.raises(dataclasses.FrozenInstanceError):
            model.order = ArimaOrder.create()
        with pytest.raises(ValueError):
            model.residuals[0] = 1.0

    def test_str(self, ar1_series):
        """Test the model summary."""
        text = str(fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="css"))

        assert "ARIMA(1, 0, 0) with a constant" in text
        assert "strategy: CSS" in text
        assert "mean:" in text
        assert "AIC:" in text


class TestFitArimaValidation:
    """Tests for rejected inputs."""

    def test_unknown_strategy(self, ar1_series):
        with pytest.raises(ArimaConfigurationError, match="strategy must be one of"):
            fit_arima(ar1_series, ArimaOrder.create(1, 0, 0), strategy="mle")

    def test_order_must_be_arima_order(self, ar1_series):
        with pytest.raises(ArimaConfigurationError, match="order must be an ArimaOrder"):
            fit_arima(ar1_series, (1, 0, 0))

    def test_series_too_short(self):
        with pytest.raises(ArimaConfigurationError, match="too short"):
            fit_arima([1.0], ArimaOrder.create(0, 1, 0))

    def test_seasonal_series_too_short(self):
        y = TimeSeries(np.ones(4), TimePeriod.one_quarter())
        with pytest.raises(ArimaConfigurationError, match="too short"):
            fit_arima(y, ArimaOrder.create(0, 0, 0, 0, 1, 0))

    def test_non_finite_observations(self):
        with pytest.raises(ValueError, match="finite"):
            fit_arima([1.0, np.nan, 2.0], ArimaOrder.create())

    def test_fit_config_validation(self):
        with pytest.raises(ValueError, match="max_iterations"):
            FitConfig(max_iterations=-1)
        with pytest.raises(ValueError, match="tolerance must be positive"):
            FitConfig(tolerance=0.0)


class TestArimaFromCoefficients:
    """Tests for models with supplied coefficients."""

    def test_white_noise_css(self, rng):
        y = rng.standard_normal(60)
        y = y - y.mean()
        model = arima_from_coefficients(y, ArimaCoefficients.create(), strategy="css")

        assert model.sigma2 == pytest.approx(np.var(y))
        assert np.allclose(model.residuals, y)
        assert model.std_errors.size == 0
        assert model.optimizer_result is None

    def test_ml_matches_kalman_filter(self, ar1_series):
        model = arima_from_coefficients(
            ar1_series, ArimaCoefficients.create(ar=[0.5]), strategy="ml"
        )
        out = kalman_filter(arima_state_space([0.5], []), ar1_series)

        assert model.npar == 2
        assert model.log_likelihood == pytest.approx(out.log_likelihood)
        assert np.allclose(model.residuals, out.residuals)
        assert np.allclose(model.std_errors, 0.0)

    def test_takes_seasonal_frequency_from_series(self):
        y = TimeSeries(np.arange(12.0), TimePeriod.one_quarter())
        model = arima_from_coefficients(y, ArimaCoefficients.create(ar=[0.5]), strategy="css")

        assert model.seasonal_frequency == 4
        assert model.coefficients.seasonal_frequency == 4

    def test_seasonal_frequency_mismatch(self, ar1_series):
        coeffs = ArimaCoefficients.create(sar=[0.5], seasonal_frequency=12)
        with pytest.raises(ArimaConfigurationError, match="seasonal frequency"):
            arima_from_coefficients(ar1_series, coeffs)

    def test_rejects_other_types(self, ar1_series):
        with pytest.raises(ArimaConfigurationError, match="ArimaCoefficients"):
            arima_from_coefficients(ar1_series, [0.5])

    def test_explosive_coefficients_ml(self):
        """Test that explosive AR coefficients give finite residuals and no warnings."""
        y = np.array([2.0, 3.1, 1.4, 2.6, 2.2])
        coeffs = ArimaCoefficients.create(ar=[1.2], mean=2.0)
        with warnings.catch_warnings():
            warnings.simplefilter("error", RuntimeWarning)
            model = arima_from_coefficients(y, coeffs, strategy="ml")

        assert np.all(np.isfinite(model.residuals))
        assert np.allclose(model.fitted + model.residuals, y)
        # No innovation has a positive variance, so the likelihood is undefined.
        assert np.isnan(model.log_likelihood)
