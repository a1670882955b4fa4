"""arimakit - seasonal ARIMA estimation and forecasting on numpy and scipy."""

__version__ = "0.1.0"

from .logging import configure_logging, get_logger, set_log_level
from .optimize import OptimizeResult, Problem, bfgs
from .timeseries import (
    ArimaCoefficients,
    ArimaConfigurationError,
    ArimaForecast,
    ArimaModel,
    ArimaOrder,
    FitConfig,
    FittingStrategy,
    TimePeriod,
    TimeSeries,
    arima_from_coefficients,
    fit_arima,
    fit_arima_batch,
    simulate_arima,
)

__all__ = [
    "__version__",
    # Models
    "ArimaModel",
    "ArimaOrder",
    "ArimaCoefficients",
    "ArimaConfigurationError",
    "ArimaForecast",
    "FitConfig",
    "FittingStrategy",
    "fit_arima",
    "arima_from_coefficients",
    "fit_arima_batch",
    "simulate_arima",
    # Series
    "TimePeriod",
    "TimeSeries",
    # Optimization
    "OptimizeResult",
    "Problem",
    "bfgs",
    # Logging
    "configure_logging",
    "get_logger",
    "set_log_level",
]
