"""Tests for logging utilities."""

import logging
from io import StringIO

import numpy as np

from arimakit.logging import configure_logging, get_logger, set_log_level
from arimakit.timeseries import ArimaOrder, fit_arima_batch


def test_get_logger_returns_namespaced_logger():
    """Test that get_logger places loggers under the arimakit namespace."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "arimakit.test_module"


def test_get_logger_keeps_package_names():
    """Test that module names already in the namespace are not prefixed twice."""
    assert get_logger("arimakit.timeseries.models").name == "arimakit.timeseries.models"
    assert get_logger().name == "arimakit"


def test_get_logger_caching():
    """Test that get_logger caches loggers."""
    assert get_logger("test_module") is get_logger("test_module")


def test_logger_does_not_propagate():
    """Test that loggers don't propagate to the root logger."""
    assert get_logger("test_module").propagate is False


def test_set_log_level():
    """Test that set_log_level updates logger and handler levels."""
    logger = get_logger("test_module")
    try:
        set_log_level(logging.INFO)
        assert logger.level == logging.INFO
        assert all(h.level == logging.INFO for h in logger.handlers)
    finally:
        set_log_level(logging.WARNING)


def test_set_log_level_string():
    """Test that set_log_level accepts level names."""
    logger = get_logger("test_module")
    try:
        set_log_level("debug")
        assert logger.level == logging.DEBUG
        set_log_level("ERROR")
        assert logger.level == logging.ERROR
    finally:
        set_log_level(logging.WARNING)


def test_configure_logging_routes_messages():
    """Test that configure_logging redirects output to the given stream."""
    stream = StringIO()
    try:
        configure_logging(level=logging.DEBUG, stream=stream, format_string="%(message)s")
        get_logger("test_module").debug("Debug message")
        assert "Debug message" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_fit_progress_is_logged_at_info():
    """Test that model fitting reports progress through the package loggers."""
    stream = StringIO()
    try:
        configure_logging(level=logging.INFO, stream=stream)
        fit_arima_batch([np.array([1.0, 2.0, 1.5, 2.5, 2.0])], ArimaOrder.create())
        output = stream.getvalue()
        assert "Fitting 1 ARIMA models" in output
        assert "[INFO] arimakit.timeseries" in output
    finally:
        configure_logging(level=logging.WARNING)
