"""Immutable time series and observation periods.

A :class:`TimeSeries` is a read-only 1D array of finite observations taken
at a fixed :class:`TimePeriod`. Every transform returns a new series.

Example:
    >>> import numpy as np
    >>> from arimakit.timeseries.series import TimePeriod, TimeSeries
    >>> y = TimeSeries(np.array([1.0, 3.0, 6.0, 10.0]), TimePeriod.one_month())
    >>> y.difference()
    array([2., 3., 4.])
    >>> TimePeriod.one_month().frequency_per(TimePeriod.one_year())
    12.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import numpy as np

from .utils import difference

_SECONDS_PER_DAY = 86400.0
_SECONDS_PER_YEAR = 365.2425 * _SECONDS_PER_DAY


class TimeUnit(Enum):
    """Calendar units with their average length in seconds."""

    SECOND = 1.0
    MINUTE = 60.0
    HOUR = 3600.0
    DAY = _SECONDS_PER_DAY
    WEEK = 7 * _SECONDS_PER_DAY
    MONTH = _SECONDS_PER_YEAR / 12
    QUARTER = _SECONDS_PER_YEAR / 4
    YEAR = _SECONDS_PER_YEAR
    DECADE = 10 * _SECONDS_PER_YEAR

    @property
    def seconds(self) -> float:
        return float(self.value)


@dataclass(frozen=True)
class TimePeriod:
    """A span of time such as one month or two weeks.

    Attributes:
        unit: Calendar unit of the period.
        length: Number of units in the period. Must be >= 1.
    """

    unit: TimeUnit = TimeUnit.YEAR
    length: int = 1

    def __post_init__(self) -> None:
        """Validate TimePeriod invariants."""
        if not isinstance(self.unit, TimeUnit):
            raise ValueError(f"unit must be a TimeUnit, got {self.unit!r}")
        if self.length < 1:
            raise ValueError(f"length must be >= 1, got {self.length}")

    @property
    def total_seconds(self) -> float:
        return self.unit.seconds * self.length

    def frequency_per(self, cycle: TimePeriod) -> float:
        """Number of periods of this length in ``cycle``."""
        return cycle.total_seconds / self.total_seconds

    def seasonal_frequency(self, cycle: TimePeriod) -> int:
        """Integer number of observations per seasonal cycle (at least 1)."""
        return max(1, int(round(self.frequency_per(cycle))))

    @classmethod
    def one_year(cls) -> TimePeriod:
        return cls(TimeUnit.YEAR, 1)

    @classmethod
    def one_quarter(cls) -> TimePeriod:
        return cls(TimeUnit.QUARTER, 1)

    @classmethod
    def one_month(cls) -> TimePeriod:
        return cls(TimeUnit.MONTH, 1)

    @classmethod
    def one_week(cls) -> TimePeriod:
        return cls(TimeUnit.WEEK, 1)

    @classmethod
    def one_day(cls) -> TimePeriod:
        return cls(TimeUnit.DAY, 1)

    @classmethod
    def one_hour(cls) -> TimePeriod:
        return cls(TimeUnit.HOUR, 1)


@dataclass(frozen=True)
class TimeSeries:
    """Ordered, immutable sequence of real observations.

    Attributes:
        values: Observations, shape (n,), n >= 1. Stored as a read-only copy.
        period: Time between consecutive observations.
    """

    values: np.ndarray
    period: TimePeriod = field(default_factory=TimePeriod.one_year)

    def __post_init__(self) -> None:
        """Validate and freeze the observations."""
        values = np.array(self.values, dtype=float)
        if values.ndim != 1:
            raise ValueError(f"values must be 1D array, got shape {values.shape}")
        if values.size < 1:
            raise ValueError("A time series needs at least one observation")
        if not np.all(np.isfinite(values)):
            raise ValueError("Observations must all be finite")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return int(self.values.size)

    def at(self, index: int) -> float:
        """Observation at position ``index`` (negative indices count from the end)."""
        n = len(self)
        if not -n <= index < n:
            raise IndexError(f"index {index} out of range for series of length {n}")
        return float(self.values[index])

    def mean(self) -> float:
        return float(np.mean(self.values))

    def variance(self) -> float:
        """Sample variance with divisor n - 1 (0.0 for a single observation)."""
        if len(self) < 2:
            return 0.0
        return float(np.var(self.values, ddof=1))

    def std(self) -> float:
        return float(np.sqrt(self.variance()))

    def difference(self, lag: int = 1, times: int = 1) -> np.ndarray:
        """Difference at ``lag``, ``times`` times.

        Returns a plain array because the result may be empty; wrap it in a
        new series when it is not.
        """
        return difference(self.values, lag=lag, times=times)

    def minus(self, other: Union[TimeSeries, np.ndarray, float]) -> TimeSeries:
        """Element-wise subtraction of a series, array or scalar."""
        if isinstance(other, TimeSeries):
            other = other.values
        other = np.asarray(other, dtype=float)
        if other.ndim == 1 and other.size != len(self):
            raise ValueError(
                f"Cannot subtract series of length {other.size} from series "
                f"of length {len(self)}"
            )
        return TimeSeries(self.values - other, self.period)

    def slice(self, start: int, stop: int) -> TimeSeries:
        """Observations ``start`` (inclusive) to ``stop`` (exclusive)."""
        n = len(self)
        if not (0 <= start < stop <= n):
            raise IndexError(
                f"slice [{start}, {stop}) out of range for series of length {n}"
            )
        return TimeSeries(self.values[start:stop], self.period)


def as_series(data: Union[TimeSeries, np.ndarray, list], period: TimePeriod | None = None) -> TimeSeries:
    """Wrap array-like data in a :class:`TimeSeries` (no-op for a series)."""
    if isinstance(data, TimeSeries):
        return data
    return TimeSeries(np.asarray(data, dtype=float), period or TimePeriod.one_year())


__all__ = ["TimePeriod", "TimeSeries", "TimeUnit", "as_series"]
