"""ARIMA model order.

The order fixes the model structure (p, d, q)(P, D, Q) together with the
regression terms: a constant (the process mean) and a linear drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Integral
from typing import Optional

from ..logging import get_logger

logger = get_logger(__name__)


class ArimaConfigurationError(ValueError):
    """Raised when a model order or coefficient set is self-contradictory."""


@dataclass(frozen=True)
class ArimaOrder:
    """Seasonal ARIMA order with constant and drift flags.

    Prefer :meth:`ArimaOrder.create`, which fills in the conventional
    default for the constant. Direct construction validates but does not
    apply defaults.

    Attributes:
        p: Non-seasonal AR order.
        d: Non-seasonal differencing degree.
        q: Non-seasonal MA order.
        P: Seasonal AR order.
        D: Seasonal differencing degree.
        Q: Seasonal MA order.
        constant: Whether a mean is estimated. Only allowed when d + D == 0.
        drift: Whether a linear drift is estimated. Only allowed when
            d + D <= 1.

    Example:
        >>> order = ArimaOrder.create(1, 0, 1)
        >>> order.constant, order.npar
        (True, 3)
        >>> ArimaOrder.create(0, 1, 1, drift=True).num_regressors
        1
    """

    p: int = 0
    d: int = 0
    q: int = 0
    P: int = 0
    D: int = 0
    Q: int = 0
    constant: bool = False
    drift: bool = False

    def __post_init__(self) -> None:
        """Validate ArimaOrder invariants."""
        for name in ("p", "d", "q", "P", "D", "Q"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, Integral):
                raise ArimaConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ArimaConfigurationError(f"{name} must be >= 0, got {value}")
        differencing = self.d + self.D
        if self.constant and differencing > 0:
            raise ArimaConfigurationError(
                "A constant cannot be fit when the degree of differencing "
                f"d + D = {differencing} is greater than 0"
            )
        if self.drift and differencing > 1:
            raise ArimaConfigurationError(
                "A drift term cannot be fit when the degree of differencing "
                f"d + D = {differencing} is greater than 1"
            )

    @classmethod
    def create(
        cls,
        p: int = 0,
        d: int = 0,
        q: int = 0,
        P: int = 0,
        D: int = 0,
        Q: int = 0,
        constant: Optional[bool] = None,
        drift: bool = False,
    ) -> ArimaOrder:
        """Build an order, defaulting the constant from the differencing degree.

        When ``constant`` is None it is included exactly when d + D == 0.

        Raises:
            ArimaConfigurationError: If any component is negative or the
                regression flags contradict the differencing degree.
        """
        if constant is None:
            constant = (d + D) == 0
            if constant:
                logger.debug(
                    "A constant will be fit since the degree of differencing is 0."
                )
            else:
                logger.debug(
                    "No constant will be fit since the degree of differencing is %d.",
                    d + D,
                )
        return cls(p, d, q, P, D, Q, bool(constant), bool(drift))

    @property
    def sum_arma(self) -> int:
        return self.p + self.q + self.P + self.Q

    @property
    def num_regressors(self) -> int:
        return int(self.constant) + int(self.drift)

    @property
    def npar(self) -> int:
        return self.sum_arma + self.num_regressors

    @property
    def is_seasonal(self) -> bool:
        return self.P > 0 or self.D > 0 or self.Q > 0

    def __str__(self) -> str:
        text = f"ARIMA({self.p}, {self.d}, {self.q})"
        if self.is_seasonal:
            text = f"Seasonal {text}({self.P}, {self.D}, {self.Q})"
        text += " with a constant" if self.constant else " with no constant"
        if self.drift:
            text += " and a drift term"
        return text


__all__ = ["ArimaConfigurationError", "ArimaOrder"]
