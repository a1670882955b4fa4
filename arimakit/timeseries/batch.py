"""Concurrent fitting of independent ARIMA models."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence, Union

from ..logging import get_logger
from .estimation import FittingStrategy
from .models import ArimaModel, FitConfig, SeriesLike, fit_arima
from .order import ArimaOrder
from .series import TimePeriod

logger = get_logger(__name__)


def fit_arima_batch(
    series: Sequence[SeriesLike],
    order: Union[ArimaOrder, Sequence[ArimaOrder]],
    strategy: Union[FittingStrategy, str] = FittingStrategy.CSSML,
    seasonal_cycle: Optional[TimePeriod] = None,
    config: Optional[FitConfig] = None,
    max_workers: Optional[int] = None,
    continue_on_error: bool = False,
) -> List[Optional[ArimaModel]]:
    """Fit one model per series on a thread pool.

    Args:
        series: Series to fit.
        order: A single order shared by all series, or one order per series.
        strategy: Fitting strategy for every fit.
        seasonal_cycle: Seasonal cycle for every fit.
        config: Numerical settings for every fit.
        max_workers: Thread pool size (executor default if None).
        continue_on_error: Log a failed fit and return None in its place
            instead of raising.

    Returns:
        Fitted models in the order of ``series``.

    Raises:
        ValueError: If the number of orders does not match the number of
            series.
    """
    series = list(series)
    if isinstance(order, ArimaOrder):
        orders = [order] * len(series)
    else:
        orders = list(order)
        if len(orders) != len(series):
            raise ValueError(
                f"Got {len(orders)} orders for {len(series)} series"
            )

    logger.info("Fitting %d ARIMA models", len(series))
    results: List[Optional[ArimaModel]] = [None] * len(series)
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(fit_arima, y, o, strategy, seasonal_cycle, config): i
            for i, (y, o) in enumerate(zip(series, orders))
        }
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                results[index] = future.result()
            except Exception as exc:
                if not continue_on_error:
                    raise
                logger.error("Fit %d failed: %s", index, exc)

    logger.info(
        "Batch complete: %d of %d fits succeeded",
        sum(r is not None for r in results),
        len(series),
    )
    return results


__all__ = ["fit_arima_batch"]
