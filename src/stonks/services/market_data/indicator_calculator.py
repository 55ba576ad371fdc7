"""stonks.services.market_data.indicator_calculator

Fetch daily closes for a symbol and compute its indicator snapshot.

This is the only place that combines the provider with the indicator math, so
the on-demand report and the scheduled crossover check share one code path
parameterized by symbol.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from stonks.config import HISTORY_LOOKBACK_DAYS, MIN_HISTORY_POINTS
from stonks.errors import DataUnavailable
from stonks.services.market_data.indicators import (
    IndicatorSnapshot, PriceSeries, compute_indicators
)
from stonks.services.market_data.providers import PriceProviderBase, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetData:
    """Indicator snapshot for a single symbol."""

    symbol: str
    name: str
    snapshot: IndicatorSnapshot
    last_date: Optional[date] = None
    data_timestamp: Optional[datetime] = None


class IndicatorCalculator:
    """Compute indicator snapshots from provider daily closes."""

    def __init__(self, provider: Optional[PriceProviderBase] = None):
        self._provider = provider

    @property
    def provider(self) -> PriceProviderBase:
        """Lazy-load provider."""
        if self._provider is None:
            self._provider = get_provider()
        return self._provider

    async def get_asset_data(
        self,
        symbol: str,
        today: Optional[date] = None,
        include_name: bool = True
    ) -> AssetData:
        """Fetch one year of closes for `symbol` and compute its snapshot.

        Raises:
            DataUnavailable: If the provider has no data or fewer than
                MIN_HISTORY_POINTS valid closes remain after dropping gaps
        """
        today = today or date.today()
        end = today + timedelta(days=1)
        start = today - timedelta(days=HISTORY_LOOKBACK_DAYS)

        logger.info("Fetching daily closes for %s using %s", symbol, self.provider.name)
        history = await self.provider.fetch_daily_closes(
            symbol, start, end, include_name=include_name
        )

        series = PriceSeries.from_daily_closes(history.closes)
        snapshot = compute_indicators(series)
        if snapshot is None:
            raise DataUnavailable(
                symbol,
                f"Only {len(series)} valid closes (need {MIN_HISTORY_POINTS})"
            )

        return AssetData(
            symbol=symbol,
            name=history.name or symbol,
            snapshot=snapshot,
            last_date=series.last_date,
            data_timestamp=history.data_timestamp,
        )
