"""Market data services for Stonks Discord Bot."""

from stonks.services.market_data.indicator_calculator import IndicatorCalculator, AssetData
from stonks.services.market_data.indicators import (
    PriceSeries, IndicatorSnapshot, compute_indicators, calculate_rsi, simple_moving_average
)
from stonks.services.market_data.providers import get_provider, PriceHistory, PriceProviderBase

__all__ = [
    "IndicatorCalculator",
    "AssetData",
    "PriceSeries",
    "IndicatorSnapshot",
    "compute_indicators",
    "calculate_rsi",
    "simple_moving_average",
    "get_provider",
    "PriceHistory",
    "PriceProviderBase",
]
