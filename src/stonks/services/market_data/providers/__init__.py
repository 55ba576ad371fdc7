"""stonks.services.market_data.providers

Daily-close provider layer. Closes come from Yahoo Finance via `yfinance`.

    from stonks.services.market_data.providers import get_provider

    provider = get_provider()
    history = await provider.fetch_daily_closes("^GSPC", start, end)
"""

import logging
from typing import Optional

from stonks.services.market_data.providers.base import PriceProviderBase, PriceHistory

logger = logging.getLogger(__name__)

_provider_instance: Optional[PriceProviderBase] = None


def get_provider() -> PriceProviderBase:
    """Return the shared provider, creating it on first use."""
    global _provider_instance

    if _provider_instance is None:
        from stonks.services.market_data.providers.yahoo_provider import YahooFinanceProvider

        _provider_instance = YahooFinanceProvider()
        logger.info("Using price provider: %s", _provider_instance.name)

    return _provider_instance


def reset_provider() -> None:
    """Drop the cached provider (tests)."""
    global _provider_instance
    _provider_instance = None


__all__ = [
    "PriceProviderBase",
    "PriceHistory",
    "get_provider",
    "reset_provider",
]
