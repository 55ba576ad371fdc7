"""
Yahoo Finance Daily-Close Provider.

Uses the yfinance package to fetch daily candles. yfinance is synchronous, so
each fetch runs in a thread pool executor and is bounded by
FETCH_TIMEOUT_SECONDS; failed fetches are retried up to RETRY_MAX_ATTEMPTS times.

Closes are unadjusted (auto_adjust=False), i.e. the printed daily close.
"""
import asyncio
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from typing import Optional

import yfinance as yf

from stonks.config import (
    FETCH_TIMEOUT_SECONDS, RETRY_MAX_ATTEMPTS, RETRY_DELAY_SECONDS
)
from stonks.errors import DataUnavailable
from stonks.services.market_data.indicators import to_decimal
from stonks.services.market_data.providers.base import PriceProviderBase, PriceHistory

logger = logging.getLogger(__name__)


class YahooFinanceProvider(PriceProviderBase):
    """
    Daily-close provider using Yahoo Finance.

    Features:
    - Any Yahoo symbol (US/HK stocks, indices)
    - Display name from the quote's longName/shortName
    - Timeout and retry around every fetch
    """

    def __init__(
        self,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        max_attempts: int = RETRY_MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS
    ):
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._executor = ThreadPoolExecutor(max_workers=4)

    @property
    def name(self) -> str:
        return "Yahoo Finance"

    def _fetch_sync(self, ticker: "yf.Ticker", symbol: str, start: date, end: date) -> PriceHistory:
        """
        Synchronously fetch daily closes for one symbol.

        Raises:
            DataUnavailable: If Yahoo returns no candles
        """
        df = ticker.history(start=start, end=end, interval="1d", auto_adjust=False)

        if df is None or df.empty or "Close" not in df:
            raise DataUnavailable(symbol, "No data from Yahoo Finance")

        closes = []
        for timestamp, value in df["Close"].items():
            if value is None or math.isnan(value):
                close = None
            else:
                close = to_decimal(float(value))
            closes.append((timestamp.date(), close))

        return PriceHistory(
            symbol=symbol,
            name=None,
            closes=closes,
            data_timestamp=datetime.utcnow()
        )

    def _lookup_name_sync(self, ticker: "yf.Ticker") -> Optional[str]:
        info = ticker.info or {}
        return info.get("longName") or info.get("shortName")

    async def _lookup_name(self, ticker: "yf.Ticker", symbol: str) -> Optional[str]:
        """Best-effort display name; the quote endpoint is flakier than history."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, self._lookup_name_sync, ticker),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.debug(f"Name lookup timed out for {symbol}")
        except Exception as e:
            logger.debug(f"Name lookup failed for {symbol}: {e}")
        return None

    async def fetch_daily_closes(
        self,
        symbol: str,
        start: date,
        end: date,
        include_name: bool = True
    ) -> PriceHistory:
        """Fetch daily closes, retrying failed or timed-out attempts.

        The display name is looked up only after the closes arrived, outside
        the timed and retried section.
        """
        loop = asyncio.get_running_loop()
        ticker = yf.Ticker(symbol)
        last_error = "No response from provider"

        for attempt in range(1, self.max_attempts + 1):
            try:
                history = await asyncio.wait_for(
                    loop.run_in_executor(self._executor, self._fetch_sync, ticker, symbol, start, end),
                    timeout=self.timeout
                )
                break
            except asyncio.TimeoutError:
                last_error = f"Timed out after {self.timeout:.0f}s"
            except DataUnavailable as e:
                last_error = e.reason
            except Exception as e:
                last_error = str(e) or e.__class__.__name__

            logger.warning(
                f"Fetch attempt {attempt}/{self.max_attempts} failed for {symbol}: {last_error}"
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self.retry_delay)
        else:
            raise DataUnavailable(symbol, last_error)

        if include_name:
            history.name = await self._lookup_name(ticker, symbol)
        return history
