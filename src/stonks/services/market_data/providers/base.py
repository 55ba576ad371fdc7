"""
Price Provider Base Interface.

Defines the common interface that all daily-close data providers must implement.
This allows the bot to switch between different data sources seamlessly.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple


@dataclass
class PriceHistory:
    """
    Unified daily-close history from any provider.

    Rows are (date, close) pairs in whatever order the provider returns them;
    close is None where the provider has a gap.
    """
    symbol: str
    name: Optional[str]  # Display name if available
    closes: List[Tuple[date, Optional[Decimal]]] = field(default_factory=list)
    data_timestamp: Optional[datetime] = None  # When the data was retrieved


class PriceProviderBase(ABC):
    """
    Abstract base class for daily-close data providers.

    Implementations raise `DataUnavailable` when the symbol is unknown or the
    provider returns nothing.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this provider (for logging/display)."""
        pass

    @abstractmethod
    async def fetch_daily_closes(
        self,
        symbol: str,
        start: date,
        end: date,
        include_name: bool = True
    ) -> PriceHistory:
        """
        Fetch daily closing prices for a symbol.

        Args:
            symbol: Ticker symbol (Yahoo Finance format, e.g., "AAPL", "^GSPC")
            start: First date to include
            end: Date to stop at (exclusive)
            include_name: Also resolve the display name; callers that
                format with their own label pass False

        Returns:
            PriceHistory for the symbol
        """
        pass
