"""stonks.services.market_data.indicators

Local indicator math over daily closes.

Everything here is pure: no I/O, no state. Prices are `Decimal` so results are
reproducible bit-for-bit for the same input series.

RSI is the *simple* variant: gains and losses are summed fresh over a fixed
window on every call. It is not Wilder-smoothed, and the values users see in
reports and alerts depend on that.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from stonks.config import (
    MA_SHORT_WINDOW, MA_LONG_WINDOW, RSI_SHORT_PERIOD, RSI_LONG_PERIOD,
    MIN_HISTORY_POINTS
)

HUNDRED = Decimal(100)


@dataclass(frozen=True)
class PriceSeries:
    """Daily closes, most recent first. Missing closes are already dropped."""

    closes: Tuple[Decimal, ...]
    last_date: Optional[date] = None

    @classmethod
    def from_daily_closes(cls, rows: Iterable[Tuple[date, Optional[Decimal]]]) -> "PriceSeries":
        """Build a series from provider rows of (date, close or None), in any order."""
        valid = [
            (day, close) for day, close in rows
            if close is not None and not close.is_nan()
        ]
        valid.sort(key=lambda row: row[0], reverse=True)

        return cls(
            closes=tuple(close for _, close in valid),
            last_date=valid[0][0] if valid else None,
        )

    def __len__(self) -> int:
        return len(self.closes)


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values at the most recent close."""

    current_price: Decimal
    ma50: Optional[Decimal]
    ma200: Optional[Decimal]
    rsi_short: Optional[Decimal]  # RSI5
    rsi_long: Optional[Decimal]   # RSI14


def simple_moving_average(closes: Sequence[Decimal], window: int) -> Optional[Decimal]:
    """Mean of the `window` most recent closes, or None if there are fewer."""
    if window <= 0 or len(closes) < window:
        return None
    return sum(closes[:window], Decimal(0)) / window


def calculate_rsi(closes: Sequence[Decimal], period: int) -> Optional[Decimal]:
    """
    Simple RSI over the `period + 1` most recent closes (most recent first).

    Each step compares a close with the one before it in time
    (``closes[i-1] - closes[i]``). With no losses in the window RSI is 100.

    Returns:
        RSI in [0, 100], or None if there are not enough closes
    """
    if period <= 0 or len(closes) < period + 1:
        return None

    gains = Decimal(0)
    losses = Decimal(0)

    for i in range(1, period + 1):
        difference = closes[i - 1] - closes[i]
        if difference > 0:
            gains += difference
        else:
            losses += abs(difference)

    avg_gain = gains / period
    avg_loss = losses / period

    if avg_loss == 0:
        return HUNDRED

    rs = avg_gain / avg_loss
    return HUNDRED - HUNDRED / (1 + rs)


def compute_indicators(series: PriceSeries) -> Optional[IndicatorSnapshot]:
    """
    Compute the full indicator snapshot for a series.

    Returns:
        IndicatorSnapshot, or None when the series has fewer than
        MIN_HISTORY_POINTS closes (MA200 can't be computed)
    """
    closes = series.closes
    if len(closes) < MIN_HISTORY_POINTS:
        return None

    ma200 = simple_moving_average(closes, MA_LONG_WINDOW)
    if ma200 is None:
        return None

    return IndicatorSnapshot(
        current_price=closes[0],
        ma50=simple_moving_average(closes, MA_SHORT_WINDOW),
        ma200=ma200,
        rsi_short=calculate_rsi(closes, RSI_SHORT_PERIOD),
        rsi_long=calculate_rsi(closes, RSI_LONG_PERIOD),
    )


def to_decimal(value) -> Optional[Decimal]:
    """Convert a provider float to Decimal via its shortest repr; None stays None."""
    if value is None:
        return None
    return Decimal(str(value))

