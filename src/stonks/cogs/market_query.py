"""
Market Query Handler for Stonks Discord Bot.
Handles the on-demand `!stonks <symbol>` / `/stonks` report.

Stateless: reports never read or write the crossover alert state.
"""
import logging
from decimal import Decimal
from typing import Optional, Sequence

from stonks.config import (
    RSI_OVERBOUGHT_THRESHOLD, RSI_OVERSOLD_THRESHOLD,
    RSI_SHORT_PERIOD, RSI_LONG_PERIOD, MA_SHORT_WINDOW, MA_LONG_WINDOW,
    COMMAND_PREFIX
)
from stonks.errors import DataUnavailable, MalformedInput
from stonks.services.market_data.indicator_calculator import AssetData, IndicatorCalculator

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

HELP_MESSAGE = "\n".join([
    "**📈 Stonks Bot Help**",
    "Check stock prices and technical indicators for US/HK markets",
    "",
    "**Usage:**",
    f"`{COMMAND_PREFIX}stonks <symbol>` - Get market data for a symbol",
    "",
    "**Symbol Formats:**",
    "```",
    "US Stocks:    AAPL, TSLA, NVDA",
    "HK Stocks:    0700.HK, 9988.HK",
    "Indices:      ^GSPC (S&P 500), ^HSI (Hang Seng)",
    "```",
    "",
    "**Examples:**",
    f"`{COMMAND_PREFIX}stonks AAPL`    - Apple Inc (US)",
    f"`{COMMAND_PREFIX}stonks 0700.HK` - Tencent (Hong Kong)",
    f"`{COMMAND_PREFIX}stonks ^HSI`    - Hang Seng Index",
    "",
    "Note: Symbols must follow Yahoo Finance format",
])

USAGE_MESSAGE = f"❌ Please specify a symbol. Use `{COMMAND_PREFIX}stonks help` for formats"

ERROR_MESSAGE = f"💥 Error fetching data. Use `{COMMAND_PREFIX}stonks help` for format examples"


def classify_rsi(rsi: Optional[Decimal]) -> str:
    """Overbought at or above 70, oversold at or below 30."""
    if rsi is None:
        return ""
    if rsi >= RSI_OVERBOUGHT_THRESHOLD:
        return "🚨 Overbought"
    if rsi <= RSI_OVERSOLD_THRESHOLD:
        return "🔔 Oversold"
    return "⚖️ Neutral"


def _format_ma_line(label: str, price: Decimal, ma: Optional[Decimal]) -> str:
    if ma is None or ma == 0:
        return f"- {label}: {NOT_AVAILABLE}"

    status = "ABOVE" if price > ma else "BELOW"
    percent = abs(price - ma) / ma * 100
    return f"- {label}: ${ma:.2f} ({status} by {percent:.2f}%)"


def _format_rsi_line(label: str, rsi: Optional[Decimal]) -> str:
    if rsi is None:
        return f"{label}: {NOT_AVAILABLE}"
    return f"{label}: {rsi:.1f} {classify_rsi(rsi)}"


def format_asset_report(data: Optional[AssetData], symbol: str = "") -> str:
    """Format the indicator report for one symbol; no data gives the no-data reply."""
    if data is None:
        return format_no_data_message(symbol)

    snapshot = data.snapshot
    price = snapshot.current_price

    lines = [
        f"**{data.name} ({data.symbol})**",
        f"💵 Current Price: ${price:.2f}",
        "📊 Moving Averages:",
        _format_ma_line(f"{MA_SHORT_WINDOW}-Day", price, snapshot.ma50),
        _format_ma_line(f"{MA_LONG_WINDOW}-Day", price, snapshot.ma200),
        "",
        "📈 Technical Indicators:",
        _format_rsi_line(f"{RSI_SHORT_PERIOD}-Day RSI", snapshot.rsi_short),
        _format_rsi_line(f"{RSI_LONG_PERIOD}-Day RSI", snapshot.rsi_long),
    ]
    if data.last_date:
        lines.append(f"\n🗓️ Last close: {data.last_date.isoformat()}")

    return "\n".join(lines)


def format_no_data_message(symbol: str) -> str:
    """User-facing reply when a symbol has no usable data."""
    return (
        f"📉 Invalid symbol or no data for {symbol}\n"
        f"Use `{COMMAND_PREFIX}stonks help` for symbol format examples"
    )


def parse_symbol(args: Sequence[str]) -> Optional[str]:
    """
    Extract the symbol from command arguments.

    Returns:
        Upper-cased symbol, or None if the user asked for help

    Raises:
        MalformedInput: If no symbol was given
    """
    if not args or not args[0].strip():
        raise MalformedInput("No symbol specified")

    symbol = args[0].strip()
    if symbol.lower() == "help":
        return None
    return symbol.upper()


async def handle_stonks_request(calculator: IndicatorCalculator, args: Sequence[str]) -> str:
    """Build the reply for a `stonks` command; never raises for bad input or missing data."""
    try:
        symbol = parse_symbol(args)
    except MalformedInput:
        return USAGE_MESSAGE

    if symbol is None:
        return HELP_MESSAGE

    try:
        data = await calculator.get_asset_data(symbol)
    except DataUnavailable as e:
        logger.info(f"No data for {symbol}: {e.reason}")
        data = None

    return format_asset_report(data, symbol)
