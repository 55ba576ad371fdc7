"""Stonks Discord Bot package.

A Discord bot for on-demand moving average / RSI reports and a daily
200-day moving average crossover alert.

Daily closes are sourced from Yahoo Finance; all indicators are computed
locally from those closes.
"""

__version__ = "1.0.0"
