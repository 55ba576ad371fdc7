"""Cogs (command handlers) for Stonks Discord Bot."""
from stonks.cogs.alert_engine import (
    AlertEngine, AlertDecision, CrossoverAlert, Direction, evaluate, format_crossover_alert
)
from stonks.cogs.market_query import handle_stonks_request, format_asset_report, format_no_data_message

__all__ = [
    'AlertEngine',
    'AlertDecision',
    'CrossoverAlert',
    'Direction',
    'evaluate',
    'format_crossover_alert',
    'handle_stonks_request',
    'format_asset_report',
    'format_no_data_message',
]
