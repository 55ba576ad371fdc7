"""Services package for Stonks Discord Bot.

Import the scheduler from `stonks.services.scheduler`; it depends on the cogs,
which in turn depend on `stonks.services.market_data`.
"""
