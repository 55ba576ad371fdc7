"""Configuration settings for the Stonks Discord Bot.

Data source
-----------
Daily closes come from Yahoo Finance via the `yfinance` package. Symbols use
Yahoo Finance format (AAPL, 0700.HK, ^GSPC, ^HSI).

Runtime paths
-------------
By default, the bot stores its SQLite DB and log file under `runtime/` inside
the repo. For systemd deployments, override via environment variables:
- DB_PATH
- LOG_PATH
"""

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
RUNTIME_DIR = PROJECT_ROOT / "runtime"

# Core file paths (can be overridden via environment variables)
DB_PATH = Path(os.getenv("DB_PATH", str(RUNTIME_DIR / "stonks_bot.db")))
LOG_PATH = Path(os.getenv("LOG_PATH", str(RUNTIME_DIR / "stonks_bot.log")))

# Ensure parent directories exist for runtime paths
DB_PATH.parent.mkdir(parents=True, exist_ok=True)
LOG_PATH.parent.mkdir(parents=True, exist_ok=True)

# =============================================================================
# Environment
# =============================================================================

# Bot token
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN", "").strip()

COMMAND_PREFIX = os.getenv("COMMAND_PREFIX", "!")

# =============================================================================
# Market data (Yahoo Finance)
# =============================================================================

# One year of daily candles comfortably covers the 200-day window.
HISTORY_LOOKBACK_DAYS = int(os.getenv("HISTORY_LOOKBACK_DAYS", "365"))
FETCH_TIMEOUT_SECONDS = float(os.getenv("FETCH_TIMEOUT_SECONDS", "30"))

# Retry settings for failed fetches
RETRY_MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 5.0

# =============================================================================
# Indicator windows
# =============================================================================
MA_SHORT_WINDOW = 50
MA_LONG_WINDOW = 200
RSI_SHORT_PERIOD = 5
RSI_LONG_PERIOD = 14

# A snapshot without MA200 is not usable
MIN_HISTORY_POINTS = MA_LONG_WINDOW

# =============================================================================
# RSI bands (inclusive)
# =============================================================================
RSI_OVERBOUGHT_THRESHOLD = 70
RSI_OVERSOLD_THRESHOLD = 30

# =============================================================================
# Crossover alert
# =============================================================================
ALERT_SYMBOL = os.getenv("ALERT_SYMBOL", "^GSPC")
ALERT_SYMBOL_NAME = os.getenv("ALERT_SYMBOL_NAME", "S&P 500")

# Daily check after the US close, weekdays only
ALERT_TIMEZONE = os.getenv("ALERT_TIMEZONE", "America/New_York")
ALERT_SCHEDULE_TIME = os.getenv("ALERT_SCHEDULE_TIME", "16:05")
