"""
Database module for Stonks Discord Bot.
Uses SQLite for persistent storage of the crossover alert state.

Key tables:
- alert_state: Single row holding the last observed side of the 200-day MA
  and the registered alert channel. Always written whole.
"""
import aiosqlite
from datetime import datetime
from typing import Optional
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from contextlib import asynccontextmanager
import logging

from stonks.config import DB_PATH
from stonks.errors import PersistenceFailure

logger = logging.getLogger(__name__)

ALERT_STATE_ROW_ID = 1


class Side(Enum):
    ABOVE = "ABOVE"
    BELOW = "BELOW"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AlertState:
    """Last side of the 200-day MA and where crossover alerts go."""
    last_side: Side = Side.UNKNOWN
    channel_id: Optional[int] = None


class Database:
    def __init__(self, db_path=DB_PATH):
        self.db_path = str(db_path)
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def connect(self):
        """Open a SQLite connection with recommended pragmas."""
        db = await aiosqlite.connect(self.db_path)
        try:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute("PRAGMA synchronous=NORMAL;")
            yield db
        finally:
            await db.close()

    async def initialize(self):
        """Create database tables if they don't exist."""
        async with self.connect() as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS alert_state (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    last_side TEXT NOT NULL DEFAULT 'UNKNOWN'
                        CHECK (last_side IN ('ABOVE', 'BELOW', 'UNKNOWN')),
                    channel_id INTEGER,
                    updated_at TEXT NOT NULL
                )
            """)
            await db.commit()

        logger.info(f"Database initialized at {self.db_path}")

    async def get_alert_state(self) -> AlertState:
        """Read the alert state; defaults to (UNKNOWN, no channel) if never written."""
        async with self.connect() as db:
            async with db.execute(
                "SELECT last_side, channel_id FROM alert_state WHERE id = ?",
                (ALERT_STATE_ROW_ID,)
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return AlertState()

        return AlertState(last_side=Side(row[0]), channel_id=row[1])

    async def save_alert_state(self, state: AlertState) -> None:
        """
        Overwrite the alert state in a single transaction.

        Raises:
            PersistenceFailure: If the write or commit fails; nothing is committed
        """
        now = datetime.utcnow().isoformat()
        try:
            async with self.connect() as db:
                await db.execute(
                    """
                    INSERT INTO alert_state (id, last_side, channel_id, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        last_side = excluded.last_side,
                        channel_id = excluded.channel_id,
                        updated_at = excluded.updated_at
                    """,
                    (ALERT_STATE_ROW_ID, state.last_side.value, state.channel_id, now)
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceFailure(f"Failed to save alert state: {e}") from e

        logger.debug(f"Saved alert state: side={state.last_side.value} channel={state.channel_id}")
