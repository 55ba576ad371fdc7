"""
Alert Engine module for Stonks Discord Bot.
Handles the 200-day MA crossover state machine and its persistence boundary.

Only a change of side against MA200 triggers an alert. The first evaluation
after a cold start (side UNKNOWN) sets the baseline silently.
"""
import asyncio
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional

from stonks.repositories.database import Database, AlertState, Side
from stonks.services.market_data.indicators import IndicatorSnapshot
from stonks.errors import PermissionDenied

logger = logging.getLogger(__name__)


class Direction(Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


@dataclass(frozen=True)
class CrossoverAlert:
    """Represents a triggered crossover alert to be sent."""
    direction: Direction
    side: Side
    current_price: Decimal
    ma200: Decimal

    @property
    def crossover_type(self) -> str:
        return "Golden Cross" if self.direction is Direction.BULLISH else "Death Cross"


@dataclass(frozen=True)
class AlertDecision:
    """Outcome of one evaluation."""
    state: AlertState
    alert: Optional[CrossoverAlert] = None
    evaluated: bool = True

    @property
    def alert_emitted(self) -> bool:
        return self.alert is not None


def classify_side(snapshot: IndicatorSnapshot) -> Optional[Side]:
    """ABOVE if price is strictly over MA200, else BELOW; None without MA200."""
    if snapshot.ma200 is None:
        return None
    return Side.ABOVE if snapshot.current_price > snapshot.ma200 else Side.BELOW


def evaluate(snapshot: IndicatorSnapshot, prior_state: AlertState) -> AlertDecision:
    """
    Compare the snapshot's side of MA200 with the last persisted side.

    Pure: the caller is responsible for persisting `decision.state`.
    """
    new_side = classify_side(snapshot)
    if new_side is None:
        return AlertDecision(state=prior_state, evaluated=False)

    new_state = replace(prior_state, last_side=new_side)
    last_side = prior_state.last_side

    if last_side is Side.UNKNOWN or last_side is new_side:
        return AlertDecision(state=new_state)

    alert = CrossoverAlert(
        direction=Direction.BULLISH if new_side is Side.ABOVE else Direction.BEARISH,
        side=new_side,
        current_price=snapshot.current_price,
        ma200=snapshot.ma200,
    )
    return AlertDecision(state=new_state, alert=alert)


class AlertEngine:
    """
    Owns the persisted AlertState.

    Every read-modify-write of the state runs under one lock, so overlapping
    ticks (or a tick racing a channel registration) can't lose or duplicate
    a transition. The cached state only changes after the database commit.
    """

    def __init__(self, db: Database):
        self.db = db
        self._lock = asyncio.Lock()
        self._state: AlertState = AlertState()

    @property
    def state(self) -> AlertState:
        return self._state

    async def load(self) -> AlertState:
        """Read the persisted state (call once at startup)."""
        async with self._lock:
            self._state = await self.db.get_alert_state()
        logger.info(
            f"Loaded alert state: side={self._state.last_side.value} "
            f"channel={self._state.channel_id}"
        )
        return self._state

    async def process_snapshot(self, snapshot: IndicatorSnapshot) -> AlertDecision:
        """
        Evaluate a snapshot and persist the new side.

        Raises:
            PersistenceFailure: If the state could not be saved; the cached
                state is left untouched so the next tick retries
        """
        async with self._lock:
            decision = evaluate(snapshot, self._state)

            if not decision.evaluated:
                logger.warning("MA200 missing from snapshot, skipping evaluation")
                return decision

            await self.db.save_alert_state(decision.state)
            self._state = decision.state

        if decision.alert:
            logger.info(
                f"Crossover detected: {decision.alert.direction.value} "
                f"(price {decision.alert.current_price:.2f}, MA200 {decision.alert.ma200:.2f})"
            )
        else:
            logger.info(f"No crossover, side is {decision.state.last_side.value}")

        return decision

    async def register_channel(self, channel_id: int, is_admin: bool) -> AlertState:
        """
        Set the channel that receives crossover alerts.

        Raises:
            PermissionDenied: If the caller is not an administrator
            PersistenceFailure: If the state could not be saved
        """
        if not is_admin:
            raise PermissionDenied("Administrator permission is required to set the alert channel")

        async with self._lock:
            new_state = replace(self._state, channel_id=channel_id)
            await self.db.save_alert_state(new_state)
            self._state = new_state

        logger.info(f"Alert channel set to {channel_id}")
        return new_state


def format_crossover_alert(alert: CrossoverAlert, asset_name: str) -> str:
    """
    Format a crossover alert message.

    Example:
    **MARKET ALERT** 🔺 BULLISH CROSSOVER 🔺
    S&P 500 has closed above its 200-Day MA!
    """
    if alert.direction is Direction.BULLISH:
        header = "🔺 BULLISH CROSSOVER 🔺"
    else:
        header = "🔻 BEARISH CROSSOVER 🔻"

    return "\n".join([
        f"**MARKET ALERT** {header}",
        f"{asset_name} has closed {alert.side.value.lower()} its 200-Day MA!",
        f"**Close Price:** ${alert.current_price:.2f}",
        f"**200-Day MA:** ${alert.ma200:.2f}",
        f"**Crossover Type:** {alert.crossover_type}",
    ])


def format_alert_status(state: AlertState, asset_name: str, next_run: Optional[str] = None) -> str:
    """Format the current alert state for /alert-status."""
    if state.last_side is Side.UNKNOWN:
        side_text = "Not yet checked"
    else:
        side_text = f"{state.last_side.value} the 200-Day MA"

    channel_text = f"<#{state.channel_id}>" if state.channel_id else "Not set (use `!setalertchannel`)"

    lines = [
        f"📡 **Crossover Alert Status: {asset_name}**",
        f"• **Last close:** {side_text}",
        f"• **Alert channel:** {channel_text}",
    ]
    if next_run:
        lines.append(f"• **Next check:** {next_run}")
    return "\n".join(lines)
