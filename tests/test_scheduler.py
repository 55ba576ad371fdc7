"""
Tests for the scheduled crossover check.

Run with: pytest tests/test_scheduler.py -v
"""
import logging
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from stonks.cogs.alert_engine import AlertEngine
from stonks.errors import DataUnavailable, PersistenceFailure
from stonks.repositories.database import AlertState, Side
from stonks.services.market_data.indicator_calculator import AssetData
from stonks.services.market_data.indicators import IndicatorSnapshot
from stonks.services.scheduler import AlertScheduler, DAILY_JOB_ID, parse_schedule_time


def asset(price, ma200=100):
    snapshot = IndicatorSnapshot(
        current_price=Decimal(str(price)),
        ma50=None,
        ma200=Decimal(str(ma200)),
        rsi_short=None,
        rsi_long=None,
    )
    return AssetData(symbol="^GSPC", name="S&P 500", snapshot=snapshot)


class MemoryDatabase:
    """Stands in for Database; keeps the row in memory."""

    def __init__(self, state=None):
        self.row = state or AlertState()
        self.save_alert_state = AsyncMock(side_effect=self._save)

    async def get_alert_state(self):
        return self.row

    async def _save(self, state):
        self.row = state


@pytest.fixture
def channel():
    ch = MagicMock()
    ch.send = AsyncMock()
    return ch


async def make_scheduler(state, channel):
    db = MemoryDatabase(state)
    engine = AlertEngine(db)
    await engine.load()

    bot = MagicMock()
    bot.calculator.get_asset_data = AsyncMock()
    bot.alert_engine = engine
    bot.get_channel.return_value = channel
    bot.fetch_channel = AsyncMock(return_value=channel)

    return AlertScheduler(bot), db


class TestParseScheduleTime:

    def test_valid(self):
        assert parse_schedule_time("21:05") == (21, 5)

    @pytest.mark.parametrize("value", ["", "25:00", "16", "ab:cd"])
    def test_invalid_falls_back(self, value):
        assert parse_schedule_time(value) == (16, 5)


class TestRunDailyCheck:

    @pytest.mark.asyncio
    async def test_skips_without_channel(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.ABOVE), channel)

        assert await scheduler.run_daily_check() is None
        scheduler.calculator.get_asset_data.assert_not_awaited()
        db.save_alert_state.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_check_is_silent(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.UNKNOWN, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(110)

        result = await scheduler.run_daily_check()

        assert result.decision.state.last_side is Side.ABOVE
        assert result.delivered is False
        assert db.row.last_side is Side.ABOVE
        channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_flip_posts_alert(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.ABOVE, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(90)

        result = await scheduler.run_daily_check()

        assert result.decision.alert_emitted
        assert result.delivered is True
        scheduler.bot.get_channel.assert_called_once_with(42)
        channel.send.assert_awaited_once()
        assert "BEARISH CROSSOVER" in channel.send.await_args.args[0]

    @pytest.mark.asyncio
    async def test_same_side_posts_nothing(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.BELOW, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(90)

        result = await scheduler.run_daily_check()

        assert not result.decision.alert_emitted
        channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_data_unavailable_skips(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.ABOVE, 42), channel)
        scheduler.calculator.get_asset_data.side_effect = DataUnavailable("^GSPC", "Timed out")

        assert await scheduler.run_daily_check() is None
        db.save_alert_state.assert_not_awaited()
        channel.send.assert_not_awaited()
        assert scheduler.alert_engine.state.last_side is Side.ABOVE

    @pytest.mark.asyncio
    async def test_persistence_failure_sends_nothing(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.ABOVE, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(90)
        db.save_alert_state.side_effect = PersistenceFailure("disk full")

        assert await scheduler.run_daily_check() is None
        channel.send.assert_not_awaited()
        assert scheduler.alert_engine.state.last_side is Side.ABOVE

    @pytest.mark.asyncio
    async def test_tick_skips_name_lookup(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.BELOW, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(90)

        await scheduler.run_daily_check()

        scheduler.calculator.get_asset_data.assert_awaited_once_with("^GSPC", include_name=False)

    @pytest.mark.asyncio
    async def test_fetches_uncached_channel(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.BELOW, 42), channel)
        scheduler.bot.get_channel.return_value = None
        scheduler.calculator.get_asset_data.return_value = asset(110)

        await scheduler.run_daily_check()

        scheduler.bot.fetch_channel.assert_awaited_once_with(42)
        channel.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_failure_keeps_new_state(self, channel, caplog):
        scheduler, db = await make_scheduler(AlertState(Side.BELOW, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(110)
        channel.send.side_effect = discord.HTTPException(MagicMock(status=500, reason="error"), "boom")

        with caplog.at_level(logging.INFO, logger="stonks.services.scheduler"):
            result = await scheduler.run_daily_check()

        assert result.decision.alert_emitted
        assert result.delivered is False
        assert db.row.last_side is Side.ABOVE
        assert "alert: NOT delivered" in caplog.text
        assert "alert: sent" not in caplog.text

    @pytest.mark.asyncio
    async def test_forbidden_channel_not_delivered(self, channel):
        scheduler, db = await make_scheduler(AlertState(Side.BELOW, 42), channel)
        scheduler.calculator.get_asset_data.return_value = asset(110)
        channel.send.side_effect = discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Access")

        result = await scheduler.run_daily_check()

        assert result.decision.alert_emitted
        assert result.delivered is False


class TestSchedulerLifecycle:

    @pytest.mark.asyncio
    async def test_start_registers_weekday_job(self, channel):
        scheduler, db = await make_scheduler(AlertState(), channel)

        await scheduler.start()
        try:
            job = scheduler.scheduler.get_job(DAILY_JOB_ID)
            assert job is not None
            assert str(job.trigger.fields[4]) == "mon-fri"
            assert scheduler.next_run_time is not None
            assert scheduler.next_run_time.weekday() < 5
        finally:
            scheduler.stop()
