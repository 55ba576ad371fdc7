"""
Tests for the command helpers that need no Discord gateway.

Run with: pytest tests/test_commands.py -v
"""
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from stonks.cogs.alert_engine import AlertDecision, AlertEngine, evaluate
from stonks.errors import PersistenceFailure
from stonks.main import (
    PERMISSION_DENIED_MESSAGE, PERSISTENCE_ERROR_MESSAGE,
    format_run_now_summary, is_administrator, set_alert_channel
)
from stonks.repositories.database import AlertState, Side
from stonks.services.market_data.indicators import IndicatorSnapshot
from stonks.services.scheduler import CrossoverCheck


def guild_member(administrator):
    member = MagicMock()
    member.guild_permissions.administrator = administrator
    return member


def dm_user():
    """A DM author is a plain User: no guild_permissions attribute."""
    return MagicMock(spec=["id", "name"])


@pytest.fixture
def channel():
    ch = MagicMock()
    ch.id = 555
    ch.name = "market-alerts"
    return ch


@pytest.fixture
async def engine():
    db = MagicMock()
    db.get_alert_state = AsyncMock(return_value=AlertState(Side.ABOVE))
    db.save_alert_state = AsyncMock()
    alert_engine = AlertEngine(db)
    await alert_engine.load()
    yield alert_engine


class TestIsAdministrator:

    def test_admin_member(self):
        assert is_administrator(guild_member(True)) is True

    def test_regular_member(self):
        assert is_administrator(guild_member(False)) is False

    def test_dm_author(self):
        assert is_administrator(dm_user()) is False


class TestSetAlertChannel:

    @pytest.mark.asyncio
    async def test_admin_sets_channel(self, engine, channel):
        response = await set_alert_channel(engine, channel, guild_member(True))

        assert response == "✅ Alerts will be sent to this channel (market-alerts)"
        assert engine.state == AlertState(Side.ABOVE, channel_id=555)
        engine.db.save_alert_state.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_dm_author_denied(self, engine, channel):
        response = await set_alert_channel(engine, channel, dm_user())

        assert response == PERMISSION_DENIED_MESSAGE
        engine.db.save_alert_state.assert_not_awaited()
        assert engine.state.channel_id is None

    @pytest.mark.asyncio
    async def test_non_admin_denied(self, engine, channel):
        response = await set_alert_channel(engine, channel, guild_member(False))

        assert response == PERMISSION_DENIED_MESSAGE
        assert engine.state.channel_id is None

    @pytest.mark.asyncio
    async def test_save_failure_reply(self, engine, channel):
        engine.db.save_alert_state.side_effect = PersistenceFailure("database is locked")

        response = await set_alert_channel(engine, channel, guild_member(True))

        assert response == PERSISTENCE_ERROR_MESSAGE
        assert engine.state.channel_id is None


class TestRunNowSummary:

    def flip(self):
        snap = IndicatorSnapshot(Decimal(90), None, Decimal(100), None, None)
        return evaluate(snap, AlertState(Side.ABOVE, channel_id=1))

    def test_skipped(self):
        assert "skipped" in format_run_now_summary(None)

    def test_delivered(self):
        summary = format_run_now_summary(CrossoverCheck(self.flip(), delivered=True))

        assert "BELOW the 200-Day MA" in summary
        assert "**Alert sent:** Yes" in summary

    def test_delivery_failed(self):
        summary = format_run_now_summary(CrossoverCheck(self.flip(), delivered=False))

        assert "**Alert sent:** Yes" not in summary
        assert "delivery failed" in summary

    def test_no_crossover(self):
        decision = AlertDecision(state=AlertState(Side.ABOVE, channel_id=1))

        summary = format_run_now_summary(CrossoverCheck(decision))

        assert "no crossover" in summary
