#!/usr/bin/env python3
"""Stonks Discord Bot - Main Entry Point

Usage:
    export DISCORD_TOKEN=your_bot_token
    export PYTHONPATH=src
    python -m stonks.main
"""
import logging
import sys
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from stonks.config import (
    DISCORD_TOKEN, COMMAND_PREFIX, LOG_PATH, ALERT_SYMBOL, ALERT_SYMBOL_NAME,
    ALERT_TIMEZONE
)
from stonks.errors import PermissionDenied, PersistenceFailure
from stonks.repositories.database import Database
from stonks.services.market_data.indicator_calculator import IndicatorCalculator
from stonks.services.market_data.providers import get_provider
from stonks.cogs.alert_engine import AlertEngine, format_alert_status
from stonks.cogs.market_query import handle_stonks_request, ERROR_MESSAGE
from stonks.services.scheduler import AlertScheduler, CrossoverCheck

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(LOG_PATH, encoding="utf-8")
    ]
)
logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "❌ You need administrator permissions to set the alert channel."
PERSISTENCE_ERROR_MESSAGE = "❌ Failed to save the alert channel. Please try again."


def is_administrator(member) -> bool:
    """True if the author is a guild member with Administrator permission (False in DMs)."""
    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


async def set_alert_channel(engine: AlertEngine, channel, member) -> str:
    """Register `channel` for crossover alerts and build the reply."""
    try:
        await engine.register_channel(channel.id, is_admin=is_administrator(member))
    except PermissionDenied:
        return PERMISSION_DENIED_MESSAGE
    except PersistenceFailure as e:
        logger.error(f"Error saving alert channel: {e}")
        return PERSISTENCE_ERROR_MESSAGE

    name = getattr(channel, "name", channel.id)
    return f"✅ Alerts will be sent to this channel ({name})"


def format_run_now_summary(result: Optional[CrossoverCheck]) -> str:
    """Reply for /run-now; reports actual delivery, not just detection."""
    if result is None:
        return (
            "⏭️ **Crossover check skipped**\n"
            "No alert channel is set, data was unavailable, or the state could not be saved. "
            "Check the logs for details."
        )

    decision = result.decision
    if not decision.alert_emitted:
        alert_text = "No (no crossover)"
    elif result.delivered:
        alert_text = "Yes"
    else:
        alert_text = "No, delivery failed (check the logs)"

    return (
        f"✅ **Crossover Check Complete**\n"
        f"• **Side:** {decision.state.last_side.value} the 200-Day MA\n"
        f"• **Alert sent:** {alert_text}"
    )


class StonksBot(commands.Bot):
    """Discord bot for market reports and crossover alerts with integrated scheduler."""

    def __init__(self):
        intents = discord.Intents.default()
        intents.guilds = True
        intents.messages = True
        intents.message_content = True

        super().__init__(
            command_prefix=COMMAND_PREFIX,
            intents=intents,
            case_insensitive=True
        )

        self.db = Database()
        self.calculator = IndicatorCalculator()
        self.alert_engine = AlertEngine(self.db)
        self.scheduler: Optional[AlertScheduler] = None

    async def setup_hook(self):
        """Initialize bot components."""
        logger.info("Initializing database...")
        await self.db.initialize()
        await self.alert_engine.load()

        provider = get_provider()
        logger.info(f"Price Data Provider: {provider.name}")

        logger.info("Starting scheduler...")
        self.scheduler = AlertScheduler(self)
        await self.scheduler.start()

        logger.info("Syncing slash commands...")
        await self.tree.sync()

        logger.info("Bot setup complete")

    async def on_ready(self):
        """Called when bot is ready."""
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guilds")
        if self.scheduler:
            logger.info(f"Next alert check: {self.scheduler.next_run_time}")
        await self.change_presence(
            activity=discord.Activity(
                type=discord.ActivityType.watching,
                name=f"{ALERT_SYMBOL_NAME} vs 200-Day MA"
            )
        )

    async def close(self):
        """Clean shutdown."""
        if self.scheduler:
            self.scheduler.stop()
        await super().close()


# Create bot instance
bot = StonksBot()


# ==================== Prefix Commands ====================

@bot.command(name="stonks")
async def stonks_prefix(ctx: commands.Context, *args: str):
    """Report price, moving averages and RSI for a symbol."""
    try:
        async with ctx.typing():
            response = await handle_stonks_request(bot.calculator, args)
    except Exception as e:
        logger.error(f"Command error: {e}", exc_info=True)
        response = ERROR_MESSAGE
    await ctx.reply(response, mention_author=False)


@bot.command(name="setalertchannel")
async def set_alert_channel_prefix(ctx: commands.Context):
    """Send crossover alerts to the current channel (Admin)."""
    response = await set_alert_channel(bot.alert_engine, ctx.channel, ctx.author)
    await ctx.reply(response, mention_author=False)


# ==================== Slash Commands ====================

@bot.tree.command(name="stonks", description="Get price, moving averages and RSI for a symbol")
@app_commands.describe(symbol="Yahoo Finance symbol (e.g. AAPL, 0700.HK, ^GSPC) or 'help'")
async def stonks_slash(interaction: discord.Interaction, symbol: str):
    """Report price, moving averages and RSI for a symbol."""
    await interaction.response.defer()

    try:
        response = await handle_stonks_request(bot.calculator, [symbol])
    except Exception as e:
        logger.error(f"Command error: {e}", exc_info=True)
        response = ERROR_MESSAGE

    await interaction.followup.send(response)


@bot.tree.command(name="set-alert-channel", description="Send crossover alerts to this channel (Admin)")
@app_commands.default_permissions(administrator=True)
async def set_alert_channel_slash(interaction: discord.Interaction):
    """Register the current channel for crossover alerts."""
    await interaction.response.defer(ephemeral=True)

    response = await set_alert_channel(bot.alert_engine, interaction.channel, interaction.user)
    await interaction.followup.send(response, ephemeral=True)


@bot.tree.command(name="alert-status", description="Show the crossover alert status")
async def alert_status(interaction: discord.Interaction):
    """Show the last observed side of the 200-day MA and the alert channel."""
    next_run = None
    if bot.scheduler and bot.scheduler.next_run_time:
        next_run = bot.scheduler.next_run_time.strftime(f"%Y-%m-%d %H:%M ({ALERT_TIMEZONE})")

    await interaction.response.send_message(
        format_alert_status(bot.alert_engine.state, f"{ALERT_SYMBOL_NAME} ({ALERT_SYMBOL})", next_run),
        ephemeral=True
    )


@bot.tree.command(name="run-now", description="Manually trigger the crossover check (Admin)")
@app_commands.default_permissions(administrator=True)
async def run_now(interaction: discord.Interaction):
    """Run the scheduled crossover check immediately."""
    await interaction.response.defer(ephemeral=True)

    if not is_administrator(interaction.user):
        await interaction.followup.send(
            "❌ **Permission Denied**\nThis command requires Administrator permission.",
            ephemeral=True
        )
        return

    if bot.scheduler is None:
        await interaction.followup.send("❌ Scheduler is not running", ephemeral=True)
        return

    logger.info(f"Manual crossover check triggered by {interaction.user} ({interaction.user.id})")
    result = await bot.scheduler.run_daily_check()
    await interaction.followup.send(format_run_now_summary(result), ephemeral=True)


# ==================== Main ====================

def main():
    """Run the bot."""
    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN environment variable not set")
        print("Error: Please set the DISCORD_TOKEN environment variable")
        print("  export DISCORD_TOKEN=your_bot_token")
        print("  python -m stonks.main")
        sys.exit(1)

    logger.info("Starting Stonks Discord Bot...")
    bot.run(DISCORD_TOKEN)


if __name__ == "__main__":
    main()
