"""
Scheduler module for Stonks Discord Bot.

Daily crossover check:
- Runs once per weekday at ALERT_SCHEDULE_TIME (ALERT_TIMEZONE), after the close
- Fetches ALERT_SYMBOL, computes its snapshot and hands it to the AlertEngine
- Posts to the registered alert channel ONLY when the side of MA200 flips
- Does nothing until an alert channel has been registered

A failed fetch or a failed state write makes the tick a no-op; the next tick
starts again from the last committed state.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import discord
import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from stonks.config import (
    ALERT_TIMEZONE, ALERT_SCHEDULE_TIME, ALERT_SYMBOL, ALERT_SYMBOL_NAME
)
from stonks.errors import DataUnavailable, PersistenceFailure
from stonks.cogs.alert_engine import AlertEngine, AlertDecision, format_crossover_alert
from stonks.services.market_data.indicator_calculator import IndicatorCalculator

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_crossover_check"


@dataclass(frozen=True)
class CrossoverCheck:
    """Outcome of one tick: the evaluation and whether the alert reached the channel."""
    decision: AlertDecision
    delivered: bool = False


def parse_schedule_time(value: str) -> tuple:
    """Parse HH:MM; falls back to 16:05 on bad input."""
    try:
        hour, minute = map(int, value.split(":"))
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(value)
    except ValueError:
        logger.warning(f"Invalid schedule time '{value}', using 16:05")
        hour, minute = 16, 5
    return hour, minute


class AlertScheduler:
    """
    Manages the scheduled crossover check.

    The job's single entry point is `run_daily_check()`; `/run-now` calls the
    same method, so manual and scheduled runs share the alert state lock.
    """

    def __init__(self, bot):
        self.bot = bot
        self.calculator: IndicatorCalculator = bot.calculator
        self.alert_engine: AlertEngine = bot.alert_engine
        self.timezone = pytz.timezone(ALERT_TIMEZONE)

        # Configure scheduler with proper settings for reliability
        jobstores = {'default': MemoryJobStore()}
        executors = {'default': AsyncIOExecutor()}
        job_defaults = {
            'coalesce': True,  # Combine missed runs
            'max_instances': 1,  # Prevent overlapping
            'misfire_grace_time': 600  # 10 minute grace period
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone=self.timezone
        )

    async def start(self):
        """Start the scheduler and set up jobs."""
        logger.info("Starting crossover scheduler...")
        logger.info(f"Timezone: {ALERT_TIMEZONE}")

        self._add_daily_alert_job()
        self.scheduler.start()

        for job in self.scheduler.get_jobs():
            logger.info(f"  - {job.id}: next run at {job.next_run_time}")

    def _add_daily_alert_job(self):
        """Add the weekday crossover check job."""
        hour, minute = parse_schedule_time(ALERT_SCHEDULE_TIME)

        trigger = CronTrigger(
            hour=hour,
            minute=minute,
            day_of_week='mon-fri',
            timezone=self.timezone
        )

        self.scheduler.add_job(
            self.run_daily_check,
            trigger=trigger,
            id=DAILY_JOB_ID,
            name="Daily 200-Day MA Crossover Check",
            replace_existing=True
        )

        logger.info(
            f"Scheduled crossover check for {ALERT_SYMBOL} at "
            f"{hour:02d}:{minute:02d} {ALERT_TIMEZONE} (weekdays)"
        )

    @property
    def next_run_time(self) -> Optional[datetime]:
        job = self.scheduler.get_job(DAILY_JOB_ID)
        return job.next_run_time if job else None

    async def run_daily_check(self) -> Optional[CrossoverCheck]:
        """
        Execute one crossover check.

        Returns:
            CrossoverCheck, or None if the tick was skipped
        """
        start_time = datetime.now(self.timezone)
        logger.info(f"Starting crossover check for {ALERT_SYMBOL} at {start_time.isoformat()}")

        try:
            channel_id = self.alert_engine.state.channel_id
            if channel_id is None:
                logger.info("No alert channel registered, skipping crossover check")
                return None

            try:
                data = await self.calculator.get_asset_data(ALERT_SYMBOL, include_name=False)
            except DataUnavailable as e:
                logger.warning(f"Skipping crossover check, no data for {ALERT_SYMBOL}: {e.reason}")
                return None

            try:
                decision = await self.alert_engine.process_snapshot(data.snapshot)
            except PersistenceFailure as e:
                logger.error(f"Alert state not saved, will retry next tick: {e}", exc_info=True)
                return None

            delivered = False
            if decision.alert:
                message = format_crossover_alert(decision.alert, ALERT_SYMBOL_NAME)
                delivered = await self._post_alert(channel_id, message)

            if not decision.alert_emitted:
                alert_text = "none"
            else:
                alert_text = "sent" if delivered else "NOT delivered"

            duration = (datetime.now(self.timezone) - start_time).total_seconds()
            logger.info(
                f"Crossover check complete in {duration:.1f}s - "
                f"side: {decision.state.last_side.value} | "
                f"alert: {alert_text}"
            )
            return CrossoverCheck(decision=decision, delivered=delivered)

        except Exception as e:
            logger.error(f"Error in crossover check: {e}", exc_info=True)
            return None

    async def _post_alert(self, channel_id: int, content: str) -> bool:
        """Send an alert to the registered channel. Returns True on success."""
        channel = self.bot.get_channel(channel_id)
        try:
            if channel is None:
                channel = await self.bot.fetch_channel(channel_id)
            await channel.send(content)
            return True
        except discord.Forbidden:
            logger.error(f"Permission denied sending crossover alert to channel {channel_id}")
        except discord.NotFound:
            logger.error(f"Alert channel {channel_id} not found")
        except discord.HTTPException as e:
            logger.error(f"Failed to send crossover alert: {e}")
        return False

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Crossover scheduler stopped")
