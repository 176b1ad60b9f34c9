"""Scheduled status reports.

Every REPORT_CHECK_INTERVAL_SEC the scheduler compares the local time of
day with the configured report times and, once per report time per day,
sends a formatted snapshot of the latest reading to every chat subscriber.
Reports ignore the alert window and cooldown.
"""

import asyncio
from datetime import date, datetime

import aiosqlite

from campussense.lib.config import get_notification_preferences_async, get_settings
from campussense.lib.db import close_db, get_latest_reading, init_db
from campussense.lib.exceptions import CampusSenseError
from campussense.lib.notifications import TelegramNotifier
from campussense.lib.reports import MessageKind, format_report, format_structured
from campussense.lib.service import run_service
from campussense.lib.utils import as_utc, utcnow
from campussense.logging import get_logger

logger = get_logger("reports.service")


class ReportScheduler:
    """Decides when a report is due and sends it."""

    def __init__(self, notifier: TelegramNotifier | None = None):
        self._notifier = notifier or TelegramNotifier()
        self._sent: set[tuple[date, str]] = set()

    async def tick(self, now: datetime | None = None) -> bool:
        """Send a report if one is due at ``now``. Returns True if sent."""
        now = as_utc(now or utcnow())
        preferences = await get_notification_preferences_async()
        local = now.astimezone(preferences.tz)
        hhmm = local.strftime("%H:%M")

        if hhmm not in preferences.report_times:
            return False
        key = (local.date(), hhmm)
        if key in self._sent:
            return False

        latest = await get_latest_reading()
        text = format_structured(
            MessageKind.REPORT,
            [format_report(latest, preferences.timezone)],
            now,
            preferences.timezone,
        )
        logger.info("Sending %s report", hhmm)
        await self._notifier.broadcast(text)

        # Recorded only after a successful send
        self._sent = {k for k in self._sent if k[0] == local.date()}
        self._sent.add(key)
        return True


async def run() -> None:
    """Run the report scheduler."""
    interval = get_settings().reports.check_interval_sec
    await init_db()
    scheduler = ReportScheduler()
    logger.info("Report scheduler started (checking every %gs)", interval)
    try:
        while True:
            try:
                await scheduler.tick()
            except (CampusSenseError, aiosqlite.Error, OSError) as e:
                logger.error("Report check failed: %s", e)
            await asyncio.sleep(interval)
    finally:
        await close_db()
        logger.info("Report scheduler stopped")


def main() -> None:
    run_service(run, name="report")


if __name__ == "__main__":
    main()
