"""Worker process for scheduled leave jobs.

Runs an asyncio loop once daily; on the first day of a leave year it carries
unused days over from the year that just closed.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from hr_leave.config import get_settings
from hr_leave.db import get_session_factory

logger = logging.getLogger(__name__)

CHECK_INTERVAL_SECONDS = 86400  # 24 hours


async def run_daily_jobs(today: date) -> None:
    """Run the jobs due on ``today``."""
    from hr_leave.services.carryover import closing_year_for, is_leave_year_start, run_carryover_processing
    from hr_leave.services.leave_type import get_leave_type_registry

    if not is_leave_year_start(today):
        logger.debug("No scheduled jobs due on %s", today)
        return

    from_year = closing_year_for(today)
    logger.info("Running carry-over from leave year %s", from_year)
    session_factory = get_session_factory()
    async with session_factory() as session:
        await run_carryover_processing(session, get_leave_type_registry(), from_year)


async def run_worker_loop() -> None:
    """Main worker loop."""
    logger.info("Leave worker started")

    while True:
        today = date.today()
        try:
            await run_daily_jobs(today)
        except Exception:
            logger.exception("Scheduled jobs failed for %s", today)

        await asyncio.sleep(CHECK_INTERVAL_SECONDS)


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_worker_loop())


if __name__ == "__main__":
    main()
