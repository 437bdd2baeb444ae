"""Worker process for scheduled accrual jobs.

Runs an asyncio loop that accrues every employee's leave balances once per
``accrual_interval_seconds`` (daily by default).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date

from app.config import get_settings
from app.db import dispose_engine, session_scope

logger = logging.getLogger(__name__)


async def run_accrual_once(target_date: date | None = None) -> None:
    """Run one scheduled accrual pass in its own session."""
    from app.services.accrual import run_scheduled_accruals

    target_date = target_date or date.today()
    logger.info("Running scheduled accruals for %s", target_date)
    async with session_scope() as session:
        result = await run_scheduled_accruals(session, target_date)
    logger.info(
        "Accrual run complete for %s: processed=%d accrued=%d skipped=%d errors=%d",
        target_date,
        result.processed,
        result.accrued,
        result.skipped,
        result.errors,
    )


async def run_accrual_loop() -> None:
    """Main worker loop."""
    interval = get_settings().accrual_interval_seconds
    logger.info("Accrual worker started (interval=%ds)", interval)

    try:
        while True:
            try:
                await run_accrual_once()
            except Exception:
                logger.exception("Accrual run failed for %s", date.today())
            await asyncio.sleep(interval)
    finally:
        await dispose_engine()


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_accrual_loop())


if __name__ == "__main__":
    main()
