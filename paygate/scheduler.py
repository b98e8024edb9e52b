"""Background scheduler for sweeping stale capability tokens."""

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from paygate.config import settings
from paygate.services.token_store import TokenStore

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def sweep_job(flow: str, store: TokenStore) -> None:
    """Remove used and expired tokens from one flow's store."""
    try:
        removed = store.sweep()
        if removed:
            logger.info(f"Sweep: removed {removed} {flow} token(s)")
    except Exception as e:
        logger.error(f"Sweep of {flow} tokens failed: {e}")


def start_scheduler(stores: dict[str, TokenStore]) -> None:
    """Start the background scheduler with one sweep job per token store."""
    for flow, store in stores.items():
        scheduler.add_job(
            sweep_job,
            trigger=IntervalTrigger(seconds=settings.token_sweep_interval_seconds),
            args=[flow, store],
            id=f"sweep_{flow}_tokens",
            replace_existing=True,
        )
    scheduler.start()
    logger.info(
        f"Scheduler started - token sweep runs every {settings.token_sweep_interval_seconds}s"
    )


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    scheduler.shutdown()
    logger.info("Scheduler stopped")
