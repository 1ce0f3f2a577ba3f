import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from backend.auth.session_store import SessionStore

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "session_sweep"


def init_session_sweeper(store: SessionStore, interval_seconds: float) -> BackgroundScheduler:
    """Start a background scheduler that removes expired sessions.

    The first sweep runs as soon as the scheduler starts, then once per
    interval. Sweeps run on the scheduler's worker threads, so request
    handling never waits on them. A failing sweep is logged by the scheduler
    and the job keeps its schedule.
    """
    scheduler = BackgroundScheduler(daemon=True, timezone=timezone.utc)
    scheduler.add_job(
        func=store.sweep,
        trigger="interval",
        seconds=interval_seconds,
        id=SWEEP_JOB_ID,
        next_run_time=datetime.now(timezone.utc),
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Session sweeper started (every %ss)", interval_seconds)
    return scheduler


def stop_session_sweeper(scheduler: BackgroundScheduler | None) -> None:
    if scheduler is None or not scheduler.running:
        return
    scheduler.shutdown(wait=True)
    logger.info("Session sweeper stopped")
