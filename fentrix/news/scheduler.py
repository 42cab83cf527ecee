"""
Background jobs

Uses APScheduler inside the FastAPI event loop:
- update timer tick (every 60 seconds) that fires the 4-hourly news run
- article lifecycle sweep (every 10 minutes, and once at startup)
- optional forced news run at startup

Single-instance only; timer state lives in memory.
"""
from datetime import datetime, timedelta, timezone
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .lifecycle import run_lifecycle_sweep
from .schedule import UpdateState

logger = logging.getLogger(__name__)
scheduler = None


async def check_for_update(pipeline, state: UpdateState, retry_minutes: int = 15, now: datetime = None) -> bool:
    """
    One timer tick. Runs the news pipeline when the scheduled time has passed.

    Returns True when a run was started.
    """
    now = now or datetime.utcnow()
    state.refresh_timeframe(now)

    if state.next_update_time is None or now < state.next_update_time or state.is_processing:
        return False

    logger.info(f"Scheduled update time reached ({state.next_update_time.isoformat()}Z), processing news")
    try:
        result = await pipeline.process_news()
    except Exception as e:
        logger.error(f"Scheduled news processing raised: {e}")
        result = {"success": False, "error": str(e)}

    if result.get("success"):
        state.schedule_next()
    else:
        state.next_update_time = datetime.utcnow() + timedelta(minutes=retry_minutes)
        logger.warning(f"News processing failed ({result.get('error')}), retrying at {state.next_update_time.isoformat()}Z")
    return True


async def run_startup_update(pipeline, state: UpdateState):
    logger.info("Running initial news update")
    try:
        result = await pipeline.process_news(force=True)
        logger.info(f"Initial news update finished: {result}")
    except Exception as e:
        logger.error(f"Error during initial news fetch: {e}")


def init_scheduler(settings, pipeline, state: UpdateState):
    """
    Initialize the scheduler and register jobs
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = AsyncIOScheduler(timezone="UTC")
    state.interval_hours = settings.update_interval_hours
    state.schedule_next()

    scheduler.add_job(
        check_for_update,
        "interval",
        seconds=settings.timer_tick_seconds,
        id="update_timer",
        kwargs={"pipeline": pipeline, "state": state, "retry_minutes": settings.retry_after_failure_minutes},
        max_instances=1,
        coalesce=True,
    )

    scheduler.add_job(
        run_lifecycle_sweep,
        "interval",
        minutes=settings.lifecycle_interval_minutes,
        id="article_lifecycle",
        next_run_time=datetime.now(timezone.utc),
        max_instances=1,
        coalesce=True,
    )

    if settings.run_on_startup:
        scheduler.add_job(
            run_startup_update,
            "date",
            id="startup_news_update",
            kwargs={"pipeline": pipeline, "state": state},
        )

    logger.info(f"Scheduler initialized, next update at {state.next_update_time.isoformat()}Z")
    return scheduler


def start_scheduler():
    """
    Start the scheduler
    Must be called from inside the running event loop
    """
    global scheduler

    if scheduler is None:
        logger.error("Scheduler not initialized. Call init_scheduler() first.")
        return

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started")
    else:
        logger.warning("Scheduler already running")


def shutdown_scheduler():
    """
    Shutdown the scheduler gracefully
    """
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler shut down")
    scheduler = None
