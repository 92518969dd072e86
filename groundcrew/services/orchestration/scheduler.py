import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from typing import Optional

from groundcrew.core.config import get_settings
from groundcrew.utils.clock import utc_now
from groundcrew.services.orchestration.progress_aggregator import ProgressAggregator

logger = logging.getLogger(__name__)


class AggregationScheduler:
    """
    Runs the periodic progress reconciliation sweep using APScheduler.
    The live aggregator reacts to change feeds; the sweep converges any
    turnaround whose notification was missed.
    """

    def __init__(self, aggregator: ProgressAggregator, interval_minutes: Optional[int] = None):
        self.scheduler = AsyncIOScheduler()
        self.aggregator = aggregator
        self.interval_minutes = interval_minutes or get_settings().AGGREGATOR_SWEEP_INTERVAL_MINUTES
        self._job = None
        self._is_running = False
        self._last_sweep: Optional[dict] = None

    async def start(self):
        """Start the scheduler with configured interval"""
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        self._job = self.scheduler.add_job(
            self._sweep_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="progress_sweep_job",
            name="Progress Reconciliation",
            replace_existing=True,
            max_instances=1,  # Prevent overlapping executions
            misfire_grace_time=60
        )

        self.scheduler.start()
        self._is_running = True

        logger.info(f"Progress sweep scheduler started with {self.interval_minutes}min interval")

    async def stop(self):
        """Stop the scheduler"""
        if not self._is_running:
            logger.warning("Scheduler not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Progress sweep scheduler stopped")

    async def _sweep_job(self):
        """Internal job method called by scheduler"""
        try:
            logger.info("Executing scheduled progress sweep")
            stats = await self.aggregator.sweep()
            self._last_sweep = {**stats, "finished_at": utc_now().isoformat()}
            logger.info("Scheduled sweep completed", extra=stats)
        except Exception as e:
            logger.error(f"Error in scheduled sweep job: {str(e)}", exc_info=True)

    async def trigger_manual_sweep(self) -> dict:
        """Run a sweep immediately"""
        await self._sweep_job()
        return self._last_sweep or {}

    def get_next_run_time(self) -> Optional[str]:
        if self._job and self._job.next_run_time:
            return self._job.next_run_time.isoformat()
        return None

    def get_status(self) -> dict:
        return {
            "scheduler_running": self._is_running,
            "interval_minutes": self.interval_minutes,
            "next_run": self.get_next_run_time(),
            "last_sweep": self._last_sweep,
        }
