"""
Progress Aggregator.
Derives turnaround progress and status from the checklist and writes them
back to the turnaround document.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from groundcrew.core.config import get_settings
from groundcrew.core.metrics import turnaround_recomputes_total
from groundcrew.exceptions import ConnectivityError, NotFoundError
from groundcrew.models.task import TaskStatus
from groundcrew.models.turnaround import TurnaroundStatus
from groundcrew.schemas.task import Task
from groundcrew.services.realtime.scopes import AllTurnaroundsScope, TaskListScope
from groundcrew.services.realtime.subscription_channel import SubscriptionChannel
from groundcrew.services.store.document_store import DocumentStore
from groundcrew.utils.clock import utc_now

logger = logging.getLogger(__name__)


def compute_progress(tasks: Iterable[Task]) -> int:
    """Completed share of the checklist as a percentage, halves rounded up"""
    tasks = list(tasks)
    total = len(tasks)
    if total == 0:
        return 0
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    return (200 * completed + total) // (2 * total)


def derive_status(current: TurnaroundStatus, tasks: Iterable[Task]) -> TurnaroundStatus:
    """
    Turnaround status implied by the checklist.
    Delayed is never cleared here; only an explicit status update does that.
    In Progress and Completed step down when the checklist no longer
    supports them.
    """
    tasks = list(tasks)
    if current == TurnaroundStatus.DELAYED:
        return current
    if any(task.status == TaskStatus.DELAYED for task in tasks):
        return TurnaroundStatus.DELAYED
    if tasks and all(task.status == TaskStatus.COMPLETED for task in tasks):
        return TurnaroundStatus.COMPLETED
    if any(task.status == TaskStatus.COMPLETED for task in tasks):
        return TurnaroundStatus.IN_PROGRESS
    if current in (TurnaroundStatus.IN_PROGRESS, TurnaroundStatus.COMPLETED):
        return TurnaroundStatus.ON_TIME
    return current


class ProgressAggregator:
    """
    Recomputes turnaround aggregates from task-list snapshots.

    Writes are not synchronized with the task writes that trigger them.
    Status writes only apply while the stored status is the one they were
    derived from; progress resolves last-write-wins unless compare-and-set
    mode is enabled.
    """

    def __init__(
        self,
        store: DocumentStore,
        channel: SubscriptionChannel,
        compare_and_set: Optional[bool] = None
    ):
        self.store = store
        self.channel = channel
        if compare_and_set is None:
            compare_and_set = get_settings().AGGREGATOR_COMPARE_AND_SET
        self.compare_and_set = compare_and_set
        self._watchers: Dict[str, asyncio.Task] = {}
        self._runner: Optional[asyncio.Task] = None

    async def recompute(self, turnaround_id: str, tasks: Optional[List[Task]] = None) -> bool:
        """
        Recompute and write back progress/status for one turnaround.

        Args:
            turnaround_id: Turnaround to aggregate
            tasks: Checklist snapshot; loaded from the store when omitted

        Returns:
            True if the turnaround document was written
        """
        turnaround = await self.store.get_turnaround(turnaround_id)
        if tasks is None:
            tasks = await self.store.list_tasks(turnaround_id)

        progress = compute_progress(tasks)
        status = derive_status(turnaround.status, tasks)

        if progress == turnaround.progress and status == turnaround.status:
            turnaround_recomputes_total.labels(outcome="unchanged").inc()
            return False

        # Status only moves from the value it was derived from, so a stale
        # read can never overwrite a delay reported in the meantime
        expected = {"status": turnaround.status.value}
        if self.compare_and_set:
            expected["progress"] = turnaround.progress

        applied = await self.store.merge_turnaround(
            turnaround_id,
            {"progress": progress, "status": status.value, "lastUpdated": utc_now()},
            expected=expected
        )
        if not applied and not self.compare_and_set:
            # Progress stays last-write-wins; the status is left to the next snapshot
            await self.store.merge_turnaround(
                turnaround_id,
                {"progress": progress, "lastUpdated": utc_now()}
            )
            turnaround_recomputes_total.labels(outcome="progress_only").inc()
            logger.info(
                f"Turnaround {turnaround_id} status changed underneath, wrote progress {progress} only",
                extra={"turnaround_id": turnaround_id, "progress": progress}
            )
            return True

        if not applied:
            # Lost the race; the next snapshot recomputes from fresher state
            turnaround_recomputes_total.labels(outcome="conflict").inc()
            logger.debug(f"Aggregate write for turnaround {turnaround_id} superseded")
            return False

        turnaround_recomputes_total.labels(outcome="written").inc()
        logger.info(
            f"Turnaround {turnaround_id} progress {turnaround.progress} -> {progress}",
            extra={
                "turnaround_id": turnaround_id,
                "progress": progress,
                "status": status.value,
            }
        )
        return True

    async def sweep(self) -> dict:
        """Recompute every turnaround; catches changes whose notification was missed"""
        stats = {"checked": 0, "written": 0, "failed": 0}
        for turnaround in await self.store.list_turnarounds():
            stats["checked"] += 1
            try:
                if await self.recompute(turnaround.turnaround_id):
                    stats["written"] += 1
            except (ConnectivityError, NotFoundError) as e:
                stats["failed"] += 1
                logger.warning(f"Sweep skipped turnaround {turnaround.turnaround_id}: {e.message}")
        return stats

    async def watch(self, turnaround_id: str) -> None:
        """Follow one turnaround's checklist feed until it ends or is cancelled"""
        subscription = self.channel.subscribe(TaskListScope(turnaround_id))
        try:
            while not subscription.closed:
                try:
                    async for snapshot in subscription:
                        await self.recompute(turnaround_id, list(snapshot.documents))
                except ConnectivityError as e:
                    logger.warning(f"Aggregator for {turnaround_id} waiting for store: {e.message}")
                except NotFoundError:
                    logger.info(f"Turnaround {turnaround_id} removed, aggregator stopped")
                    return
                except Exception:
                    # Recreated on the next turnaround snapshot
                    logger.error(f"Aggregator for {turnaround_id} failed", exc_info=True)
                    return
        finally:
            await subscription.close()

    async def start(self) -> None:
        """Attach a watcher to every turnaround, following new ones as they appear"""
        if self._runner is not None:
            logger.warning("Progress aggregator already running")
            return
        self._runner = asyncio.create_task(self._follow_turnarounds(), name="progress-aggregator")
        logger.info("Progress aggregator started")

    async def stop(self) -> None:
        tasks = list(self._watchers.values())
        if self._runner is not None:
            tasks.append(self._runner)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._watchers.clear()
        self._runner = None
        logger.info("Progress aggregator stopped")

    @property
    def watched_turnarounds(self) -> List[str]:
        return sorted(self._watchers)

    async def _follow_turnarounds(self) -> None:
        subscription = self.channel.subscribe(AllTurnaroundsScope())
        try:
            while not subscription.closed:
                try:
                    async for snapshot in subscription:
                        self._reconcile_watchers(snapshot.by_id().keys())
                except ConnectivityError as e:
                    logger.warning(f"Aggregator turnaround feed waiting for store: {e.message}")
        finally:
            await subscription.close()

    def _reconcile_watchers(self, turnaround_ids: Iterable[str]) -> None:
        current = set(turnaround_ids)
        finished = [tid for tid, task in self._watchers.items() if task.done()]
        for turnaround_id in finished:
            self._watchers.pop(turnaround_id)
            logger.info(f"Aggregator for {turnaround_id} ended, restarting if still present")
        for turnaround_id in current - set(self._watchers):
            self._watchers[turnaround_id] = asyncio.create_task(
                self.watch(turnaround_id), name=f"aggregate:{turnaround_id}"
            )
        for turnaround_id in set(self._watchers) - current:
            self._watchers.pop(turnaround_id).cancel()
