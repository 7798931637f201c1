import time
from typing import Callable, Dict, Optional

from mrmaster.core.phase import PhaseStateMachine
from mrmaster.core.task_table import TaskTable
from mrmaster.core.watchdog import TimeoutWatchdog
from mrmaster.models.job import JobConfig
from mrmaster.models.task import OfferStatus, TaskOffer, TaskRecord, TaskStatus, TaskType


class AssignmentEngine:
    """
    Picks the next task to hand out.

    Selection strategy:
    - Only the active phase's table is considered
    - The scan starts right after the last task handed out from that table
      and wraps around, so every UNSTARTED task is offered within one pass
      no matter how often earlier tasks time out and come back
    - The chosen task becomes IN_PROGRESS and gets a watchdog

    `next_offer` must be called with the coordinator's exclusive lock held;
    scan and mutation form a single critical section.
    """

    def __init__(
        self,
        phases: PhaseStateMachine,
        config: JobConfig,
        watchdog: TimeoutWatchdog,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.phases = phases
        self.config = config
        self.watchdog = watchdog
        self.clock = clock
        self._cursors: Dict[TaskType, int] = {}

    def next_offer(self) -> TaskOffer:
        if self.phases.is_done:
            return self._signal(OfferStatus.JOB_COMPLETE)

        table = self.phases.active_table()
        record = self._find_unstarted(table)
        if record is None:
            return self._signal(OfferStatus.WAIT)

        record.status = TaskStatus.IN_PROGRESS
        record.attempt += 1
        record.assigned_at = self.clock()
        self._cursors[table.task_type] = record.id + 1
        self.watchdog.arm(table.task_type, record.identity, record.attempt)

        return TaskOffer(
            status=OfferStatus.ASSIGNED,
            task_type=table.task_type,
            task_identity=record.identity,
            task_id=record.id,
            map_task_count=self.config.map_task_count,
            reduce_task_count=self.config.reduce_task_count,
        )

    def _find_unstarted(self, table: TaskTable) -> Optional[TaskRecord]:
        size = len(table)
        start = self._cursors.get(table.task_type, 0)
        for step in range(size):
            record = table.record_at((start + step) % size)
            if record.status == TaskStatus.UNSTARTED:
                return record
        return None

    def _signal(self, status: OfferStatus) -> TaskOffer:
        return TaskOffer(
            status=status,
            map_task_count=self.config.map_task_count,
            reduce_task_count=self.config.reduce_task_count,
        )
