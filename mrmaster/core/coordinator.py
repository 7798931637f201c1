# Standard library imports for type hints
from typing import Dict, Optional, Sequence, Union

# Internal imports for the scheduling engine, data models and logging
from mrmaster.core.assignment import AssignmentEngine
from mrmaster.core.errors import InvariantViolation, TaskNotFoundError
from mrmaster.core.phase import PHASE_OF_TASK_TYPE, PhaseStateMachine
from mrmaster.core.task_table import TaskTable
from mrmaster.core.watchdog import TimeoutWatchdog, TimerScheduler
from mrmaster.models.job import JobConfig, JobStatus, Phase
from mrmaster.models.task import TaskOffer, TaskRecord, TaskStatus, TaskType, reduce_task_identity
from mrmaster.utils.config import get_settings
from mrmaster.utils.locks import ReadWriteLock
from mrmaster.utils.logger import get_logger
from mrmaster.utils.metrics import CoordinatorMetrics


class Coordinator:
    """
    Worker-facing facade of the MapReduce coordinator.

    This class owns all job state and serializes access to it:
    - Task tables for the Map and Reduce phases, both built up front
    - The phase state machine deciding which table is assignable
    - The assignment engine handing out tasks
    - One timeout watchdog per hand-out, reclaiming stalled tasks

    Every mutation (assignment, completion, watchdog revert, phase
    transition) runs under the exclusive side of a single reader/writer
    lock; `is_job_done` and `status` only take the shared side. Workers
    never wait on the coordinator: when nothing is assignable they get a
    WAIT offer and poll again later.

    An `InvariantViolation` found by a watchdog is stored in `fault`; from
    then on every request and report raises it again.
    """

    def __init__(
        self,
        input_splits: Sequence[str],
        n_reduce: int,
        task_timeout: Optional[float] = None,
        scheduler: Optional[TimerScheduler] = None,
        metrics: Optional[CoordinatorMetrics] = None,
    ):
        """
        Build both task tables and start in the MAPPING phase.

        Args:
            input_splits: Ordered input split names, one Map task each
            n_reduce: Number of Reduce tasks (output partitions)
            task_timeout: Watchdog window in seconds, defaults to settings
            scheduler: Deferred-call primitive used by the watchdog
            metrics: Prometheus metrics holder, a private one if omitted

        Raises:
            ValueError: If n_reduce is negative or split names repeat
        """
        if n_reduce < 0:
            raise ValueError(f"n_reduce must be >= 0, got {n_reduce}")

        self.logger = get_logger(__name__)
        self.metrics = metrics or CoordinatorMetrics()
        self.fault: Optional[InvariantViolation] = None

        self.config = JobConfig(map_task_count=len(input_splits), reduce_task_count=n_reduce)
        self._lock = ReadWriteLock()
        self._tables: Dict[TaskType, TaskTable] = {
            TaskType.MAP: TaskTable(TaskType.MAP, input_splits),
            TaskType.REDUCE: TaskTable(TaskType.REDUCE, (reduce_task_identity(i) for i in range(n_reduce))),
        }
        self._phases = PhaseStateMachine(self._tables)
        self._reverted: Dict[TaskType, int] = {task_type: 0 for task_type in TaskType}

        window = task_timeout if task_timeout is not None else get_settings().task_timeout_seconds
        self._watchdog = TimeoutWatchdog(
            self._lock, self._find_record, window, scheduler, on_revert=self._record_revert
        )
        self._engine = AssignmentEngine(self._phases, self.config, self._watchdog)

        # Empty tables complete immediately
        with self._lock.write_locked():
            entered = self._phases.advance()
        self.metrics.set_phase(self._phases.phase.value)
        self._log_transitions(entered)

        self.logger.info(
            f"Coordinator initialized with {self.config.map_task_count} map tasks and "
            f"{self.config.reduce_task_count} reduce tasks, task timeout {window}s"
        )

    @property
    def task_timeout(self) -> float:
        return self._watchdog.window

    @property
    def phase(self) -> Phase:
        with self._lock.read_locked():
            return self._phases.phase

    def request_task(self) -> TaskOffer:
        """
        Hand out an UNSTARTED task of the active phase.

        Returns:
            TaskOffer: ASSIGNED with the task, WAIT when every remaining task
            is in flight, or JOB_COMPLETE once the job is done.

        Raises:
            InvariantViolation: The coordinator faulted earlier.
        """
        with self._lock.write_locked():
            self._raise_if_faulted()
            offer = self._engine.next_offer()

        if offer.ok:
            self.metrics.record_assigned(offer.task_type.value)
            self.logger.info(
                f"Assigned {offer.task_type.value} task {offer.task_identity} (id {offer.task_id})"
            )
        return offer

    def report_task_complete(self, task_type: Union[TaskType, str], task_identity: str) -> bool:
        """
        Mark a task COMPLETED and advance the phase if its table is done.

        Reporting an already completed task is a successful no-op, which
        makes late reports from workers whose task was reassigned harmless.
        Reports for phases that already finished are accepted on the same
        grounds.

        Raises:
            TaskNotFoundError: Unknown identity, or the task's phase has
            not started yet.
            InvariantViolation: The coordinator faulted earlier.
        """
        try:
            task_type = TaskType(task_type)
        except ValueError:
            raise TaskNotFoundError(str(task_type), task_identity, "unknown task type") from None

        with self._lock.write_locked():
            self._raise_if_faulted()
            if not self._phases.has_started(PHASE_OF_TASK_TYPE[task_type]):
                raise TaskNotFoundError(task_type.value, task_identity, "phase not started")
            record = self._tables[task_type].get(task_identity)
            if record is None:
                raise TaskNotFoundError(task_type.value, task_identity)

            first_report = not record.is_completed
            record.status = TaskStatus.COMPLETED
            entered = self._phases.advance()
            if entered:
                self.metrics.set_phase(entered[-1].value)

        if first_report:
            self.metrics.record_completed(task_type.value)
            self.logger.info(f"The {task_type.value} task {task_identity} has finished")
        else:
            self.logger.debug(f"Duplicate completion report for {task_type.value} task {task_identity}")
        self._log_transitions(entered)
        return True

    def is_job_done(self) -> bool:
        """Whether the job reached ALL_DONE. Side-effect free, cheap to poll."""
        with self._lock.read_locked():
            return self._phases.is_done

    def status(self) -> JobStatus:
        with self._lock.read_locked():
            return JobStatus(
                phase=self._phases.phase,
                done=self._phases.is_done,
                map=self._tables[TaskType.MAP].progress(),
                reduce=self._tables[TaskType.REDUCE].progress(),
                reverted={task_type.value: count for task_type, count in self._reverted.items()},
            )

    def close(self):
        """Cancel pending watchdogs; the coordinator stays readable."""
        self._watchdog.close()
        self.logger.info("Coordinator closed")

    def _find_record(self, task_type: TaskType, identity: str) -> TaskRecord:
        record = self._tables[task_type].get(identity)
        if record is None:
            self.fault = InvariantViolation(
                f"Watchdog armed for {task_type.value} task {identity!r} missing from its table"
            )
            self.logger.critical(str(self.fault))
            raise self.fault
        return record

    def _record_revert(self, task_type: TaskType, record: TaskRecord):
        # Called by the watchdog with the write lock held
        self._reverted[task_type] += 1
        self.metrics.record_reverted(task_type.value)

    def _raise_if_faulted(self):
        if self.fault is not None:
            raise self.fault

    def _log_transitions(self, entered):
        for phase in entered:
            if phase == Phase.REDUCING:
                self.logger.info("Map phase complete, starting reduce phase")
            elif phase == Phase.ALL_DONE:
                self.logger.info("Reduce phase complete, job finished")


def create_coordinator(
    input_splits: Sequence[str],
    n_reduce: int,
    task_timeout: Optional[float] = None,
    scheduler: Optional[TimerScheduler] = None,
    metrics: Optional[CoordinatorMetrics] = None,
) -> Coordinator:
    """Factory function to create a coordinator for one job."""
    return Coordinator(
        input_splits,
        n_reduce,
        task_timeout=task_timeout,
        scheduler=scheduler,
        metrics=metrics,
    )
