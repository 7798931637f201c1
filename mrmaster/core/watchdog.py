import threading
from functools import partial
from typing import Callable, Optional, Set

from mrmaster.models.task import TaskRecord, TaskStatus, TaskType
from mrmaster.utils.locks import ReadWriteLock
from mrmaster.utils.logger import get_logger


class TimerScheduler:
    """
    Runs callbacks after a delay, one daemon `threading.Timer` per call.

    Pending timers are tracked so that `cancel_all` can stop them when the
    coordinator shuts down.
    """

    def __init__(self):
        self._timers: Set[threading.Timer] = set()
        self._lock = threading.Lock()
        self._closed = False

    def call_later(self, delay: float, callback: Callable[[], None]):
        def fire():
            with self._lock:
                self._timers.discard(timer)
            callback()

        timer = threading.Timer(delay, fire)
        timer.daemon = True
        with self._lock:
            if self._closed:
                return
            self._timers.add(timer)
        timer.start()

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def cancel_all(self):
        with self._lock:
            self._closed = True
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()


class TimeoutWatchdog:
    """
    Reclaims tasks whose worker stopped answering.

    `arm` schedules one deferred check per hand-out. The wait itself happens
    outside the coordinator lock; at fire time the check takes the exclusive
    lock and reverts the task to UNSTARTED only if it is still IN_PROGRESS for
    the same attempt. A completion report that got in first always wins, and
    a check armed for an older attempt never touches a newer assignment.
    The `on_revert` hook is called with the exclusive lock still held and
    must not take the lock again.
    """

    def __init__(
        self,
        lock: ReadWriteLock,
        find_record: Callable[[TaskType, str], TaskRecord],
        window: float,
        scheduler: Optional[TimerScheduler] = None,
        on_revert: Optional[Callable[[TaskType, TaskRecord], None]] = None,
    ):
        if window <= 0:
            raise ValueError("Watchdog window must be positive")
        self.window = window
        self.scheduler = scheduler or TimerScheduler()
        self._lock = lock
        self._find_record = find_record
        self._on_revert = on_revert
        self.logger = get_logger(__name__)

    def arm(self, task_type: TaskType, identity: str, attempt: int):
        self.scheduler.call_later(self.window, partial(self.expire, task_type, identity, attempt))

    def expire(self, task_type: TaskType, identity: str, attempt: int) -> bool:
        """Deferred check body. Returns True if the task was reverted."""
        with self._lock.write_locked():
            record = self._find_record(task_type, identity)
            if record.status != TaskStatus.IN_PROGRESS or record.attempt != attempt:
                return False
            record.status = TaskStatus.UNSTARTED
            record.assigned_at = None
            # Runs under the lock so bookkeeping never lags the revert
            if self._on_revert:
                self._on_revert(task_type, record)

        self.logger.warning(
            f"Worker for {task_type.value} task {identity} (attempt {attempt}) "
            f"missed the {self.window}s deadline, task is assignable again"
        )
        return True

    def close(self):
        self.scheduler.cancel_all()
