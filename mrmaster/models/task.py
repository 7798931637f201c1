# Standard library imports for enumeration
from enum import Enum

# Third-party imports for data validation and type hints
from typing import Optional
from pydantic import BaseModel, Field


class TaskType(str, Enum):
    """
    Enumeration of MapReduce task types.

    - MAP: Tasks that process one input split and produce intermediate data
    - REDUCE: Tasks that aggregate one partition of intermediate data
    """
    MAP = "map"
    REDUCE = "reduce"


class TaskStatus(str, Enum):
    """
    Enumeration of task states.

    Task lifecycle flow:
    UNSTARTED → IN_PROGRESS → COMPLETED
    IN_PROGRESS → UNSTARTED (watchdog timeout only)

    - UNSTARTED: Eligible for assignment
    - IN_PROGRESS: Handed out to a worker, watchdog armed
    - COMPLETED: A worker reported the task done; never regresses
    """
    UNSTARTED = "unstarted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class OfferStatus(str, Enum):
    """
    Outcome of a task request.

    - ASSIGNED: The offer carries a task to execute
    - WAIT: Nothing assignable right now, poll again shortly
    - JOB_COMPLETE: The job is finished, nothing will ever be assigned again
    """
    ASSIGNED = "assigned"
    WAIT = "wait"
    JOB_COMPLETE = "job_complete"


def reduce_task_identity(index: int) -> str:
    """Conventional identity (and output file name) of reduce partition `index`."""
    return f"mr-out-{index}"


class TaskRecord(BaseModel):
    """
    Mutable status record of one task inside a task table.

    Records are created once when the table is built and are only ever
    mutated under the coordinator's exclusive lock.
    """

    # === Task Identification ===
    identity: str                               # Input split name or reduce output name
    id: int                                     # Stable ordinal within the phase

    # === Task State Tracking ===
    status: TaskStatus = TaskStatus.UNSTARTED
    attempt: int = 0                            # How many times the task was handed out
    assigned_at: Optional[float] = None         # Monotonic time of the latest hand-out

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class TaskOffer(BaseModel):
    """
    Answer to a worker asking for work.

    `ok` is true only when a task is attached. Workers need the map and
    reduce totals to name intermediate files and partition their output.
    """
    status: OfferStatus
    task_type: Optional[TaskType] = None
    task_identity: str = ""
    task_id: int = 0
    map_task_count: int = Field(0, ge=0)
    reduce_task_count: int = Field(0, ge=0)

    @property
    def ok(self) -> bool:
        return self.status == OfferStatus.ASSIGNED
