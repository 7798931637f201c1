# Standard library imports for enumeration
from enum import Enum

# Third-party imports for data validation and type hints
from typing import Dict
from pydantic import BaseModel, Field


class Phase(str, Enum):
    """
    Stages of the job, strictly in this order.

    - MAPPING: Map tasks are assignable
    - REDUCING: Every Map task completed; Reduce tasks are assignable
    - ALL_DONE: Every Reduce task completed; terminal
    """
    MAPPING = "mapping"
    REDUCING = "reducing"
    ALL_DONE = "all_done"


class JobConfig(BaseModel):
    """Immutable shape of the job, fixed at coordinator construction."""
    map_task_count: int = Field(..., ge=0)
    reduce_task_count: int = Field(..., ge=0)

    class Config:
        frozen = True


class PhaseProgress(BaseModel):
    """Task counts of one phase, grouped by status."""
    total: int = 0
    unstarted: int = 0
    in_progress: int = 0
    completed: int = 0


class JobStatus(BaseModel):
    """Point-in-time snapshot of the whole job."""
    phase: Phase
    done: bool
    map: PhaseProgress
    reduce: PhaseProgress
    reverted: Dict[str, int] = {}               # Watchdog reverts per task type
