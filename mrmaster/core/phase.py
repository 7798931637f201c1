from typing import Dict, List, Optional

from mrmaster.core.task_table import TaskTable
from mrmaster.models.job import Phase
from mrmaster.models.task import TaskType

# Phase in which tasks of each type become assignable
PHASE_OF_TASK_TYPE = {
    TaskType.MAP: Phase.MAPPING,
    TaskType.REDUCE: Phase.REDUCING,
}

_PHASE_ORDER = [Phase.MAPPING, Phase.REDUCING, Phase.ALL_DONE]


class PhaseStateMachine:
    """
    Tracks the job phase: MAPPING → REDUCING → ALL_DONE.

    Transitions only move forward and only when the table of the current
    phase is fully completed. Both tables exist from the start; leaving
    MAPPING simply makes the reduce table the active one.
    """

    def __init__(self, tables: Dict[TaskType, TaskTable]):
        self._tables = tables
        self._phase = Phase.MAPPING

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def is_done(self) -> bool:
        return self._phase == Phase.ALL_DONE

    def active_table(self) -> Optional[TaskTable]:
        """Table tasks are assigned from, None once the job is done."""
        for task_type, phase in PHASE_OF_TASK_TYPE.items():
            if phase == self._phase:
                return self._tables[task_type]
        return None

    def has_started(self, phase: Phase) -> bool:
        return _PHASE_ORDER.index(phase) <= _PHASE_ORDER.index(self._phase)

    def advance(self) -> List[Phase]:
        """
        Move forward as long as the active table is complete.

        Several steps can happen at once when a later table is empty
        (e.g. no reduce tasks). Returns the phases entered, in order.
        """
        entered = []
        while not self.is_done and self.active_table().all_completed():
            self._phase = _PHASE_ORDER[_PHASE_ORDER.index(self._phase) + 1]
            entered.append(self._phase)
        return entered
