from typing import Dict, Iterable, Iterator, List, Optional

from mrmaster.models.task import TaskRecord, TaskStatus, TaskType
from mrmaster.models.job import PhaseProgress


class TaskTable:
    """
    Status records of every task in one phase.

    The table is filled once from an ordered sequence of identities; the
    position in that sequence becomes the record's ordinal id. Records are
    never added or removed afterwards, only their status changes. The table
    does no locking of its own, callers hold the coordinator lock.
    """

    def __init__(self, task_type: TaskType, identities: Iterable[str]):
        self.task_type = task_type
        self._by_identity: Dict[str, TaskRecord] = {}
        self._by_id: List[TaskRecord] = []

        for ordinal, identity in enumerate(identities):
            if identity in self._by_identity:
                raise ValueError(f"Duplicate {task_type.value} task identity: {identity!r}")
            record = TaskRecord(identity=identity, id=ordinal)
            self._by_identity[identity] = record
            self._by_id.append(record)

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[TaskRecord]:
        return iter(self._by_id)

    def __contains__(self, identity: str) -> bool:
        return identity in self._by_identity

    def get(self, identity: str) -> Optional[TaskRecord]:
        return self._by_identity.get(identity)

    def record_at(self, ordinal: int) -> TaskRecord:
        return self._by_id[ordinal]

    def all_completed(self) -> bool:
        """True iff every record is completed; an empty table is complete."""
        return all(record.is_completed for record in self._by_id)

    def progress(self) -> PhaseProgress:
        counts = {status: 0 for status in TaskStatus}
        for record in self._by_id:
            counts[record.status] += 1
        return PhaseProgress(
            total=len(self._by_id),
            unstarted=counts[TaskStatus.UNSTARTED],
            in_progress=counts[TaskStatus.IN_PROGRESS],
            completed=counts[TaskStatus.COMPLETED],
        )
