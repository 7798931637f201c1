from mrmaster.core.coordinator import Coordinator, create_coordinator
from mrmaster.core.errors import CoordinatorError, InvariantViolation, TaskNotFoundError
from mrmaster.models.job import JobStatus, Phase
from mrmaster.models.task import OfferStatus, TaskOffer, TaskStatus, TaskType

__version__ = "1.0.0"

__all__ = [
    "Coordinator",
    "create_coordinator",
    "CoordinatorError",
    "InvariantViolation",
    "TaskNotFoundError",
    "JobStatus",
    "Phase",
    "OfferStatus",
    "TaskOffer",
    "TaskStatus",
    "TaskType",
]
