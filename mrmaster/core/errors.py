class CoordinatorError(Exception):
    """Base class for errors raised by the coordinator engine."""


class TaskNotFoundError(CoordinatorError):
    """
    A completion report named a task the coordinator cannot accept.

    Raised for identities that do not exist in the reported phase and for
    reports against a phase that has not started yet. It only fails the
    offending call.
    """

    def __init__(self, task_type: str, task_identity: str, reason: str = "unknown task"):
        self.task_type = task_type
        self.task_identity = task_identity
        self.reason = reason
        super().__init__(f"{reason}: {task_type} task {task_identity!r}")


class InvariantViolation(CoordinatorError):
    """
    Internal state is inconsistent (e.g. an armed watchdog names a task its
    table does not hold). Fatal to the coordinator, never swallowed.
    """
