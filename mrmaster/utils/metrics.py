from prometheus_client import CollectorRegistry, Counter, Enum, generate_latest


class CoordinatorMetrics:
    """
    Prometheus metrics for one coordinator instance.

    Each instance owns its CollectorRegistry so several coordinators
    (e.g. in tests) never register the same metric twice.
    """

    PHASES = ["mapping", "reducing", "all_done"]

    def __init__(self):
        self.registry = CollectorRegistry()
        self.tasks_assigned = Counter(
            'coordinator_tasks_assigned', 'Tasks handed out to workers',
            ['task_type'], registry=self.registry
        )
        self.tasks_completed = Counter(
            'coordinator_tasks_completed', 'Tasks reported complete for the first time',
            ['task_type'], registry=self.registry
        )
        self.tasks_reverted = Counter(
            'coordinator_tasks_reverted', 'In-progress tasks reclaimed by the timeout watchdog',
            ['task_type'], registry=self.registry
        )
        self.phase = Enum(
            'coordinator_phase', 'Current job phase',
            states=self.PHASES, registry=self.registry
        )

    def record_assigned(self, task_type: str):
        self.tasks_assigned.labels(task_type=task_type).inc()

    def record_completed(self, task_type: str):
        self.tasks_completed.labels(task_type=task_type).inc()

    def record_reverted(self, task_type: str):
        self.tasks_reverted.labels(task_type=task_type).inc()

    def set_phase(self, phase: str):
        self.phase.state(phase)

    def get_count(self, name: str, task_type: str) -> float:
        """Current value of one labelled counter, mainly for tests and status output."""
        counter = {
            "assigned": self.tasks_assigned,
            "completed": self.tasks_completed,
            "reverted": self.tasks_reverted,
        }[name]
        return counter.labels(task_type=task_type)._value.get()

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)
