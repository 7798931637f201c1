from mrworker.core.worker_loop import WorkerLoop, run_worker
from mrworker.models.assignment import Assignment
from mrworker.services.master_client import MasterClient

__all__ = ["Assignment", "MasterClient", "WorkerLoop", "run_worker"]
