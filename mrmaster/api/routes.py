from typing import Optional

# FastAPI imports for routing, HTTP handling, and dependency injection
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST

# Internal API models for request/response validation
from mrmaster.api.models import TaskCompleteReply, TaskCompleteRequest, TaskReply, TaskRequest

# Core business logic components
from mrmaster.core.coordinator import Coordinator
from mrmaster.core.errors import TaskNotFoundError
from mrmaster.models.job import JobStatus

# Utility imports
from mrmaster.utils.logger import get_logger

# ===== API Router Configuration =====
router = APIRouter()

logger = get_logger(__name__)


def get_coordinator(request: Request) -> Coordinator:
    """Coordinator instance attached to the running application."""
    return request.app.state.coordinator


# ===== Task Endpoints =====
# Handlers are plain functions: FastAPI runs each call on its thread pool,
# the coordinator lock serializes them.

@router.post("/tasks/request", response_model=TaskReply)
def request_task(payload: Optional[TaskRequest] = None, coordinator: Coordinator = Depends(get_coordinator)):
    """
    Endpoint for workers asking for a task.

    Returns a task of the active phase when one is assignable. Otherwise
    `ok` is false and the worker is expected to poll again after a short
    delay, or to stop once the job status reports it done.
    """
    offer = coordinator.request_task()
    if offer.ok and payload and payload.worker_id:
        logger.debug(f"{offer.task_type.value} task {offer.task_identity} handed to worker {payload.worker_id}")
    return TaskReply.from_offer(offer)


@router.post("/tasks/complete", response_model=TaskCompleteReply)
def complete_task(payload: TaskCompleteRequest, coordinator: Coordinator = Depends(get_coordinator)):
    """
    Endpoint for workers to report successful task completion.

    Repeated reports for the same task succeed. Reports naming a task the
    coordinator does not know, or one whose phase has not started, fail
    with 404 and leave the job untouched.

    Raises:
        HTTPException: If the task is not found (404)
    """
    try:
        coordinator.report_task_complete(payload.task_type, payload.task_identity)
    except TaskNotFoundError as e:
        logger.warning(f"Rejected completion report: {e}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
    return TaskCompleteReply(ok=True)


# ===== Job Status Endpoints =====

@router.get("/job", response_model=JobStatus)
def get_job_status(coordinator: Coordinator = Depends(get_coordinator)):
    """
    Current phase, per-phase task counts and the done flag.

    Read-only; safe to poll at any frequency.
    """
    return coordinator.status()


# ===== System Health Endpoints =====

@router.get("/health")
def health_check():
    """System health check endpoint for monitoring and load balancing."""
    return {"status": "healthy", "service": "mrmaster"}


@router.get("/metrics")
def metrics(coordinator: Coordinator = Depends(get_coordinator)):
    """Prometheus exposition of the coordinator metrics."""
    return Response(content=coordinator.metrics.render(), media_type=CONTENT_TYPE_LATEST)
