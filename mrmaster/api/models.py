from pydantic import BaseModel, Field
from typing import Optional

from mrmaster.models.task import TaskOffer, TaskType


class TaskRequest(BaseModel):
    """
    Payload a worker sends when asking for work. No field is required;
    the worker id only shows up in the coordinator log.
    """
    worker_id: Optional[str] = Field(None, alias="workerId", description="Identifier of the requesting worker")

    class Config:
        populate_by_name = True


class TaskReply(BaseModel):
    """
    Answer to a task request.

    `ok=false` covers both "wait and retry" and "job already finished";
    workers tell them apart through the job status endpoint.
    """
    map_task_count: int = Field(..., alias="mapTaskCount", description="Number of map tasks in the job")
    reduce_task_count: int = Field(..., alias="reduceTaskCount", description="Number of reduce tasks in the job")
    task_identity: str = Field("", alias="taskIdentity", description="Input split name or reduce output name")
    task_id: int = Field(0, alias="taskId", description="Ordinal of the task within its phase")
    task_type: Optional[TaskType] = Field(None, alias="taskType", description="map or reduce")
    ok: bool = Field(..., description="Whether a task is attached")

    class Config:
        populate_by_name = True

    @classmethod
    def from_offer(cls, offer: TaskOffer) -> "TaskReply":
        return cls(
            map_task_count=offer.map_task_count,
            reduce_task_count=offer.reduce_task_count,
            task_identity=offer.task_identity,
            task_id=offer.task_id,
            task_type=offer.task_type,
            ok=offer.ok,
        )


class TaskCompleteRequest(BaseModel):
    """Payload a worker sends once its task output is in place."""
    task_type: TaskType = Field(..., alias="taskType", description="map or reduce")
    task_identity: str = Field(..., alias="taskIdentity", description="Identity received with the task")

    class Config:
        populate_by_name = True


class TaskCompleteReply(BaseModel):
    ok: bool = Field(..., description="Whether the report was accepted")
