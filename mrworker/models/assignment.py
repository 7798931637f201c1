from typing import Optional
from pydantic import BaseModel, Field


class Assignment(BaseModel):
    """Task reply received from the coordinator"""

    ok: bool
    task_type: Optional[str] = Field(None, alias="taskType")  # "map" or "reduce"
    task_identity: str = Field("", alias="taskIdentity")
    task_id: int = Field(0, alias="taskId")
    map_task_count: int = Field(0, alias="mapTaskCount")
    reduce_task_count: int = Field(0, alias="reduceTaskCount")

    class Config:
        populate_by_name = True

    def is_map(self) -> bool:
        return self.task_type == "map"
