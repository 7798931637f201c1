from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class WorkerSettings(BaseSettings):
    worker_id: str = Field("worker-001", description="Unique worker id, sent with task requests")
    master_host: str = Field("localhost", description="Coordinator host")
    master_port: int = Field(8000, description="Coordinator port")
    request_timeout: float = Field(30.0, description="Timeout for HTTP requests (seconds)")
    poll_interval: float = Field(1.0, gt=0, description="Delay before asking again after a no-task reply (seconds)")
    max_connection_failures: int = Field(5, ge=1, description="Consecutive unreachable-coordinator errors before the worker gives up")
    log_level: str = Field("info", description="Logging level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "MRWORKER_"


@lru_cache()
def get_settings() -> WorkerSettings:
    return WorkerSettings()
