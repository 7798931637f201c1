from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """
    Global configuration class for the mrmaster coordinator service.

    This class leverages Pydantic BaseSettings to automatically load
    configuration values from environment variables (prefixed with
    `MRMASTER_`) or an `.env` file.

    Attributes:
        host (str): Host address where the FastAPI server will bind.
        port (int): Port number for the FastAPI server.
        debug (bool): Enable/disable FastAPI debug mode.
        log_level (str): Logging level for the application (e.g., info, debug, error).
        task_timeout_seconds (float): Watchdog window after which an
            in-progress task is handed out again.
        n_reduce (int): Default number of Reduce tasks when the CLI does not
            override it.
        done_poll_interval (float): How often the driver polls for job completion.
        shutdown_grace_seconds (float): Delay between job completion and server
            shutdown, so that workers can observe the finished job.
    """
    host: str = Field("0.0.0.0", description="Host for the FastAPI server")
    port: int = Field(8000, description="Port for the FastAPI server")
    debug: bool = Field(False, description="Enable debug mode for FastAPI")
    log_level: str = Field("info", description="Logging level")
    task_timeout_seconds: float = Field(5.0, gt=0, description="Watchdog window for in-progress tasks (seconds)")
    n_reduce: int = Field(10, ge=0, description="Default number of reduce tasks")
    done_poll_interval: float = Field(1.0, gt=0, description="Job completion polling interval (seconds)")
    shutdown_grace_seconds: float = Field(2.0, ge=0, description="Grace period before shutdown once the job is done (seconds)")

    class Config:
        """
        Configuration for environment variable loading.

        - `env_file`: Path to the environment file to load variables from.
        - `env_file_encoding`: Encoding for the environment file.
        - `env_prefix`: Prefix shared by every coordinator variable.
        """
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "MRMASTER_"


@lru_cache()
def get_settings() -> Settings:
    """
    Retrieve a cached instance of the application settings.

    This ensures configuration is only loaded once and reused throughout
    the application lifecycle.

    Returns:
        Settings: The global application configuration.
    """
    return Settings()
