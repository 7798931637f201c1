# Standard library imports for type hints
from typing import Any, Dict, Optional

# Third-party imports for HTTP client operations
import httpx

# Internal imports for models, configuration and logging
from mrworker.models.assignment import Assignment
from mrworker.utils.config import WorkerSettings, get_settings
from mrworker.utils.logger import get_logger


class MasterClient:
    """
    HTTP client for the coordinator's worker-facing RPC surface.

    This client covers the three calls a worker makes:
    - Asking for a task
    - Reporting a task complete
    - Reading the job status to tell "wait" from "job finished"

    Transport failures are logged and turned into a None/False result; the
    worker loop decides whether to poll again.
    """

    def __init__(self, settings: Optional[WorkerSettings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize MasterClient with configuration and connection settings.

        Args:
            settings: Worker settings, the cached environment settings if omitted
            transport: Optional httpx transport (e.g. an ASGI transport in tests)
        """
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)
        self.client: Optional[httpx.AsyncClient] = None
        self.master_url = f"http://{self.settings.master_host}:{self.settings.master_port}"
        self._transport = transport

    async def start(self):
        """Initialize the HTTP client with timeouts and connection limits."""
        if self.client:
            return
        self.client = httpx.AsyncClient(
            base_url=self.master_url,
            transport=self._transport,
            timeout=httpx.Timeout(self.settings.request_timeout),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5)
        )
        self.logger.info(f"Master client initialized for {self.master_url}")

    async def close(self):
        """Close the HTTP client and release its connections."""
        if self.client:
            await self.client.aclose()
            self.client = None
            self.logger.info("Master client closed")

    async def __aenter__(self) -> "MasterClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def request_task(self) -> Optional[Assignment]:
        """
        Ask the coordinator for work.

        Returns:
            Assignment: The reply, `ok` false when nothing is assignable.
            None if the coordinator could not be reached.
        """
        await self.start()
        try:
            response = await self.client.post(
                "/api/v1/tasks/request",
                json={"workerId": self.settings.worker_id}
            )
            response.raise_for_status()
            return Assignment.model_validate(response.json())

        except httpx.HTTPError as e:
            self.logger.error(f"Failed to request a task: {e}")
            return None

    async def report_task_complete(self, task_type: str, task_identity: str) -> bool:
        """
        Report a finished task.

        Returns:
            bool: True if the coordinator accepted the report. A 404 (task
            unknown to the coordinator) and transport errors yield False.
        """
        await self.start()
        try:
            response = await self.client.post(
                "/api/v1/tasks/complete",
                json={"taskType": task_type, "taskIdentity": task_identity}
            )
            if response.status_code == httpx.codes.NOT_FOUND:
                self.logger.warning(f"Coordinator rejected report for {task_type} task {task_identity}: "
                                    f"{response.json().get('detail')}")
                return False
            response.raise_for_status()

            self.logger.info(f"{task_type} task {task_identity} completion reported to master")
            return bool(response.json().get("ok"))

        except httpx.HTTPError as e:
            self.logger.error(f"Failed to report task completion: {e}")
            return False

    async def get_job_status(self) -> Optional[Dict[str, Any]]:
        """Job status document, None if the coordinator could not be reached."""
        await self.start()
        try:
            response = await self.client.get("/api/v1/job")
            response.raise_for_status()
            return response.json()

        except httpx.HTTPError as e:
            self.logger.error(f"Failed to read job status: {e}")
            return None
