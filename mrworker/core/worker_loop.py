import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

import httpx

from mrworker.models.assignment import Assignment
from mrworker.services.master_client import MasterClient
from mrworker.utils.config import WorkerSettings, get_settings
from mrworker.utils.logger import get_logger, setup_logger

Executor = Callable[[Assignment], Union[None, Awaitable[None]]]


class WorkerLoop:
    """
    Pull loop run by one worker process.

    Asks the coordinator for a task, runs it through the executor supplied
    by the caller, reports completion and starts over. A reply without a
    task means either "wait" or "job finished"; the job status endpoint
    tells which. The loop ends when the job is done, when `stop` is called,
    or after too many consecutive failures to reach the coordinator (a
    coordinator that went away has usually finished the job).

    Synchronous executors run in a thread so a long task never blocks the
    event loop; an awaitable they return is awaited before the task is
    reported. An executor that raises is logged and its task left
    unreported; the coordinator's timeout hands it to another worker.
    """

    def __init__(self, master_client: MasterClient, executor: Executor, settings: Optional[WorkerSettings] = None):
        self.master_client = master_client
        self.executor = executor
        self.settings = settings or get_settings()
        self.logger = get_logger(__name__)

        self.is_running = False
        self.tasks_completed = 0
        self.tasks_failed = 0

    async def run(self) -> int:
        """Run until the job is done. Returns the number of tasks completed here."""
        self.is_running = True
        connection_failures = 0
        self.logger.info(f"Worker {self.settings.worker_id} polling {self.master_client.master_url}")

        while self.is_running:
            assignment = await self.master_client.request_task()

            if assignment is None:
                connection_failures += 1
                if connection_failures >= self.settings.max_connection_failures:
                    self.logger.warning("Coordinator unreachable, assuming the job is over")
                    break
                await asyncio.sleep(self.settings.poll_interval)
                continue
            connection_failures = 0

            if not assignment.ok:
                if await self._job_done():
                    self.logger.info("Job finished, worker exiting")
                    break
                await asyncio.sleep(self.settings.poll_interval)
                continue

            await self._process(assignment)

        self.is_running = False
        return self.tasks_completed

    def stop(self):
        self.is_running = False

    async def _process(self, assignment: Assignment):
        self.logger.info(f"Starting {assignment.task_type} task {assignment.task_identity}")
        try:
            if asyncio.iscoroutinefunction(self.executor):
                result = self.executor(assignment)
            else:
                result = await asyncio.to_thread(self.executor, assignment)
            # Plain callables may still hand back a coroutine
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.tasks_failed += 1
            self.logger.error(f"{assignment.task_type} task {assignment.task_identity} failed: {e}")
            return

        if await self.master_client.report_task_complete(assignment.task_type, assignment.task_identity):
            self.tasks_completed += 1

    async def _job_done(self) -> bool:
        status = await self.master_client.get_job_status()
        return bool(status and status.get("done"))


def run_worker(
    executor: Executor,
    settings: Optional[WorkerSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Blocking entry point for a worker process. Returns the number of tasks completed."""
    settings = settings or get_settings()
    setup_logger(settings.log_level)

    async def main() -> int:
        async with MasterClient(settings, transport=transport) as client:
            return await WorkerLoop(client, executor, settings).run()

    return asyncio.run(main())
