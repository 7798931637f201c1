import argparse
import sys
import threading
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from mrmaster.api.routes import router
from mrmaster.core.coordinator import Coordinator, create_coordinator
from mrmaster.core.errors import InvariantViolation
from mrmaster.utils.config import get_settings
from mrmaster.utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


def create_app(coordinator: Coordinator) -> FastAPI:
    """
    Build the FastAPI application serving the worker RPC surface.

    The coordinator is attached to `app.state` and its pending watchdogs
    are cancelled on shutdown.

    Args:
        coordinator (Coordinator): Engine the routes delegate to.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup phase
        logger.info("mrmaster coordinator starting up...")
        yield
        # Shutdown phase
        coordinator.close()
        logger.info("mrmaster coordinator shutting down...")

    app = FastAPI(
        title="mrmaster Coordinator",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.coordinator = coordinator

    @app.exception_handler(InvariantViolation)
    async def invariant_violation_handler(request: Request, exc: InvariantViolation):
        coordinator.fault = exc
        logger.critical(f"Coordinator state is inconsistent: {exc}")
        return JSONResponse(status_code=500, content={"detail": "coordinator fault"})

    # Register API routes under versioned prefix
    app.include_router(router, prefix="/api/v1")
    return app


def wait_for_job(
    coordinator: Coordinator,
    server: uvicorn.Server,
    poll_interval: float,
    grace: float,
    server_thread: Optional[threading.Thread] = None,
) -> int:
    """
    Poll the coordinator until the job is done or faulted, then stop the server.

    A server thread that ended on its own (a failed bind, for instance)
    also ends the wait, since no worker can reach the coordinator anymore.

    Returns:
        int: Process exit status.
    """
    while not coordinator.is_job_done():
        if coordinator.fault is not None:
            logger.critical("Stopping after internal fault")
            server.should_exit = True
            return 1
        if server.should_exit or (server_thread is not None and not server_thread.is_alive()):
            logger.warning("Server stopped before the job finished")
            return 1
        time.sleep(poll_interval)

    logger.info("MapReduce job completed successfully")
    # Give workers a moment to observe the finished job
    time.sleep(grace)
    server.should_exit = True
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="MapReduce coordinator")
    parser.add_argument("input_files", nargs="+", help="Input splits, one map task each")
    parser.add_argument("--n-reduce", type=int, default=settings.n_reduce, help="Number of reduce tasks")
    parser.add_argument("--task-timeout", type=float, default=settings.task_timeout_seconds,
                        help="Seconds before an in-progress task is handed out again")
    parser.add_argument("--host", default=settings.host, help="Bind address")
    parser.add_argument("--port", type=int, default=settings.port, help="Bind port")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    setup_logger(settings.log_level)
    args = parse_args(argv)

    coordinator = create_coordinator(args.input_files, args.n_reduce, task_timeout=args.task_timeout)
    app = create_app(coordinator)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=args.host,
        port=args.port,
        log_level=settings.log_level,
    ))

    server_thread = threading.Thread(target=server.run, daemon=True)
    server_thread.start()
    logger.info(
        f"Coordinator serving {len(args.input_files)} input files and "
        f"{args.n_reduce} reduce tasks on {args.host}:{args.port}"
    )

    try:
        exit_code = wait_for_job(
            coordinator,
            server,
            settings.done_poll_interval,
            settings.shutdown_grace_seconds,
            server_thread=server_thread,
        )
    except KeyboardInterrupt:
        logger.info("Coordinator interrupted")
        server.should_exit = True
        exit_code = 1

    server_thread.join()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
