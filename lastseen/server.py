"""
HTTP trigger surface for the lastseen tracker.

``GET /`` acknowledges immediately and starts one run in the background,
``GET /ping`` is a liveness check and ``GET /status`` reports the most
recent run held in memory.
"""

from typing import Callable, Optional

import uvicorn
from fastapi import BackgroundTasks, FastAPI
from fastapi.responses import PlainTextResponse

from lastseen.config import get_settings
from lastseen.models import RunReport
from lastseen.pipeline import LastSeenPipeline, create_pipeline
from lastseen.utils.errors import LastSeenException
from lastseen.utils.logging import get_logger, logging_configured, setup_logging

logger = get_logger(__name__)

STARTED_MESSAGE = "✅ Task started. Check the Google Sheet for updates!"
BUSY_MESSAGE = "⏳ A run is already in progress. Check the Google Sheet for updates!"
PONG_MESSAGE = "Pong ✅"


class RunManager:
    """Start runs one at a time and remember the latest report."""

    def __init__(self, pipeline_factory: Callable[[], LastSeenPipeline] = create_pipeline) -> None:
        self.pipeline_factory = pipeline_factory
        self.running = False
        self.last_report: Optional[RunReport] = None

    def try_begin(self) -> bool:
        """Reserve the run slot; False if a run is already active."""
        if self.running:
            return False
        self.running = True
        return True

    async def execute(self) -> None:
        """Run one pipeline; failures are logged, never raised to the server."""
        pipeline: Optional[LastSeenPipeline] = None
        try:
            pipeline = self.pipeline_factory()
            self.last_report = await pipeline.run()
        except LastSeenException as e:
            logger.error(f"💥 Run aborted: {e}")
        except Exception:
            logger.exception("💥 Uncaught error during run")
        finally:
            if pipeline is not None and pipeline.last_report is not None:
                self.last_report = pipeline.last_report
            self.running = False


def create_app(run_manager: Optional[RunManager] = None) -> FastAPI:
    """Create the FastAPI application."""
    manager = run_manager or RunManager()
    app = FastAPI(title="lastseen tracker")
    app.state.run_manager = manager

    @app.get("/", response_class=PlainTextResponse)
    async def trigger(background_tasks: BackgroundTasks) -> str:
        """Start a run and acknowledge immediately."""
        if not manager.try_begin():
            logger.info("Run requested while another is in progress")
            return BUSY_MESSAGE
        background_tasks.add_task(manager.execute)
        return STARTED_MESSAGE

    @app.get("/ping", response_class=PlainTextResponse)
    async def ping() -> str:
        return PONG_MESSAGE

    @app.get("/status")
    async def status() -> dict:
        """Latest run report, or idle if nothing has run yet."""
        if manager.last_report is None:
            return {"status": "running" if manager.running else "idle"}
        return manager.last_report.model_dump(mode="json", exclude={"results"}) | {
            "results": manager.last_report.rendered(),
        }

    return app


def serve(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the trigger server with uvicorn."""
    if not logging_configured():
        setup_logging()
    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    logger.info(f"🚀 Server running on port {port}")
    uvicorn.run(create_app(), host=host, port=port, log_config=None)
