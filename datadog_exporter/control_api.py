"""Control API for runtime management using FastAPI."""
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import logging
import time

from datadog_exporter.errors import ExporterError

logger = logging.getLogger(__name__)


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class ControlAPI:
    """FastAPI-based control API for runtime management."""

    def __init__(self, exporter, scheduler=None):
        """
        Initialize control API.

        Args:
            exporter: The exporter to report on and flush
            scheduler: Optional scheduler driving the exporter
        """
        self.exporter = exporter
        self.scheduler = scheduler
        self.start_time = time.time()
        self.app = FastAPI(title="DataDog Metrics Exporter Control API")

        # Setup routes
        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/status")
        async def status():
            """Get current exporter status."""
            config = self.exporter.config
            scheduler = self.scheduler
            return {
                "uptime_seconds": time.time() - self.start_time,
                "flush_count": self.exporter.flush_count,
                "error_count": self.exporter.error_count,
                "last_flush_at": self.exporter.last_flush_at,
                "last_metric_count": self.exporter.last_metric_count,
                "last_error": self.exporter.last_error,
                "registered_instruments": len(self.exporter.registry),
                "scheduler": {
                    "running": scheduler.is_running if scheduler else False,
                    "tick_count": scheduler.tick_count if scheduler else 0,
                    "failed_ticks": scheduler.failed_ticks if scheduler else 0,
                },
                "config": {
                    "api_host": config.api_host,
                    "write_to_api": config.write_to_api,
                    "write_to_stdout": config.write_to_stdout,
                    "gzip": config.gzip,
                    "flush_interval_s": config.flush_interval_s,
                    "tags": config.tags,
                },
            }

        @self.app.post("/control/flush")
        def flush():
            """Flush immediately, reporting any failure to the caller."""
            try:
                self.exporter.flush()
            except ExporterError as e:
                logger.error(f"Manual flush failed: {e}")
                raise HTTPException(status_code=502, detail=str(e))

            return {
                "status": "flushed",
                "metrics": self.exporter.last_metric_count,
                "timestamp": time.time(),
            }

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

    def run(self, host: str = "0.0.0.0", port: int = 8081):
        """Run the API server."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="info")
