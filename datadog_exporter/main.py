"""Main entry point for the metrics exporter."""
import argparse
import json
import logging
import sys
import signal
import threading

from datadog_exporter.builder import build, install
from datadog_exporter.config import load_config
from datadog_exporter.control_api import ControlAPI
from datadog_exporter.errors import ExporterError, SchedulerError


class JsonFormatter(logging.Formatter):
    """One JSON object per record; tracebacks go in the ``exc_info`` field."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    datefmt = "%Y-%m-%d %H:%M:%S"

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter(datefmt=datefmt))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt=datefmt
        ))

    logging.basicConfig(level=level, handlers=[handler])

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv=None):
    """Main function."""
    parser = argparse.ArgumentParser(
        description="DataDog Metrics Exporter - Ship in-process metrics to the metrics API"
    )
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Flush a single time and exit"
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    # Setup logging
    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"API host: {config.datadog.api_host}")
    logger.info(f"Flush interval: {config.datadog.flush_interval_s}s")

    if args.once:
        _, exporter = build(config.datadog)
        try:
            exporter.flush()
        except ExporterError as e:
            logger.error(f"Flush failed: {e}")
            return 1
        return 0

    try:
        _, exporter, scheduler = install(config.datadog)
    except SchedulerError as e:
        logger.error(f"Failed to start scheduler: {e}")
        return 1

    stopped = threading.Event()

    # Setup signal handlers
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        scheduler.stop(timeout=config.datadog.request_timeout_s)
        stopped.set()
        if config.global_.control_api_enabled:
            sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if config.global_.control_api_enabled:
        control_api = ControlAPI(exporter, scheduler)
        logger.info(f"Starting control API on port {config.global_.control_api_port}")
        try:
            control_api.run(
                host="0.0.0.0",
                port=config.global_.control_api_port
            )
        except Exception as e:
            logger.error(f"Control API error: {e}", exc_info=True)
            scheduler.stop()
            return 1
    else:
        stopped.wait()

    return 0


if __name__ == "__main__":
    sys.exit(main())
