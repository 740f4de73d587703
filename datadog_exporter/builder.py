"""Wiring of registry, recorder, exporter and scheduler."""
import logging
from typing import Optional, Tuple

import requests

from datadog_exporter.config import DataDogConfig
from datadog_exporter.exporter import DataDogExporter
from datadog_exporter.recorder import Recorder
from datadog_exporter.registry import Registry
from datadog_exporter.scheduler import FlushScheduler

logger = logging.getLogger(__name__)


def build(
    config: DataDogConfig,
    session: Optional[requests.Session] = None,
) -> Tuple[Recorder, DataDogExporter]:
    """Create a recorder and an exporter sharing a new registry."""
    registry = Registry()

    if config.write_to_api and session is None:
        session = requests.Session()

    exporter = DataDogExporter(registry, config, session=session)
    logger.info(
        f"Exporter built: api={config.write_to_api} stdout={config.write_to_stdout} "
        f"gzip={config.gzip} tags={list(config.tags)}"
    )
    return Recorder(registry), exporter


def install(
    config: DataDogConfig,
    session: Optional[requests.Session] = None,
) -> Tuple[Recorder, DataDogExporter, FlushScheduler]:
    """Build an exporter and start flushing it on the configured interval."""
    recorder, exporter = build(config, session=session)
    scheduler = FlushScheduler(exporter, config.flush_interval_s)
    scheduler.start()
    return recorder, exporter, scheduler
