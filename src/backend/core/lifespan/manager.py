"""
Application lifespan manager.

This module provides the lifespan context manager that handles
startup and shutdown events for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.config import settings
from core.logging_config import LogConfig, stop_queue_listener
from . import tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    log_config = LogConfig(**settings.logging.log_config)
    await tasks.initialize_logging(settings, log_config)

    logger = logging.getLogger("main")

    await tasks.log_cors_configuration(settings, logger)
    await tasks.initialize_database()
    await tasks.initialize_services(app, settings)
    await tasks.start_background_scheduler()

    yield

    logger.info(f"Shutting down {settings.api.app_name}...")

    await tasks.shutdown_scheduler_task()
    await tasks.shutdown_servicem8_client(app)
    await tasks.shutdown_database()

    # Last, so the shutdown messages above are flushed
    stop_queue_listener()
