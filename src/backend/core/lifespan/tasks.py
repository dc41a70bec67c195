"""
Lifespan startup and shutdown task functions.

This module contains individual task functions for application startup
and shutdown sequences. Each function handles a specific responsibility.
"""

import logging

from fastapi import FastAPI


async def initialize_logging(settings, log_config):
    """Setup logging configuration."""
    from core.logging_config import setup_logging

    logger = logging.getLogger("main")
    setup_logging(log_config)
    logger.info(f"Starting {settings.api.app_name} ({settings.api.environment})")


async def log_cors_configuration(settings, logger):
    """Log CORS configuration for debugging."""
    logger.info(f"CORS allowed origins: {settings.cors.origins}")


async def initialize_database():
    """Create tables that do not exist yet."""
    from core.database import init_db

    logger = logging.getLogger("main")
    await init_db()
    logger.info("Database initialized")


async def initialize_services(app: FastAPI, settings):
    """Build the ServiceM8 client and the domain services onto app.state."""
    from api.services.auth_service import AuthService
    from api.services.booking_service import BookingService
    from api.services.job_service import JobService
    from api.services.message_service import MessageService
    from api.services.ownership_guard import OwnershipGuard
    from services.servicem8_client import ServiceM8Client

    logger = logging.getLogger("main")

    client = ServiceM8Client.from_settings(settings.servicem8)
    guard = OwnershipGuard(client)
    message_service = MessageService(guard, settings.messages)

    app.state.servicem8_client = client
    app.state.ownership_guard = guard
    app.state.message_service = message_service
    app.state.booking_service = BookingService(client, guard, settings.booking)
    app.state.job_service = JobService(client, guard, message_service)
    app.state.auth_service = AuthService(client)

    logger.info(f"ServiceM8 client ready ({settings.servicem8.base_url})")


async def start_background_scheduler():
    """Start background scheduler for periodic tasks."""
    from core.scheduler import start_scheduler

    logger = logging.getLogger("main")
    try:
        start_scheduler()
    except Exception as e:
        logger.warning(f"Background scheduler failed to start: {e}")


async def shutdown_scheduler_task():
    """Shutdown background scheduler."""
    from core.scheduler import shutdown_scheduler

    shutdown_scheduler()


async def shutdown_servicem8_client(app: FastAPI):
    """Close the pooled ServiceM8 HTTP client."""
    client = getattr(app.state, "servicem8_client", None)
    if client is not None:
        await client.close()
        logging.getLogger("main").info("ServiceM8 client closed")


async def shutdown_database():
    """Dispose of the database engine."""
    from core.database import close_db

    await close_db()
    logging.getLogger("main").info("Database connections closed")
