"""
Logging configuration for the Customer Portal API.

- Console output is colored and written directly
- File output goes through a QueueHandler so file I/O never blocks the
  event loop; a QueueListener thread writes the rotating files
- Every record carries the request correlation id
"""

import atexit
import logging
import logging.handlers
import queue
import sys
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from core.middleware.correlation import get_correlation_id

# Global queue listener for cleanup
_queue_listener: Optional[logging.handlers.QueueListener] = None


class LogConfig(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_file_logging: bool = True
    log_dir: str = "logs"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_console: bool = True


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    grey = "\x1b[38;21m"
    yellow = "\x1b[33;21m"
    red = "\x1b[31;21m"
    bold_red = "\x1b[31;1m"
    blue = "\x1b[34;21m"
    reset = "\x1b[0m"

    COLORS = {
        logging.DEBUG: grey,
        logging.INFO: blue,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def format(self, record):
        # Work on a copy so queued file handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, self.grey)
        record.levelname = f"{color}{record.levelname}{self.reset}"
        return f"{super().format(record)}{self.reset}"


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the current request's correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True


def _rotating_handler(path: Path, config: LogConfig, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config.max_file_size,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, config.level.upper()))
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[LogConfig] = None) -> None:
    """Setup application logging with configuration.

    Files:
    - app.log: everything at the configured level
    - servicem8.log: the ServiceM8 client and reconciliation services
    """
    global _queue_listener

    if config is None:
        config = LogConfig()

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None

    level = getattr(logging, config.level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    correlation_filter = CorrelationIdFilter()

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.addFilter(correlation_filter)
        console_handler.setFormatter(
            ColoredFormatter(
                fmt="%(asctime)s | %(name)s | %(levelname)s | %(correlation_id)s | %(message)s",
                datefmt=config.date_format,
            )
        )
        root_logger.addHandler(console_handler)

    if not config.enable_file_logging:
        return

    log_path = Path(config.log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    file_formatter = logging.Formatter(
        fmt="%(asctime)s | %(name)s | %(levelname)s | %(correlation_id)s | "
        "%(funcName)s:%(lineno)d | %(message)s",
        datefmt=config.date_format,
    )

    app_handler = _rotating_handler(log_path / "app.log", config, file_formatter)

    servicem8_handler = _rotating_handler(log_path / "servicem8.log", config, file_formatter)
    servicem8_handler.addFilter(
        lambda record: record.name.startswith(("services.servicem8_client", "api.services", "sync"))
    )

    # Correlation id must be captured on the request task, before queuing
    log_queue: queue.Queue = queue.Queue(-1)
    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.addFilter(correlation_filter)
    root_logger.addHandler(queue_handler)

    _queue_listener = logging.handlers.QueueListener(
        log_queue,
        app_handler,
        servicem8_handler,
        respect_handler_level=True,
    )
    _queue_listener.start()
    atexit.register(stop_queue_listener)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def stop_queue_listener() -> None:
    """Stop the queue listener gracefully.

    Called automatically on exit via atexit.
    Can also be called manually during shutdown.
    """
    global _queue_listener

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None


class SyncLogger:
    """Structured logger for reconciliation and two-phase write events."""

    def __init__(self, name: str = "bookings"):
        self.logger = logging.getLogger(f"sync.{name}")

    def cache_hit(self, customer_id, count: int) -> None:
        self.logger.debug(f"Booking cache hit | Customer ID: {customer_id} | Jobs: {count}")

    def cache_miss(self, customer_id) -> None:
        self.logger.debug(f"Booking cache miss | Customer ID: {customer_id}")

    def jobs_synced(self, customer_id, matched: int, total: int) -> None:
        self.logger.info(
            f"Bookings synced | Customer ID: {customer_id} | "
            f"Matched: {matched} of {total} ServiceM8 jobs"
        )

    def ownership_denied(self, job_uuid: str, job_company: Optional[str], customer_company: Optional[str]) -> None:
        self.logger.warning(
            f"Ownership check failed | Job: {job_uuid} | Job company: {job_company} | "
            f"Customer company: {customer_company}"
        )

    def partial_failure(self, operation: str, job_uuid: str, error: Exception) -> None:
        """Log a best-effort phase that failed after the authoritative write."""
        self.logger.warning(
            f"Recoverable inconsistency | Operation: {operation} | Job: {job_uuid} | Error: {error}"
        )
