"""
Logging for the Batch Delivery Portal.

All portal loggers live under the "batch_portal" namespace and every line
names the thread that wrote it. Request handlers run on Flask worker
threads, cache revalidation on "QueryCache_N" threads:

    2026-10-17 10:15:31 [DEBUG   ] [QueryCache_0] batch_portal.services.query_cache - Fetching ('allCourses',)
    2026-10-17 10:15:32 [INFO    ] [Thread-3] batch_portal.services.delivery_order_service - Order 42 created

Production adds two rotating files: the full log and an ERROR-only log.
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "batch_portal"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class ThreadContextFilter(logging.Filter):
    """Stamps each record with the emitting thread's name."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        return True


def setup_logging(
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = False,
) -> logging.Logger:
    """
    Configure the "batch_portal" logger. Safe to call again (handlers are replaced).

    Args:
        log_level: Minimum level for console and main file
        log_dir: Where log files go (default: ./logs next to this file)
        enable_file_logging: Add the rotating portal and error logs

    Returns:
        The configured namespace logger
    """
    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    thread_filter = ThreadContextFilter()

    handlers = [(logging.StreamHandler(sys.stdout), log_level)]

    if enable_file_logging:
        log_dir = log_dir or Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        for filename, level in ((f"{APP_LOGGER_NAME}.log", log_level),
                                (f"{APP_LOGGER_NAME}_error.log", logging.ERROR)):
            handlers.append((
                RotatingFileHandler(
                    log_dir / filename,
                    maxBytes=MAX_LOG_BYTES,
                    backupCount=LOG_BACKUPS,
                    encoding="utf-8",
                ),
                level,
            ))

    for handler, level in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(thread_filter)
        logger.addHandler(handler)

    if enable_file_logging:
        logger.info(f"File logging enabled in {log_dir}")
    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Module logger under the portal namespace.

    get_logger("services.query_cache") -> "batch_portal.services.query_cache"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
