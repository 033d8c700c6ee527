"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from vidsearch.config import settings

LOG_DIR = Path("logs")
LOG_DIR.mkdir(exist_ok=True)

# Remove default handler
logger.remove()

logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

logger.add(
    LOG_DIR / "vidsearch_{time:YYYY-MM-DD}.log",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
    rotation="00:00",
    retention="7 days",
    compression="zip",
)

# Reduce noise from framework/network libraries
for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "sse_starlette.sse",
    "httpx",
    "httpcore",
    "hpack",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def log_engine_call(
    engine: str,
    status: str,
    duration_ms: int = 0,
    results: int = 0,
    attempts: int = 1,
    error: Optional[str] = None,
) -> None:
    """Log the outcome of one engine call."""
    call_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "engine": engine,
        "status": status,
        "duration_ms": duration_ms,
        "results": results,
        "attempts": attempts,
        "error": error,
    }
    if error:
        logger.warning(f"ENGINE_CALL_FAILED: {call_data}")
    else:
        logger.info(f"ENGINE_CALL: {call_data}")


def log_search(
    query: str,
    engines: list[str],
    status: str,
    results: int = 0,
    engines_failed: Optional[list[str]] = None,
    duration_ms: int = 0,
) -> None:
    """Log a search session summary."""
    search_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "query": query[:100],
        "engines": len(engines),
        "engines_failed": engines_failed or [],
        "status": status,
        "results": results,
        "duration_ms": duration_ms,
    }
    logger.info(f"SEARCH: {search_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
