"""
Structured Logging Configuration

Uses structlog for JSON-formatted logs with per-user context.

Features:
- JSON output (easily parseable by log aggregators)
- Console output for local development
- Context binding (user_id, operation) through contextvars
- Helpers for training runs and cache access
"""

import logging
import os
from contextlib import contextmanager
from typing import Optional

import structlog

# ==================== Configuration ====================

def configure_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None):
    """
    Configure structured logging for the host application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to LOG_LEVEL env var, then INFO.
        json_logs: If True, output JSON format. If False, use console format.
            Defaults to LOG_JSON env var, then True.
    """
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if json_logs is None:
        json_logs = os.getenv("LOG_JSON", "true").lower() == "true"

    if json_logs:
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer()
        ]
    else:
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
            structlog.dev.ConsoleRenderer()
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard library logging for third-party libs
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level),
        force=True,
    )


# ==================== Helper Functions ====================

def get_logger(name: str = None):
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("patterns_rebuilt", user_id="u-1", pattern_count=4)
    """
    return structlog.get_logger(name)


@contextmanager
def bind_user_context(**context):
    """
    Bind context (usually user_id) for every log line emitted inside the block.

    Usage:
        with bind_user_context(user_id="u-1", operation="generate_suggestions"):
            engine.generate_suggestions(...)
    """
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())


def log_training_run(
    examples: int,
    epochs: int,
    duration: float,
    final_loss: Optional[float] = None,
    skipped: int = 0
):
    """
    Log a completed neural network training pass.

    Usage:
        log_training_run(examples=120, epochs=100, duration=0.84, final_loss=1.92)
    """
    logger = structlog.get_logger("identity_engine.training")
    logger.info(
        "training_completed",
        examples=examples,
        epochs=epochs,
        duration_seconds=round(duration, 3),
        final_loss=round(final_loss, 4) if final_loss is not None else None,
        skipped_sessions=skipped
    )


def log_cache_access(cache: str, key: str, hit: bool, expired: bool = False):
    """
    Log a cache lookup.

    Usage:
        log_cache_access("suggestions", key="u-1:ab12", hit=False, expired=True)
    """
    logger = structlog.get_logger("identity_engine.cache")
    logger.debug(
        "cache_hit" if hit else "cache_miss",
        cache=cache,
        key=key,
        expired=expired
    )


def log_skipped_records(record_type: str, skipped: int, total: int, operation: str):
    """
    Log malformed input records that were dropped instead of raising.

    Usage:
        log_skipped_records("session", skipped=2, total=40, operation="analyze_sessions")
    """
    if not skipped:
        return
    logger = structlog.get_logger("identity_engine.validation")
    logger.warning(
        "records_skipped",
        record_type=record_type,
        skipped=skipped,
        total=total,
        operation=operation
    )


# ==================== Example Log Output ====================

"""
JSON Format (Production):
{
    "user_id": "u-1842",
    "timestamp": "2025-11-02T21:14:03.552114Z",
    "level": "info",
    "event": "training_completed",
    "examples": 118,
    "epochs": 100,
    "duration_seconds": 0.912,
    "final_loss": 1.6031,
    "skipped_sessions": 2
}

Console Format (Development):
2025-11-02 21:14:03 [info] training_completed user_id=u-1842 examples=118 epochs=100 duration_seconds=0.912
"""
