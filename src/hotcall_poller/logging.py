"""
Structured logging configuration for the Hot Calls poller.

Uses structlog for structured, context-aware logging with:
- JSON output for production
- Pretty console output for development
- Per-stage timing
- Cycle ID and stage name propagation
"""

import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Generator

import structlog
from structlog.types import Processor

# Context variables for cycle-scoped data
_cycle_id: ContextVar[str | None] = ContextVar('cycle_id', default=None)
_stage: ContextVar[str | None] = ContextVar('stage', default=None)


def get_cycle_id() -> str | None:
    """Get the current cycle ID from context."""
    return _cycle_id.get()


def get_stage() -> str | None:
    """Get the name of the stage currently executing."""
    return _stage.get()


def add_context_info(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Processor that adds context variables to log entries."""
    cycle_id = get_cycle_id()
    stage = get_stage()

    if cycle_id:
        event_dict['cycle_id'] = cycle_id
    if stage:
        event_dict['stage'] = stage

    return event_dict


def configure_logging(
    json_output: bool = False,
    log_level: str | None = None,
) -> None:
    """
    Configure structlog for the application.

    Args:
        json_output: If True, output JSON logs (for production).
                    If False, output pretty console logs (for development).
        log_level: Log level name (defaults to INFO; the CLI passes the
                   LOG_LEVEL setting)
    """
    level = log_level or 'INFO'
    level_num = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format='%(message)s',
        stream=sys.stdout,
        level=level_num,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_info,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


@contextmanager
def logging_context(
    cycle_id: str | None = None,
    stage: str | None = None,
) -> Generator[None, None, None]:
    """
    Context manager for setting logging context variables.

    Usage:
        with logging_context(cycle_id="abc123", stage="merge_comments"):
            logger.info("stage.started")  # Includes cycle_id and stage
    """
    old_cycle = _cycle_id.get()
    old_stage = _stage.get()

    try:
        if cycle_id is not None:
            _cycle_id.set(cycle_id)
        if stage is not None:
            _stage.set(stage)
        yield
    finally:
        _cycle_id.set(old_cycle)
        _stage.set(old_stage)


class PipelineTimer:
    """
    Timer for tracking pipeline stage durations.

    Usage:
        timer = PipelineTimer()
        with timer.stage("extract_calls"):
            # do extraction
        print(timer.summary())
    """

    def __init__(self):
        self.stages: dict[str, float] = {}
        self.start_time: float = time.perf_counter()

    @contextmanager
    def stage(self, name: str) -> Generator[None, None, None]:
        """Time a pipeline stage."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.stages[name] = (time.perf_counter() - started) * 1000

    @property
    def total_ms(self) -> float:
        """Total elapsed time since timer creation in milliseconds."""
        return (time.perf_counter() - self.start_time) * 1000

    def summary(self) -> dict[str, Any]:
        """Get timing summary as a dictionary."""
        return {
            'total_ms': round(self.total_ms, 2),
            'stages': {k: round(v, 2) for k, v in self.stages.items()},
        }


# Initialize logging on module import (development mode by default)
# The CLI reconfigures from settings once they have validated
configure_logging(json_output=False)
