"""Structured logging configuration."""

import logging
import sys
from typing import Any, TextIO

import structlog


def _processors(json_format: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    return processors


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the process.

    Sets up structlog with JSON output format and standard processors
    for timestamps, log levels, and context binding. Clients built without
    their own logger log through this configuration.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    structlog.configure(
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging to use the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def build_logger(
    level: int = logging.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> Any:
    """Build a standalone logger with its own level and sink.

    Unlike ``configure_logging`` this leaves the global structlog
    configuration alone, so several clients can log at different levels.

    Args:
        level: Minimum level emitted.
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).

    Returns:
        Bound logger instance.
    """
    return structlog.wrap_logger(
        structlog.PrintLogger(file=output or sys.stderr),
        processors=_processors(json_format),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def parse_log_level(value: str | int) -> int:
    """Convert a level name such as "debug" or a number to a logging level.

    Raises:
        ValueError: If the name is not a known level.
    """
    if isinstance(value, int):
        return value
    level = logging.getLevelNamesMapping().get(value.strip().upper())
    if level is None:
        msg = f"Unknown log level: {value}"
        raise ValueError(msg)
    return level
