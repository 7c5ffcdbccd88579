"""Observability module for logging."""

from src.features.observability.logging import (
    build_logger,
    configure_logging,
    get_logger,
    parse_log_level,
)


__all__ = [
    "build_logger",
    "configure_logging",
    "get_logger",
    "parse_log_level",
]
