"""Logging infrastructure.

Standard library logging configured through dictConfig, with:
- JSONL output for log aggregation (opt-in via LOG_JSON_LOGS)
- OpenTelemetry trace correlation in JSON records
- Lazy evaluation for expensive debug messages

Basic usage:
    import logging

    logger = logging.getLogger(__name__)
    logger.info("Tree rebuilt", extra={"table": "categories"})

    from hierarchy_store.infra.logging import get_lazy_logger

    lazy_logger = get_lazy_logger(__name__)
    lazy_logger.debug(lambda: f"Positions: {dump()}")  # Only runs if DEBUG enabled
"""

from hierarchy_store.infra.logging.config import (
    build_logging_config,
    configure_logging,
    setup_logging,
)
from hierarchy_store.infra.logging.formatters import JSONFormatter
from hierarchy_store.infra.logging.lazy import LazyLoggerAdapter, get_lazy_logger

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "build_logging_config",
    "configure_logging",
    "get_lazy_logger",
    "setup_logging",
]
