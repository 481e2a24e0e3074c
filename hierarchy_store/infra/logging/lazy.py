"""Lazy evaluation support for logging.

Debug output from the tree algorithms (row counts, interval dumps) is only
built when the level is enabled, so hot paths pay nothing in production.
"""

from __future__ import annotations

import logging
from typing import Any


class LazyLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that evaluates callable messages and args on demand.

    Example:
        ```python
        logger = LazyLoggerAdapter(logging.getLogger(__name__))
        logger.debug(lambda: f"Intervals: {dump_positions()}")
        # dump_positions() only runs if DEBUG is enabled
        ```
    """

    def log(
        self,
        level: int,
        msg: Any,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Log message with lazy evaluation support.

        Args:
            level: Numeric log level (e.g., logging.DEBUG).
            msg: Log message or callable returning message.
            *args: Format arguments (may include callables).
            **kwargs: Additional kwargs for logging.
        """
        if not self.isEnabledFor(level):
            return

        if callable(msg):
            msg = msg()
        if args:
            args = tuple(arg() if callable(arg) else arg for arg in args)

        super().log(level, msg, *args, **kwargs)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        """Merge bound context under any per-call ``extra``."""
        kwargs["extra"] = {**(self.extra or {}), **kwargs.get("extra", {})}
        return msg, kwargs

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)


def get_lazy_logger(name: str, **context: Any) -> LazyLoggerAdapter:
    """Get logger with lazy evaluation support.

    Args:
        name: Logger name (usually __name__).
        **context: Optional context bound to every record as ``extra``.

    Returns:
        Logger adapter with lazy evaluation support.

    Example:
        ```python
        logger = get_lazy_logger(__name__, table="categories")
        logger.debug(lambda: f"Positions: {len(positions)}")
        ```
    """
    return LazyLoggerAdapter(logging.getLogger(name), context)
