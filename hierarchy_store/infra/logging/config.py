"""Logging configuration setup.

Builds a dictConfig dictionary from LoggingSettings:
- console handler on stderr (text or JSONL)
- optional rotating file handler
- all handlers on the root logger; package loggers propagate up
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import TYPE_CHECKING, Any

logger = logging.getLogger(__name__)
_LOGGING_INITIALIZED = False

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

if TYPE_CHECKING:
    from hierarchy_store.core.settings.logs import LoggingSettings


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    **configure_kwargs: Any,
) -> None:
    """Ensure logging is configured once across entrypoints.

    Args:
        log_settings: Optional logging settings instance. If omitted, settings
            are loaded via get_logging_settings().
        force: Reconfigure logging even if it was already initialized.
        **configure_kwargs: Explicit overrides for configure_logging().
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    settings_obj = log_settings
    if settings_obj is None:
        from hierarchy_store.core.settings import get_logging_settings

        settings_obj = get_logging_settings()

    log_config = settings_obj.to_logging_kwargs()
    if configure_kwargs:
        log_config = {**log_config, **configure_kwargs}

    configure_logging(**log_config)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    file_path: str | Path | None = None,
    json_logs: bool = False,
    console_enabled: bool = True,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    capture_warnings: bool = True,
) -> None:
    """Configure the root logger with logging.config.dictConfig.

    Args:
        log_level: Root logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file_path: Path to log file. None disables file logging.
        json_logs: Emit JSONL instead of human-readable text.
        console_enabled: Attach a stderr handler.
        file_max_bytes: Max file size before rotation.
        file_backup_count: Number of rotated files to keep.
        capture_warnings: Route ``warnings`` through logging.

    Example:
        from hierarchy_store.core.settings import get_logging_settings
        configure_logging(**get_logging_settings().to_logging_kwargs())
    """
    path = Path(file_path) if file_path else None
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(
        build_logging_config(
            log_level=log_level,
            file_path=path,
            json_logs=json_logs,
            console_enabled=console_enabled,
            file_max_bytes=file_max_bytes,
            file_backup_count=file_backup_count,
        )
    )
    logging.captureWarnings(capture_warnings)
    logger.debug(
        "Logging configured",
        extra={"json_logs": json_logs, "log_file": str(path) if path else None},
    )


def build_logging_config(
    log_level: str,
    file_path: Path | None,
    json_logs: bool,
    console_enabled: bool,
    file_max_bytes: int,
    file_backup_count: int,
) -> dict[str, Any]:
    """Build the dictConfig dictionary.

    Returns:
        Logging configuration accepted by logging.config.dictConfig.
    """
    formatter = "json" if json_logs else "text"
    formatters: dict[str, Any] = {
        "text": {"format": TEXT_FORMAT, "datefmt": DATE_FORMAT},
        "json": {
            "()": "hierarchy_store.infra.logging.formatters.JSONFormatter",
            "static": {"service": "hierarchy-store"},
        },
    }

    handlers: dict[str, Any] = {}
    if console_enabled:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stderr",
        }
    if file_path is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": formatter,
            "filename": str(file_path),
            "maxBytes": file_max_bytes,
            "backupCount": file_backup_count,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "root": {
            "level": log_level.upper(),
            "handlers": list(handlers),
        },
        "loggers": {
            # engine echo is controlled by DatabaseSettings.echo
            "sqlalchemy.engine": {"level": "WARNING"},
            "aiosqlite": {"level": "WARNING"},
        },
    }
