"""
Structured JSON logging for escrow tooling.

Escrow code logs through ``logging.getLogger(__name__)`` with a short message
and an ``extra={"event": "escrow.<name>", ...}`` payload. ``configure_logging``
turns a ``LoggingConfig`` section into JSON handlers on the package logger,
so every one of those payloads ends up as a flat JSON object.

Usage:
    manager = ConfigManager(environment="production")
    configure_logging(manager.logging, environment=manager.environment.value)
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pythonjsonlogger import jsonlogger

if TYPE_CHECKING:
    from vesting_escrow.config_manager import LoggingConfig

PACKAGE_LOGGER = "vesting_escrow"


class EscrowJsonFormatter(jsonlogger.JsonFormatter):
    """
    One JSON object per record.

    Every object carries ``timestamp``, ``level``, ``logger``, ``message``,
    ``environment`` and ``service``; records logged without an ``event``
    extra get ``event`` set to the logger name so they can still be grouped.
    """

    def __init__(self, environment: str, service: str = PACKAGE_LOGGER) -> None:
        super().__init__(fmt="%(message)s")
        self.environment = environment
        self.service = service

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("event", record.name)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname.lower()
        log_record["logger"] = record.name
        log_record["environment"] = self.environment
        log_record["service"] = self.service
        if record.levelno >= logging.WARNING:
            log_record["source"] = f"{record.module}:{record.funcName}:{record.lineno}"


def _build_handlers(settings: "LoggingConfig", console: bool) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if console and settings.enable_console_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if settings.enable_file_logging and settings.log_file:
        log_path = Path(settings.log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(
                logging.handlers.RotatingFileHandler(
                    filename=str(log_path),
                    maxBytes=settings.max_log_size,
                    backupCount=settings.backup_count,
                )
            )
        except OSError as exc:
            # Keep running on the remaining handlers
            logging.getLogger(__name__).warning("Cannot open log file %s: %s", log_path, exc)
    return handlers


def configure_logging(
    settings: "LoggingConfig",
    environment: str,
    console: bool = True,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """
    Apply a ``LoggingConfig`` section to the package logger.

    Existing handlers on that logger are closed and replaced, so calling this
    again (for instance after ``ConfigManager.reload``) never duplicates output.

    Args:
        settings: Logging section of the loaded configuration
        environment: Environment name written into every record
        console: Allow the stderr handler; the CLI turns it on with ``--verbose``
        logger_name: Logger to configure (defaults to the package logger)

    Returns:
        The configured logger
    """
    name = logger_name or PACKAGE_LOGGER
    logger = logging.getLogger(name)
    level = getattr(logging, settings.level.upper())
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = EscrowJsonFormatter(environment=environment, service=name.split(".")[0])
    for handler in _build_handlers(settings, console):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
