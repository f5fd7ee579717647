"""
Logging configuration for the sensor telemetry ingestion service.

One root configuration is shared by the ingress, the consumer and the CLI.
uvicorn runs with ``log_config=None``, so its loggers propagate here too.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .exceptions import ConfigurationError

# Per-request loggers of the HTTP stack; they follow the root level only at DEBUG.
REQUEST_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    return value


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    include_timestamp: bool = True
) -> None:
    """
    Set up logging for the service.

    Args:
        level: Root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file that receives the same records as stdout
        include_timestamp: Whether to include timestamps in log messages

    Raises:
        ConfigurationError: If ``level`` is not a logging level name
    """
    root_level = _resolve_level(level)
    fmt = '%(name)s - %(levelname)s - %(message)s'
    if include_timestamp:
        fmt = '%(asctime)s - ' + fmt
    formatter = logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S')

    root = logging.getLogger()
    root.setLevel(root_level)
    root.handlers.clear()

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    request_level = logging.DEBUG if root_level <= logging.DEBUG else logging.WARNING
    for name in REQUEST_LOGGERS:
        logging.getLogger(name).setLevel(request_level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; configuration comes from ``setup_logging``."""
    return logging.getLogger(name)
