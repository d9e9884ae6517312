"""
Logging configuration for the library core.

Modules obtain their logger with ``get_logger(__name__)``. Handlers are
attached once, to the package logger, by ``setup_logging``.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

PACKAGE_LOGGER = "biblioteca"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger for ``name``.

    Names outside the package are nested under it so that a single
    ``setup_logging`` call controls every module.
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(
    level: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    file_enabled: bool = True,
    console_enabled: bool = True,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the rotating log file
        file_enabled: Whether to write ``biblioteca.log`` under ``log_dir``
        console_enabled: Whether to log to stdout
        fmt: Format for console output

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logger.setLevel(log_level)

    # Already configured, only the level may change
    if logger.handlers:
        return logger

    if console_enabled:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(fmt))
        console_handler.setLevel(log_level)
        logger.addHandler(console_handler)

    if file_enabled and log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / f"{PACKAGE_LOGGER}.log",
            maxBytes=10485760,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger
