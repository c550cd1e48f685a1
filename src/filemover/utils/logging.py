"""
Logging configuration for FileMover.

Console output through Rich (or a plain formatter) plus optional file output.
"""

import logging
import sys
import threading
import traceback
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "filemover"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        result = super().format(record)
        if record.exc_info and not record.exc_text:
            result += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return result


class PlainFormatter(logging.Formatter):
    """'level: timestamp - msg', with file:line added for errors."""

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        prefix = f"{record.levelname}: {self.formatTime(record)}"
        if record.levelno >= logging.ERROR and record.pathname:
            prefix += f" - {Path(record.pathname).name}:{record.lineno}"
        result = f"{prefix} - {record.getMessage()}"
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level.upper() in LEVEL_MAP:
        return LEVEL_MAP[level.upper()]
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    file_mode: str = "a",
    console: Console | None = None,
    console_enabled: bool = True,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Setup logging for the filemover logger namespace.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int
        log_file: Optional file path to write logs to
        format_string: Optional custom format string for the plain console handler
        file_mode: 'a' to append, 'w' to overwrite
        console: Optional Rich Console for the RichHandler
        console_enabled: Whether to log to the console at all
        use_rich: Use RichHandler instead of the plain formatter

    Returns:
        The configured "filemover" logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich:
            handler: logging.Handler = RichHandler(
                level=level_int,
                console=console or Console(stderr=True),
                show_time=True,
                show_path=True,
                markup=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                log_time_format="[%X]",
                omit_repeated_times=False,
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(level_int)
            handler.setFormatter(logging.Formatter(format_string) if format_string else PlainFormatter())
        logger.addHandler(handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode=file_mode)
        # File captures everything the logger lets through
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: dict[str, Any], project_dir: Path | None = None) -> logging.Logger:
    """
    Setup logging from the 'logging' section of the configuration.

    Recognised keys: level, file, file_enabled, file_mode, format,
    console_enabled, console_type ("rich" or "plain").
    """
    logging_config = config.get("logging", {}) or {}

    log_file = None
    if logging_config.get("file_enabled", False):
        log_file = logging_config.get("file") or "logs/filemover.log"
        if project_dir and not Path(log_file).is_absolute():
            log_file = project_dir / log_file

    console_enabled = logging_config.get("console_enabled", True)
    return setup_logging(
        level=logging_config.get("level", logging.INFO),
        log_file=log_file,
        format_string=logging_config.get("format"),
        file_mode=logging_config.get("file_mode", "a"),
        console_enabled=console_enabled,
        use_rich=logging_config.get("console_type", "rich") == "rich",
    )


_logging_setup_done = False
_logging_setup_lock = threading.Lock()


def _auto_setup_logging() -> None:
    """Configure logging from the global config the first time a logger is requested."""
    global _logging_setup_done

    if _logging_setup_done:
        return

    with _logging_setup_lock:
        if _logging_setup_done:
            return
        if logging.getLogger(ROOT_LOGGER).handlers:
            _logging_setup_done = True
            return

        from filemover.config.singleton import get_config

        config_obj = get_config()
        if config_obj is not None:
            setup_logging_from_config(config_obj.data)
            _logging_setup_done = True


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a logger instance.

    Sets up logging from the global config if that has not happened yet.

    Args:
        name: Logger name (default: "filemover")
    """
    _auto_setup_logging()
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
