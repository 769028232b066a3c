"""
Logging Configuration Module.

All pipeline loggers hang off the ``cmr_notes`` logger, which owns the
console and file handlers. Records carry a ``page`` field ("scan.pdf
p2/4" while a page task is being handled, "-" otherwise) so concurrent
page logs stay readable.

Usage:
    from cmr_notes.utils.logger import get_logger, page_logger

    logger = get_logger(__name__)
    logger.info("Run started")

    log = page_logger(logger, task)
    log.info("3 notes returned")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional, Union

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "cmr_notes"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(page)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_PAGE = "-"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the whole console line by level."""

    COLORS = {
        logging.DEBUG: Fore.CYAN,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, '')
        return f"{color}{super().format(record)}{Style.RESET_ALL}"


class PageContextFilter(logging.Filter):
    """
    Gives every record a ``page`` attribute.

    Records logged through page_logger() already carry one; all others
    get NO_PAGE so the format string never fails.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'page'):
            record.page = NO_PAGE
        return True


class PageLoggerAdapter(logging.LoggerAdapter):
    """Adapter that stamps records with the page being handled."""

    def process(self, msg: Any, kwargs: Any):
        extra = dict(kwargs.get('extra') or {})
        extra.setdefault('page', self.extra['page'])
        kwargs['extra'] = extra
        return msg, kwargs


def page_logger(logger: logging.Logger, page: Any) -> PageLoggerAdapter:
    """
    Wrap a logger so its records name a page.

    Args:
        logger: Module logger.
        page: Page task (or any object whose str() names the page).

    Returns:
        Adapter logging through ``logger``.
    """
    return PageLoggerAdapter(logger, {'page': str(page)})


def _to_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper())


def _console_handler(level: int, log_format: str, date_format: str, colorize: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    formatter_class = ColoredFormatter if colorize else logging.Formatter
    handler.setFormatter(formatter_class(log_format, datefmt=date_format))
    handler.addFilter(PageContextFilter())
    return handler


def _file_handler(
    log_file: str,
    level: int,
    log_format: str,
    date_format: str,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    handler.addFilter(PageContextFilter())
    return handler


def setup_logger(
    level: Union[str, int] = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,  # 10 MB
    backup_count: int = 5,
    colorize: bool = True
) -> logging.Logger:
    """
    Configure the ``cmr_notes`` logger.

    Calling it again replaces the previous handlers.

    Args:
        level: Logging level name or number.
        log_format: Format string; may use ``%(page)s``.
        date_format: Date format string.
        log_file: Rotating log file path. If None, logs go to stderr only.
        max_bytes: Size at which the log file rotates.
        backup_count: Rotated files to keep.
        colorize: Whether to color console output.

    Returns:
        The configured package logger.
    """
    numeric_level = _to_level(level)
    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.handlers.clear()
    package_logger.propagate = False

    package_logger.addHandler(_console_handler(numeric_level, log_format, date_format, colorize))
    if log_file:
        package_logger.addHandler(
            _file_handler(log_file, numeric_level, log_format, date_format, max_bytes, backup_count)
        )

    package_logger.debug(f"Logging initialized (level={logging.getLevelName(numeric_level)})")
    return package_logger


def set_level(level: Union[str, int]) -> None:
    """Change the level of the package logger and all its handlers."""
    numeric_level = _to_level(level)
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(numeric_level)
    for handler in package_logger.handlers:
        handler.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger for a module, nested under the package logger.

    Example:
        >>> get_logger("cmr_notes.pipeline.scheduler").name
        'cmr_notes.pipeline.scheduler'
        >>> get_logger("scratch").name
        'cmr_notes.scratch'
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Configure logging from the ``logging`` section of the settings."""
    from cmr_notes.config import get_config

    log_file = None
    if get_config("logging.file.enabled", False):
        log_file = get_config("logging.file.path")

    return setup_logger(
        level=get_config("logging.level", "INFO"),
        log_format=get_config("logging.format"),
        date_format=get_config("logging.date_format"),
        log_file=log_file,
        max_bytes=get_config("logging.file.max_bytes", 10485760),
        backup_count=get_config("logging.file.backup_count", 5),
        colorize=get_config("logging.console.colorize", True)
    )
