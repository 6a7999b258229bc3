"""
Centralized logging configuration for NK2 Extractor.

Console output goes to stderr, optionally colored by level; when a log file
is configured, records are also written to a rotating file as JSON lines.
"""
import json
import logging
import logging.config
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from typing_extensions import Literal

# Type aliases
LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

PACKAGE_LOGGER = 'nk2_extractor'
CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs logs in JSON format."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        log_record = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'name': record.name,
            'message': record.getMessage(),
            'pathname': record.pathname,
            'lineno': record.lineno,
            'funcName': record.funcName,
            'process': record.process,
            'thread': record.thread,
        }

        # Add exception info if present
        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False)


class ColoredFormatter(logging.Formatter):
    """Formatter that adds ANSI colors to the level name."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[41m',  # Red background
        'RESET': '\033[0m'
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        original = record.levelname
        record.levelname = f"{color}{original}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    log_level: Union[LogLevel, str, int] = 'INFO',
    log_file: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    colored: Optional[bool] = None
) -> Dict[str, Any]:
    """
    Configure the logging system.

    Args:
        log_level: The log level as string or int
        log_file: Path to the log file, None to log to the console only
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
        colored: Color console output, defaults to whether stderr is a terminal

    Returns:
        Dict containing the logging configuration
    """
    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    if colored is None:
        colored = hasattr(sys.stderr, 'isatty') and sys.stderr.isatty()

    handlers = ['console']
    config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': f'{__name__}.JSONFormatter',
            },
            'console': {
                'format': CONSOLE_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S',
            },
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': 'console',
                'stream': 'ext://sys.stderr',
            },
        },
        'loggers': {
            PACKAGE_LOGGER: {
                'level': log_level,
                'handlers': handlers,
                'propagate': False,
            },
        },
        'root': {
            'level': 'WARNING',
            'handlers': handlers,
        },
    }

    if log_file:
        log_file = str(Path(log_file).resolve())
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        config['handlers']['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'level': log_level,
            'formatter': 'json',
            'filename': log_file,
            'maxBytes': max_bytes,
            'backupCount': backup_count,
            'encoding': 'utf-8',
        }
        handlers.append('file')

    if colored:
        config['formatters']['console'] = {
            '()': f'{__name__}.ColoredFormatter',
            'fmt': CONSOLE_FORMAT,
            'datefmt': '%Y-%m-%d %H:%M:%S',
        }

    logging.config.dictConfig(config)

    def handle_exception(exc_type, exc_value, exc_traceback):
        """Handle uncaught exceptions and log them."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger = logging.getLogger(PACKAGE_LOGGER)
        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = handle_exception

    return config


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: The name of the logger. If None, returns the root logger.

    Returns:
        A configured Logger instance
    """
    if name is None:
        return logging.getLogger()

    # Ensure the logger is under our package namespace
    if not name.startswith(PACKAGE_LOGGER):
        name = f'{PACKAGE_LOGGER}.{name}'

    return logging.getLogger(name)


class LogErrors:
    """Context manager for logging exceptions."""

    def __init__(self, logger: logging.Logger, message: str, *args, **kwargs):
        self.logger = logger
        self.message = message
        self.args = args
        self.kwargs = kwargs

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_val is not None:
            self.logger.error(
                f"{self.message} - {exc_val}",
                *self.args,
                exc_info=(exc_type, exc_val, exc_tb),
                **self.kwargs
            )
        return False  # Don't suppress the exception
