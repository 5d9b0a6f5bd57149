"""Structured logging configuration for the R2 dashboard"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

# Log directory lives inside the data directory
LOG_DIR = Path(os.getenv("R2DASH_DATA_DIR", Path.home() / ".r2dash")) / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Log file paths
MAIN_LOG = LOG_DIR / "r2dash.log"
ERROR_LOG = LOG_DIR / "error.log"
API_LOG = LOG_DIR / "api.log"
REFRESH_LOG = LOG_DIR / "refresh.log"


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through extra={"extra_data": {...}}
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data)


class ColoredFormatter(logging.Formatter):
    """Colored console formatter"""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        levelname = record.levelname
        record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = levelname


def setup_logger(
    name: str,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    use_json: bool = False,
    console: bool = True,
) -> logging.Logger:
    """
    Setup a logger with file and console handlers

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (default: main log)
        use_json: Use JSON formatter for file logs
        console: Enable console output
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers = []

    if log_file is None:
        log_file = MAIN_LOG

    file_handler = RotatingFileHandler(
        log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"  # 10MB
    )
    file_handler.setLevel(logging.DEBUG)

    if use_json:
        file_handler.setFormatter(JSONFormatter())
    else:
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(ColoredFormatter("%(levelname)s - %(message)s"))
        logger.addHandler(console_handler)

    error_handler = RotatingFileHandler(
        ERROR_LOG, maxBytes=10 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s\n"
            "%(pathname)s:%(lineno)d\n",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(error_handler)

    return logger


# Default loggers; children such as "r2dash.stats" propagate into these
main_logger = setup_logger("r2dash", level=os.getenv("R2DASH_LOG_LEVEL", "INFO"))
api_logger = setup_logger(
    "r2dash.api", level="INFO", log_file=API_LOG, console=False
)
refresh_logger = setup_logger(
    "r2dash.refresh", level="INFO", log_file=REFRESH_LOG, use_json=True, console=False
)


def get_logger(name: str = "r2dash") -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)


def log_refresh_start(trigger: str) -> None:
    """Log the start of a global refresh run"""
    refresh_logger.info(f"Starting global stats refresh (trigger: {trigger})")


def log_refresh_complete(summary: dict, duration: Optional[float] = None) -> None:
    """Log a finished global refresh run with its counters"""
    msg = (
        f"Refresh completed: {summary.get('totalUsers', 0)} users, "
        f"{summary.get('totalBuckets', 0)} buckets, "
        f"{summary.get('refreshedStats', 0)} refreshed, "
        f"{summary.get('errors', 0)} errors"
    )
    if duration:
        msg += f" in {duration:.2f}s"
    refresh_logger.info(msg, extra={"extra_data": summary})


def log_refresh_failure(error: str) -> None:
    """Log an aborted global refresh run"""
    refresh_logger.error(f"Refresh failed: {error}")
