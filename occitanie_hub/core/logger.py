"""
Quality standard: Structured logging.
Reason: A single `log` object shared by the whole application. Records from
the libraries that log through the standard `logging` module (uvicorn,
APScheduler, httpx) are forwarded to the same sinks, so a failed scheduled
refresh ends up in app.log next to the aggregation report.
"""
import logging
import sys
from pathlib import Path

from loguru import logger

from occitanie_hub.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} - {message}"

BRIDGED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "apscheduler", "httpx")


class StdlibBridge(logging.Handler):
    """Re-emits a standard logging record through loguru."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(depth=6, exception=record.exc_info).log(level, record.getMessage())


def bridge_stdlib_loggers(names=BRIDGED_LOGGERS, level: str = "INFO"):
    bridge = StdlibBridge()
    for name in names:
        std_logger = logging.getLogger(name)
        std_logger.handlers = [bridge]
        std_logger.setLevel(level.upper())
        std_logger.propagate = False


def setup_logger(level: str = settings.log_level, log_dir: str = settings.log_dir):
    logger.remove()
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level.upper())

    # Rotating file keeps DEBUG (per-record drop reasons) whatever the console level
    path = Path(log_dir)
    path.mkdir(parents=True, exist_ok=True)
    logger.add(
        path / "app.log",
        rotation="10 MB",
        retention="7 days",
        compression="zip",
        level="DEBUG",
        format=FILE_FORMAT,
    )

    bridge_stdlib_loggers(level=level)
    return logger


log = setup_logger()
