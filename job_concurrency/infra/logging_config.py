"""
Logging setup for the scheduler service.

Records from every job_concurrency.* module go to the console and, when a
log directory is configured, to one file per calendar day:

    <log_dir>/job_concurrency_YYYYMMDD_<HHMMSS>.log

HHMMSS is the time the process started, so files written by separate runs
on the same day do not collide.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Optional

PACKAGE_LOGGER = "job_concurrency"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_PREFIX = "job_concurrency"

PROCESS_START = datetime.now().strftime("%H%M%S")


class DailyRotatingFileHandler(logging.FileHandler):
    """
    File handler that switches to a new file when the day changes.

    The check happens on emit, so a day with no records gets no file.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        prefix: str = LOG_PREFIX,
        encoding: str = "utf-8",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self._clock = clock
        self._day = self._today()

        super().__init__(self._path_for(self._day), mode="a", encoding=encoding)

    def _today(self) -> date:
        return self._clock().date()

    def _path_for(self, day: date) -> str:
        return str(self.log_dir / f"{self.prefix}_{day:%Y%m%d}_{PROCESS_START}.log")

    def _roll_over(self, day: date) -> None:
        if self.stream is not None:
            self.stream.close()
            self.stream = None
        self._day = day
        self.baseFilename = self._path_for(day)

    def emit(self, record: logging.LogRecord) -> None:
        today = self._today()
        if today != self._day:
            self._roll_over(today)
        # FileHandler reopens the stream lazily on the next emit
        super().emit(record)


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = "logs",
) -> logging.Logger:
    """
    Configure the package logger and return it.

    Modules log through logging.getLogger(__name__), so everything under
    job_concurrency.* reaches the handlers installed here. Calling this
    again replaces the previous handlers.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names mean INFO)
        log_dir: Directory for daily log files; None logs to console only

    Returns:
        The configured "job_concurrency" logger
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(PACKAGE_LOGGER)
    _reset_handlers(logger)
    logger.setLevel(level)
    # Handlers live here; the root logger would print everything twice
    logger.propagate = False

    handlers: list = [logging.StreamHandler()]
    if log_dir is not None:
        handlers.append(DailyRotatingFileHandler(log_dir=log_dir))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    target = handlers[-1].baseFilename if log_dir is not None else "console"
    logger.info(f"Logging started - level: {logging.getLevelName(level)}, output: {target}")
    return logger
