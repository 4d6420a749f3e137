# =============================================================================
# fleet_core/logging/config.py
# Logging Configuration for FleetOps
# =============================================================================

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_DIR = Path("logs")

# Client libraries that log every HTTP request and websocket frame at INFO
NOISY_LOGGERS = (
    "httpx", "httpcore", "hpack", "urllib3",
    "supabase", "postgrest", "realtime", "websockets",
)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _handlers(log_to_file: bool, log_filename: Optional[str], log_dir: Optional[Path]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if not log_to_file:
        return handlers

    directory = Path(log_dir or LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    filename = log_filename or f"fleetops_{date.today():%Y-%m-%d}.log"
    handlers.append(logging.FileHandler(directory / filename, encoding="utf-8"))
    return handlers


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger for the app: stdout always, plus one file per day
    under ``logs/`` unless ``log_to_file`` is False. Unknown level names fall
    back to INFO. Calling it again replaces the previous handlers.
    """
    logging.basicConfig(
        level=_resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=_handlers(log_to_file, log_filename, log_dir),
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("fleet_core").info(f"Logging ready (level={logging.getLevelName(_resolve_level(level))})")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Times a block and logs how it ended.

        with LogContext(logger, "Computing fleet KPIs"):
            calculate_fleet_kpis(stores)

    Failures are logged with traceback and re-raised.
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._started: Optional[float] = None

    @property
    def elapsed(self) -> float:
        return 0.0 if self._started is None else time.perf_counter() - self._started

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.debug(f"{self.operation}: start")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.info(f"{self.operation}: done in {self.elapsed:.2f}s")
        else:
            self.logger.error(f"{self.operation}: failed after {self.elapsed:.2f}s: {exc_val}", exc_info=True)
        return False
