import json
import logging
import time
from typing import Any, Dict

LOGGER_NAME = "portstride"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def level_for(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def create_logger(verbosity: int = 0) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level_for(verbosity))

    # Prevent duplicate handlers if main() runs more than once in a process
    if logger.handlers:
        return logger

    # stderr, so stdout carries only progress markers and the report
    sh = logging.StreamHandler()
    sh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(sh)
    return logger


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime())


def log_event(
    logger: logging.Logger,
    event: str,
    fields: Dict[str, Any],
    level: int = logging.INFO,
) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"ts": now_iso(), "event": event, **fields}
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
