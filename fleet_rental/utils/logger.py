# fleet_rental/utils/logger.py
"""
Logging setup shared by the API, the pollers and the scripts.

Records go to stderr and to logs/<LOG_FILE> at the repository root, rotated
at 5MB with ten backups. The root logger is configured on the first
get_logger() call, so importing a module never touches handlers twice.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from fleet_rental.config import settings

LOG_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", "logs"))
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

_root_ready = False


def _build_handlers(level: str) -> list[logging.Handler]:
    os.makedirs(LOG_DIR, exist_ok=True)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(),
        RotatingFileHandler(
            os.path.join(LOG_DIR, settings.LOG_FILE),
            maxBytes=5 * 1024 * 1024,
            backupCount=10,
            encoding="utf-8",
        ),
    ]
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Named logger for `name` (pass __name__)."""
    global _root_ready
    if not _root_ready:
        level = settings.LOG_LEVEL.upper()
        root = logging.getLogger()
        root.setLevel(level)
        for handler in _build_handlers(level):
            root.addHandler(handler)
        for noisy in QUIET_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)
        _root_ready = True
    return logging.getLogger(name)
