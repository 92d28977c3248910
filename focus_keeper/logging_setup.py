import os
import sys
import logging
from logging.handlers import RotatingFileHandler

from .config import LOG_FILE, LOGGER_NAME
from .utils import ensure_dir

_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logger(console: bool = False, log_file: str = LOG_FILE) -> logging.Logger:
    logger = get_logger()
    logger.setLevel(logging.INFO)

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        ensure_dir(os.path.dirname(os.path.abspath(log_file)))
        handler = RotatingFileHandler(
            log_file,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    if console and not any(type(h) is logging.StreamHandler for h in logger.handlers):
        stream = logging.StreamHandler(sys.stderr)
        stream.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(stream)

    return logger
