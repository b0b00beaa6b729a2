"""Logging configuration."""
import logging
import sys
from pathlib import Path
from .config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging() -> logging.Logger:
    """Attach stdout and file handlers to the package logger (idempotent)."""
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(LOG_FORMAT)

    # Package logger only; the root logger belongs to uvicorn and celery
    logger = logging.getLogger("manufacturer_intel")
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if logger.handlers:
        return logger

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_file)):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


logger = setup_logging()
