import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import List

from .config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_file: str = None, level: str = None) -> List[logging.Handler]:
    log_file = settings.log_file if log_file is None else log_file
    level = logging.getLevelName((level or settings.log_level).upper())

    # Configure root logger
    logger = logging.getLogger()
    logger.setLevel(level)

    handlers: List[logging.Handler] = []

    # Console Handler (stdout)
    c_handler = logging.StreamHandler(sys.stdout)
    c_handler.setLevel(level)
    c_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers.append(c_handler)

    # File Handler (Rotating)
    if log_file:
        # Max 2MB per file, keep only 1 backup
        f_handler = RotatingFileHandler(log_file, maxBytes=2*1024*1024, backupCount=1, encoding='utf-8')
        f_handler.setLevel(level)
        f_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(f_handler)

    for handler in handlers:
        logger.addHandler(handler)

    # Uvicorn logs go through the same handlers
    logging.getLogger("uvicorn.access").handlers = list(handlers)
    logging.getLogger("uvicorn.error").handlers = list(handlers)

    if log_file:
        logging.info(f"Logging configured. Writing to {log_file}")
    return handlers
