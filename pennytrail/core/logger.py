import logging

from pennytrail.core.config import settings

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Named logger with a single console handler, used by worker tasks and scripts."""
    logger = logging.getLogger(name)
    logger.setLevel(settings.LOG_LEVEL.upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
