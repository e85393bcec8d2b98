import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("mcp_payments")


def setup_logger(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Attach a stdout handler to the package logger.

    Calling it more than once only updates the level.

    Args:
        level: Logging level name ("DEBUG", "INFO", ...) or numeric level.

    Returns:
        logging.Logger: The configured ``mcp_payments`` logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger
