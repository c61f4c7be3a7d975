import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger with a console handler and an optional rotating file.

    Args:
        level: Logging level name; defaults to the LOG_LEVEL environment variable or INFO.
        log_file: Optional path of a rotating log file.

    Returns:
        The configured root logger.
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers when called twice.
    if root.handlers:
        return root

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if log_file:
        try:
            file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        except OSError as e:
            root.warning("Failed to setup file logging to %s: %s", log_file, e)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    return root
