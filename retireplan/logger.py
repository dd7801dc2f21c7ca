import logging
import os
import sys


def setup_logger(name: str = "retireplan", level: int | str | None = None) -> logging.Logger:
    """Configures and returns the package logger with a console handler.

    Level defaults to RETIREPLAN_LOG_LEVEL (INFO when unset). Calling it twice
    does not stack handlers.
    """
    logger = logging.getLogger(name)
    if level is None:
        level = os.getenv("RETIREPLAN_LOG_LEVEL", "INFO").upper()
    logger.setLevel(level)

    if logger.handlers:
        return logger

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
