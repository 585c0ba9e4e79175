"""Logging configuration with RotatingFileHandler."""

import logging
import os
from logging.handlers import RotatingFileHandler


def setup_logger(name: str = "stofhamp", log_dir: str = "logs") -> logging.Logger:
    """
    Setup logger with console and file handlers.

    Child loggers (``stofhamp.routers.listings`` and so on) propagate to
    this one, so modules only need ``logging.getLogger(__name__)``.

    Args:
        name: Logger name
        log_dir: Directory for the rotating log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    os.makedirs(log_dir, exist_ok=True)

    file_handler = RotatingFileHandler(
        filename=os.path.join(log_dir, f"{name}.log"),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger
