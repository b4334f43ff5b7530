"""
Logging configuration for the AquaRoom admin API.

Provides a package logger that can be configured via the LOG_LEVEL
environment variable or the Flask config.
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("aquaroom")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Prevent propagation to root logger (avoid duplicate logs)
logger.propagate = False


def configure(level: str):
    logger.setLevel(level.upper())


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (will be appended to 'aquaroom')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"aquaroom.{name}")
    return logger
