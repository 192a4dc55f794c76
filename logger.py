"""
Storefront API logging.

All module loggers hang off ``fashion_api``; main.create_app() applies the
configured level through set_level().
"""
import logging
import sys

logger = logging.getLogger("fashion_api")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)

# no duplicate lines through the root logger
logger.propagate = False


def set_level(level: str) -> None:
    logger.setLevel(level.upper())


def get_logger(name: str = None) -> logging.Logger:
    """Return ``fashion_api.<name>``, or the API logger itself when no name is given."""
    if name:
        return logging.getLogger(f"fashion_api.{name}")
    return logger
