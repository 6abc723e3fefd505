"""Logging configuration shared by the registry server and the terminal client."""

import logging
import os
import sys

from pydantic import BaseModel, Field

HTTP_STACK_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class LogConfig(BaseModel):
    """Logging configuration.

    ``file`` sends records to a file instead of stdout. The terminal client
    uses it so log lines never interleave with its prompts.
    """

    level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    file: str | None = Field(default_factory=lambda: os.getenv("LOG_FILE") or None)
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: tuple[str, ...] = HTTP_STACK_LOGGERS


def setup_logging(config: LogConfig | None = None) -> logging.Handler:
    """Install a single root handler and return it."""
    config = config or LogConfig()

    if config.file:
        handler: logging.Handler = logging.FileHandler(config.file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))

    logging.basicConfig(level=config.level.upper(), handlers=[handler], force=True)

    # One line per request from these; registry events are logged separately
    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)

    return handler


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a module logger.

    Without an explicit level the logger inherits from the root, so
    ``setup_logging`` decides what is emitted.
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level.upper())
    return logger
