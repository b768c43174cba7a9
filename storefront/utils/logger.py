"""Logging configuration."""

import logging
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

from storefront.config import Settings, get_settings

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers that only matter when debugging transport issues
_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "langchain_core", "langgraph")


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging for the storefront process.

    Safe to call more than once: existing root handlers are replaced.
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if settings.log_format == "json":
        formatter: logging.Formatter = JsonFormatter(_JSON_FORMAT, datefmt=_DATE_FORMAT)
    else:
        formatter = logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT)

    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(
        "Logging configured: level=%s, format=%s", settings.log_level, settings.log_format
    )
