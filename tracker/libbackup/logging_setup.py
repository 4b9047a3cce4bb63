"""
Logging setup for libbackup entry points.

Library modules only create module loggers; handlers are installed here, by
the CLI, and never at import time.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import ObservabilityConfig

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: ObservabilityConfig, verbose: bool = False) -> None:
    """Configure the root logger.

    Args:
        config: Observability configuration
        verbose: Force DEBUG level regardless of config
    """
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
