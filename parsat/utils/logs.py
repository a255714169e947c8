# coding: utf-8
"""Logging setup shared by the CLI and the worker processes it starts."""

import logging

from parsat import PARSAT_DEBUG

LOG_FORMAT = "%(asctime)s - %(processName)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}


def log_level(verbosity: int) -> int:
    if PARSAT_DEBUG:
        return logging.DEBUG
    return _LEVELS.get(verbosity, logging.INFO)


def configure_logging(verbosity: int) -> None:
    """Configure the root logger once per process (no-op if already configured)."""
    logging.basicConfig(level=log_level(verbosity), format=LOG_FORMAT)
