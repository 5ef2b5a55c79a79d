"""
Logging setup for the docbuilder command line.

Modules log through ``logging.getLogger(__name__)``; only the CLI calls
``init_logger`` to attach a handler to the ``docbuilder`` logger.
"""

import logging
import os
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = 'docbuilder'
DEFAULT_LEVEL = 'WARNING'

console = Console()


def _is_tty(stream) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


def _plain_formatter() -> logging.Formatter:
    return logging.Formatter(fmt='%(asctime)s | %(levelname)s | %(name)s | %(message)s', datefmt='%H:%M:%S')


def init_logger(level: Optional[str] = None, rich: bool = True) -> logging.Logger:
    """Attach a console handler to the package logger.

    The level falls back to the LOG_LEVEL environment variable, then WARNING.
    Calling this twice replaces the previous handler.
    """
    level_name = (level or os.environ.get('LOG_LEVEL') or DEFAULT_LEVEL).upper()
    numeric = getattr(logging, level_name, None)
    if not isinstance(numeric, int):
        numeric = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    if rich and _is_tty(sys.stdout):
        handler = RichHandler(console=console, show_time=True, show_level=True, show_path=False, markup=False)
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_plain_formatter())
    handler.setLevel(numeric)
    logger.addHandler(handler)
    return logger


def announce(message: str, style: str = 'green'):
    """Print a progress line regardless of the configured log level."""
    console.print(message, style=style, highlight=False)
