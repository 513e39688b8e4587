"""Logging setup for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "k_releaser"


def setup_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Attach a rich handler to the ``k_releaser`` logger.

    Calling this again replaces the previous handler, so repeated CLI
    invocations in one process do not duplicate output.

    Args:
        verbose: Log at DEBUG instead of INFO
        console: Console to log to, stderr by default

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=verbose,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger
