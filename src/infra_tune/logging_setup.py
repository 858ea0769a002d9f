"""
Logging configuration.

Library modules only create module level loggers.
The command line calls configure once to attach a handler.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "infra_tune"


def configure(debug: bool = False, console: Console | None = None) -> logging.Logger:
    """
    Attach a rich handler to the package logger.

    debug enables debug messages, otherwise only warnings and errors are shown.
    Calling it again replaces the previous handler.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False
    return logger
