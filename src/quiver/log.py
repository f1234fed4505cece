"""
Logging setup for Quiver.

Library modules only create loggers (logging.getLogger(__name__)); they never
configure handlers. Applications, including the CLI, call configure_logging()
once at startup.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "quiver"


def configure_logging(level: str | int = "WARNING", console: Console | None = None) -> logging.Logger:
    """
    Attach a Rich handler to the "quiver" logger.

    Calling this again replaces the previous handler instead of stacking a
    second one.

    Args:
        level: Logging level name or number
        console: Rich console to write to (defaults to stderr)

    Returns:
        The configured "quiver" logger
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
