"""
Unit tests for logging setup.
"""

import io
import logging

from rich.console import Console
from rich.logging import RichHandler

from quiver.log import LOGGER_NAME, configure_logging


def _rich_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h, RichHandler)]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_sets_level(self) -> None:
        """Level names are case-insensitive."""
        logger = configure_logging("debug")
        assert logger.name == LOGGER_NAME
        assert logger.level == logging.DEBUG
        configure_logging("WARNING")

    def test_does_not_stack_handlers(self) -> None:
        """Reconfiguring replaces the Rich handler."""
        configure_logging("INFO")
        logger = configure_logging("INFO")
        assert len(_rich_handlers(logger)) == 1
        configure_logging("WARNING")

    def test_writes_to_console(self) -> None:
        """Records from quiver modules reach the given console."""
        buffer = io.StringIO()
        configure_logging("INFO", Console(file=buffer, width=200))
        logging.getLogger("quiver.tools.compiler").info("Replaced existing declaration of tool x")
        assert "Replaced existing declaration" in buffer.getvalue()
        configure_logging("WARNING")
