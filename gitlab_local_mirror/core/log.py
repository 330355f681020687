"""
Logging helpers: a SUCCESS level and severity colouring for terminals.
"""

import logging
import sys
from typing import Optional, TextIO

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
NC = "\033[0m"

LEVEL_COLORS = {
    SUCCESS: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED,
}


class ColorFormatter(logging.Formatter):
    """Formatter wrapping whole records in the colour of their severity."""

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: str = DATE_FORMAT, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if self.use_color and color:
            return f"{color}{message}{NC}"
        return message


def setup_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> None:
    """
    Configure logging for the application with a standardized format.

    Args:
        level: Logging level (default: INFO)
        stream: Output stream (default: stderr); colours are used only on a TTY.
            Ignored when the root logger already has handlers.
    """
    root = logging.getLogger()
    if not root.handlers:
        stream = stream or sys.stderr
        handler = logging.StreamHandler(stream)
        use_color = hasattr(stream, "isatty") and stream.isatty()
        handler.setFormatter(ColorFormatter(use_color=use_color))
        root.addHandler(handler)
    root.setLevel(level)
