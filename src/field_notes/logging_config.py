"""Logging configuration for the Field Notes store and its CLI."""
import logging
import os
import sys

LOG_FORMAT = '%(asctime)s %(levelname)-8s %(name)-20s %(message)s'


class ColorFormatter(logging.Formatter):
    """Formatter that colors the level name for terminal output."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    RESET = '\033[0m'

    def format(self, record):
        levelname = record.levelname
        color = self.COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def _colors_enabled(stream):
    wanted = os.getenv('LOG_COLORS', 'true').lower() in ('true', '1', 'yes')
    return wanted and stream.isatty()


def setup_logging(level=None):
    """Send log records to stderr, keeping stdout free for CLI output.

    The level comes from the argument, then the LOG_LEVEL environment variable,
    then INFO. Level names are colored when stderr is a terminal and LOG_COLORS
    allows it. Any handlers already on the root logger are replaced.
    """
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    formatter_class = ColorFormatter if _colors_enabled(sys.stderr) else logging.Formatter
    handler.setFormatter(formatter_class(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers[:] = [handler]

    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    root.debug(f"Logging initialized (level: {level_name})")
    return root
