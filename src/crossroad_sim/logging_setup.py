"""Root logger configuration for the command-line entry points.

Call :func:`setup_logging` once at startup; library modules only ever
create their own ``logging.getLogger(__name__)`` loggers.
"""

import logging
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """Apply a unified log format to console and, optionally, file output.

    Args:
        level: Minimum severity level (e.g. ``logging.DEBUG``)
        log_file: Path of a rotating log file (1 MB, 2 backups), if wanted
    """
    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)

    root.handlers.clear()
    root.addHandler(ch)

    if log_file:
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=2)
        fh.setFormatter(fmt)
        root.addHandler(fh)
