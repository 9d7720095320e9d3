"""
Logging configuration for the DCA Monitor.
"""

import logging
from logging.handlers import RotatingFileHandler


def setup_logging(
    level: str = "INFO", log_file: str = "dca_monitor.log"
) -> logging.Logger:
    """
    Configure logging with console and file handlers.

    ## Parameters
    - `level`: Console log level name (e.g. "INFO", "DEBUG")
    - `log_file`: Path of the rotating warning/error log

    Returns:
        Configured logger instance
    """
    log_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_level = logging.getLevelName(level)
    if not isinstance(console_level, int):
        console_level = logging.INFO

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(log_formatter)

    # Only WARNING and ERROR go to disk, rotated to bound its size
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB per file
        backupCount=5,
    )
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(log_formatter)

    logging.basicConfig(
        level=min(console_level, logging.WARNING),
        handlers=[console_handler, file_handler],
    )

    return logging.getLogger("dcamonitor")
