"""Logging configuration for secret-mgmt."""

import logging
import sys
from typing import Optional

LOGGER_NAME = "secretmgmt"


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Setup logging configuration for the CLI.

    Progress messages go to stderr so that the stdout of `resolve` can be
    evaluated by a shell. Calling this again replaces the handlers of the
    previous call.

    Args:
        verbose: Enable verbose/debug logging
        log_file: Optional log file path

    Returns:
        logging.Logger: The package logger
    """
    level = logging.DEBUG if verbose else logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    # Plain messages on the console unless debugging
    console_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s" if verbose else "%(message)s"
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(console_format))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(file_handler)

    # Quiet HTTP client libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)

    return logger
