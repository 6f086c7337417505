import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "netsec_scanner"


def setup_logging(log_file: Optional[str] = "tcp_scan.log") -> logging.Logger:
    """
    Configures the package logger for one scanner invocation.

    Args:
        log_file: Path of the scan log. None or an empty string disables the file handler.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    logger.setLevel(logging.INFO)
    logger.propagate = False

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    # INFO records go to the log file only
    stream_handler.setLevel(logging.WARNING)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger
