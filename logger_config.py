"""Centralized logging configuration for the tickets ETL pipeline."""

import logging
import sys
from datetime import datetime
from config import LOGS_PATH, LOG_LEVEL


def setup_logger(name: str) -> logging.Logger:
    """
    Logger writing DEBUG+ to the daily tickets_etl file and INFO+ to stdout.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    # Modules call this at import time; attach handlers only once
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt='%(asctime)s | %(levelname)-7s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # tickets_etl_<run date>.log under LOGS_PATH; console only if it can't be created
    try:
        LOGS_PATH.mkdir(parents=True, exist_ok=True)
        log_file = LOGS_PATH / f"tickets_etl_{datetime.now():%Y-%m-%d}.log"
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as exc:
        sys.stderr.write(f"tickets-etl: log file disabled ({exc})\n")

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
