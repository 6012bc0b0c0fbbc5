"""Logging configuration for imessage_tools"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_level=logging.INFO, log_dir="logs", console_output=True, file_output=False):
    """
    Configure logging for the application

    Args:
        log_level: Logging level, as a number or a level name (default: INFO)
        log_dir: Directory for log files (default: "logs")
        console_output: Enable console output (default: True)
        file_output: Enable file output (default: False)
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Console handler. Writes to stderr so the stdio transport keeps stdout clean.
    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    log_path = Path(log_dir)

    # File handler - rotating logs
    if file_output:
        log_path.mkdir(parents=True, exist_ok=True)

        log_filename = log_path / f"imessage_tools_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_filename,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

        # Error file handler - only errors and above
        error_log_filename = log_path / "errors.log"
        error_handler = logging.handlers.RotatingFileHandler(
            error_log_filename,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

    logging.info("imessage-tools logging configured")
    logging.info(f"Log Level: {logging.getLevelName(log_level)}")
    if file_output:
        logging.info(f"Log Directory: {log_path.absolute()}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)
