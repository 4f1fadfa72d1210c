"""
Logging configuration for application hosts.

Configures the root logger with a stderr handler and, when a log directory
is configured, a rotating file handler. Library modules only ever call
``logging.getLogger(__name__)``; hosts call :func:`setup_logging` once.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path

from .config import Config

LOG_FILE_NAME = "appmodel.log"


def setup_logging(config: Config | None = None) -> logging.Logger:
    """
    Set up logging for an application host.

    Args:
        config: Configuration to read ``log_level`` and ``log_dir`` from

    Returns:
        Logger instance for the appmodel package
    """
    config = config or Config.load_runtime_config()

    log_level = getattr(logging, str(config.log_level).upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # stdout is left alone: hosts may write manifests there
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(console_handler)

    if config.log_dir:
        log_file = os.path.join(config.log_dir, LOG_FILE_NAME)
        try:
            Path(config.log_dir).mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=config.log_max_bytes,
                backupCount=config.log_backup_count,
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
                )
            )
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning("Could not set up file logging in %s: %s", config.log_dir, e)

    return logging.getLogger("appmodel")
