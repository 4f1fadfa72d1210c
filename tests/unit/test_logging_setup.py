"""
Unit tests for logging setup.
"""

import logging
import logging.handlers
import os
from unittest.mock import patch

import pytest


@pytest.fixture
def restore_root_logger():
    """Restore the root logger after setup_logging replaces its handlers."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Test configuring logging for an application host."""

    def test_console_only_by_default(self, restore_root_logger):
        """Test only a stderr handler is installed without LOG_DIR."""
        from appmodel.config import Config
        from appmodel.logging_setup import setup_logging

        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING"}, clear=True):
            logger = setup_logging(Config())

        assert logger.name == "appmodel"
        assert restore_root_logger.level == logging.WARNING
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0], logging.StreamHandler)

    def test_rotating_file_handler(self, restore_root_logger, temp_dir):
        """Test LOG_DIR adds a rotating file handler with the configured limits."""
        from appmodel.config import Config
        from appmodel.logging_setup import LOG_FILE_NAME, setup_logging

        log_dir = temp_dir / "logs"
        env = {"LOG_DIR": str(log_dir), "LOG_MAX_BYTES": "4096", "LOG_BACKUP_COUNT": "3"}
        with patch.dict(os.environ, env, clear=True):
            setup_logging(Config())

        file_handlers = [
            h for h in restore_root_logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].maxBytes == 4096
        assert file_handlers[0].backupCount == 3
        assert (log_dir / LOG_FILE_NAME).exists()

    def test_invalid_level_falls_back_to_info(self, restore_root_logger):
        """Test an unknown level name logs at INFO."""
        from appmodel.config import Config
        from appmodel.logging_setup import setup_logging

        with patch.dict(os.environ, {"LOG_LEVEL": "CHATTY"}, clear=True):
            setup_logging(Config())

        assert restore_root_logger.level == logging.INFO
