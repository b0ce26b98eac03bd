"""
Centralized logging manager for FireflyFFI.

Provides unified logging setup with JSON formatting, optional rotating file
output, and prefix management for runtime and callback loggers.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from .json_formatter import CallbackLogFormatter, FireflyFFIJSONFormatter

ROOT_LOGGER = "fireflyffi"
CALLBACK_LOGGER = "fireflyffi.callbacks"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class FireflyFFILoggingManager:
    """
    Central manager for FireflyFFI logging.

    Handlers are attached to the ``fireflyffi`` logger rather than the root
    logger, so an application's own logging setup is left alone.
    """

    def __init__(self, config=None):
        """
        Initialize the logging manager.

        Args:
            config: Runtime configuration containing logging settings
        """
        self.config = config
        self.configured = False
        self._handlers: List[tuple] = []

        self.log_level = logging.INFO
        self.format_type = "json"
        self.output_file = None
        self.max_file_size_mb = 100
        self.backup_count = 5
        self.include_thread_info = True

        if config and hasattr(config, "logging"):
            logging_config = config.logging
            self.log_level = getattr(logging, logging_config.level)
            self.format_type = logging_config.format
            self.output_file = logging_config.output_file
            self.max_file_size_mb = logging_config.max_file_size_mb
            self.backup_count = logging_config.backup_count
            self.include_thread_info = logging_config.include_thread_info

    def setup_logging(self, stream=None) -> None:
        """Setup the FireflyFFI logging system."""
        if self.configured:
            return

        stream = stream or sys.stdout
        self._attach(ROOT_LOGGER, logging.StreamHandler(stream), callback=False)
        self._attach(CALLBACK_LOGGER, logging.StreamHandler(stream), callback=True)

        if self.output_file:
            self._setup_file_logging()

        for name in (ROOT_LOGGER, CALLBACK_LOGGER):
            logger = logging.getLogger(name)
            logger.setLevel(self.log_level)
            logger.propagate = False

        self.configured = True

        logging.getLogger(f"{ROOT_LOGGER}.logging").info(
            "FireflyFFI logging system initialized",
            extra={
                "log_level": logging.getLevelName(self.log_level),
                "format_type": self.format_type,
                "output_file": self.output_file,
            },
        )

    def _formatter(self, callback: bool) -> logging.Formatter:
        if self.format_type != "json":
            return logging.Formatter(TEXT_FORMAT)
        if callback:
            return CallbackLogFormatter(include_thread_info=self.include_thread_info)
        return FireflyFFIJSONFormatter(include_thread_info=self.include_thread_info)

    def _attach(self, logger_name: str, handler: logging.Handler, callback: bool) -> None:
        handler.setFormatter(self._formatter(callback))
        handler.setLevel(self.log_level)
        logging.getLogger(logger_name).addHandler(handler)
        self._handlers.append((logger_name, handler))

    def _setup_file_logging(self) -> None:
        """Setup file-based logging with rotation."""
        output_path = Path(self.output_file)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        for logger_name, callback in ((ROOT_LOGGER, False), (CALLBACK_LOGGER, True)):
            file_handler = logging.handlers.RotatingFileHandler(
                filename=str(output_path),
                maxBytes=self.max_file_size_mb * 1024 * 1024,
                backupCount=self.backup_count,
                encoding="utf-8",
            )
            self._attach(logger_name, file_handler, callback)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a configured logger for the given name."""
        if not self.configured:
            self.setup_logging()
        return logging.getLogger(name)

    def shutdown(self) -> None:
        """Detach and close every handler this manager installed."""
        for logger_name, handler in self._handlers:
            logger = logging.getLogger(logger_name)
            logger.removeHandler(handler)
            logger.propagate = True
            handler.close()
        self._handlers.clear()
        self.configured = False


_logging_manager: Optional[FireflyFFILoggingManager] = None


def get_logging_manager(config=None) -> FireflyFFILoggingManager:
    """Get or create the global logging manager."""
    global _logging_manager

    if _logging_manager is None:
        _logging_manager = FireflyFFILoggingManager(config)

    return _logging_manager


def setup_fireflyffi_logging(config=None) -> None:
    """Setup FireflyFFI logging system."""
    manager = get_logging_manager(config)
    manager.setup_logging()


def get_fireflyffi_logger(name: str) -> logging.Logger:
    """Get a FireflyFFI logger with proper configuration."""
    manager = get_logging_manager()
    return manager.get_logger(f"{ROOT_LOGGER}.{name}")


def shutdown_fireflyffi_logging() -> None:
    """Shutdown the FireflyFFI logging system."""
    global _logging_manager

    if _logging_manager:
        _logging_manager.shutdown()
        _logging_manager = None
