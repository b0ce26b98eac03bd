"""
JSON logging formatter for FireflyFFI with proper prefixes.

Provides consistent JSON-formatted logging across the runtime, with a
separate prefix for callback dispatch, which runs on threads chosen by the
native side.
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

import json
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

RUNTIME_PREFIX = "fireflyffi::runtime::log"
CALLBACK_PREFIX = "fireflyffi::callback::log"

# LogRecord attributes that are never copied into the extra data
_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
}


class FireflyFFIJSONFormatter(logging.Formatter):
    """
    JSON formatter for FireflyFFI log records.

    Every entry is a single JSON object carrying the prefix, so runtime logs
    can be picked out of a mixed stream.
    """

    def __init__(
        self,
        prefix: Optional[str] = None,
        include_extra: bool = True,
        include_thread_info: bool = True,
    ):
        """
        Initialize the JSON formatter.

        Args:
            prefix: Log prefix to use. If None, defaults to fireflyffi::runtime::log
            include_extra: Whether to include extra fields from log records
            include_thread_info: Whether to record the emitting thread
        """
        super().__init__()
        self.prefix = prefix or RUNTIME_PREFIX
        self.include_extra = include_extra
        self.include_thread_info = include_thread_info

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "prefix": self.prefix,
        }

        if self.include_thread_info and record.thread:
            log_data["thread"] = record.threadName or str(record.thread)

        if record.filename:
            log_data["module"] = record.filename
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        if self.include_extra:
            log_data.update(self._extract_extra_fields(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(",", ":"), default=str)

    def _extract_extra_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        extra = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_FIELDS or key.startswith("_"):
                continue
            if value is not None and value != "":
                extra[key] = value
        return extra


class CallbackLogFormatter(FireflyFFIJSONFormatter):
    """JSON formatter for callback dispatch, using the fireflyffi::callback::log prefix."""

    def __init__(self, include_extra: bool = True, include_thread_info: bool = True):
        super().__init__(
            prefix=CALLBACK_PREFIX,
            include_extra=include_extra,
            include_thread_info=include_thread_info,
        )


def create_json_handler(
    level: int = logging.INFO, formatter_type: str = "runtime", stream=None
) -> logging.Handler:
    """
    Create a logging handler with JSON formatting.

    Args:
        level: Logging level
        formatter_type: Type of formatter ("runtime" or "callback")
        stream: Output stream (defaults to sys.stdout)

    Returns:
        Configured logging handler
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)

    if formatter_type == "callback":
        handler.setFormatter(CallbackLogFormatter())
    else:
        handler.setFormatter(FireflyFFIJSONFormatter())
    return handler


def configure_json_logging(
    logger_name: str = "fireflyffi", level: int = logging.INFO, stream=None
) -> logging.Logger:
    """
    Configure JSON logging for a FireflyFFI logger and its callback child.

    Args:
        logger_name: Name of the logger to configure
        level: Logging level
        stream: Output stream (defaults to sys.stdout)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.addHandler(create_json_handler(level, "runtime", stream))

    callback_logger = logging.getLogger(f"{logger_name}.callbacks")
    callback_logger.setLevel(level)
    callback_logger.handlers.clear()
    callback_logger.addHandler(create_json_handler(level, "callback", stream))
    # Keep callback entries out of the runtime handler
    callback_logger.propagate = False

    return logger
