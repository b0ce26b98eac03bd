"""
Logging utilities and configuration for FireflyFFI.

Provides JSON logging with prefixes for runtime and callback components,
including centralized configuration.
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

from .json_formatter import (
    CALLBACK_PREFIX,
    RUNTIME_PREFIX,
    CallbackLogFormatter,
    FireflyFFIJSONFormatter,
    configure_json_logging,
    create_json_handler,
)
from .manager import (
    FireflyFFILoggingManager,
    get_fireflyffi_logger,
    get_logging_manager,
    setup_fireflyffi_logging,
    shutdown_fireflyffi_logging,
)

__all__ = [
    "RUNTIME_PREFIX",
    "CALLBACK_PREFIX",
    "FireflyFFIJSONFormatter",
    "CallbackLogFormatter",
    "create_json_handler",
    "configure_json_logging",
    "FireflyFFILoggingManager",
    "get_logging_manager",
    "setup_fireflyffi_logging",
    "get_fireflyffi_logger",
    "shutdown_fireflyffi_logging",
]
